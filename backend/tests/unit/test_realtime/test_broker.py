"""Channel broker tests"""
import pytest

from agencyflow.domain.errors import AuthenticationError
from agencyflow.realtime.broker import ChannelBroker

from tests.conftest import make_token


def _event(n):
    return {"type": "test", "n": n}


class TestSessions:

    def test_user_with_several_sessions(self, broker, actors):
        first = broker.register(actors["dev"])
        second = broker.register(actors["dev"])

        assert broker.publish_to_user(actors["dev"].user_id, _event(1)) == 2
        assert first.drain() == [_event(1)]
        assert second.drain() == [_event(1)]
        assert broker.online_user_count() == 1
        assert broker.session_count() == 2

    def test_offline_user_gets_nothing(self, broker):
        assert broker.publish_to_user("USR-nobody", _event(1)) == 0

    def test_disconnect_drops_rooms_and_events(self, broker, actors):
        session = broker.register(actors["dev"])
        broker.join_project(session, "PRJ-1")
        session.enqueue(_event(1))

        broker.disconnect(session)

        assert session.closed
        assert session.rooms() == set()
        assert session.pending() == 0
        assert not broker.is_user_online(actors["dev"].user_id)
        assert broker.publish_to_project("PRJ-1", _event(2)) == 0
        assert session.enqueue(_event(3)) is False

    def test_disconnect_twice_is_harmless(self, broker, actors):
        session = broker.register(actors["dev"])
        broker.disconnect(session)
        broker.disconnect(session)
        assert broker.session_count() == 0

    def test_disconnect_all(self, broker, actors):
        sessions = [broker.register(actors["dev"]), broker.register(actors["lead"])]
        assert broker.disconnect_all() == 2
        assert all(s.closed for s in sessions)
        assert broker.get_stats()["sessions"] == 0


class TestRooms:

    def test_only_joined_sessions_receive(self, broker, actors):
        inside = broker.register(actors["lead"])
        outside = broker.register(actors["designer"])
        broker.join_project(inside, "PRJ-1")

        assert broker.publish_to_project("PRJ-1", _event(1)) == 1
        assert inside.drain() == [_event(1)]
        assert outside.drain() == []

    def test_leave(self, broker, actors):
        session = broker.register(actors["lead"])
        broker.join_project(session, "PRJ-1")
        broker.leave_project(session, "PRJ-1")
        assert not session.in_room("PRJ-1")
        assert broker.publish_to_project("PRJ-1", _event(1)) == 0

    def test_role_filter(self, broker, actors):
        lead = broker.register(actors["lead"])
        designer = broker.register(actors["designer"])
        for session in (lead, designer):
            broker.join_project(session, "PRJ-1")

        delivered = broker.publish_to_project("PRJ-1", _event(1), roles=["TEAM_LEAD", "MANAGER"])

        assert delivered == 1
        assert lead.pending() == 1
        assert designer.pending() == 0

    def test_empty_role_filter_means_everyone(self, broker, actors):
        for key in ("lead", "designer"):
            broker.join_project(broker.register(actors[key]), "PRJ-1")
        assert broker.publish_to_project("PRJ-1", _event(1), roles=[]) == 2

    def test_included_user_skips_role_filter(self, broker, actors):
        sender = broker.register(actors["designer"])
        lead = broker.register(actors["lead"])
        for session in (sender, lead):
            broker.join_project(session, "PRJ-1")

        delivered = broker.publish_to_project(
            "PRJ-1", _event(1), roles=["TEAM_LEAD"], include_user_id=actors["designer"].user_id
        )

        assert delivered == 2
        assert sender.drain() == [_event(1)]

    def test_exclude_user(self, broker, actors):
        sender = broker.register(actors["lead"])
        other = broker.register(actors["designer"])
        broker.join_project(sender, "PRJ-1")
        broker.join_project(other, "PRJ-1")

        broker.publish_to_project("PRJ-1", _event(1), exclude_user_id=actors["lead"].user_id)

        assert sender.pending() == 0
        assert other.pending() == 1


class TestBackpressure:

    def test_full_queue_drops_oldest(self, broker, actors):
        session = broker.register(actors["dev"])
        for n in range(12):
            broker.publish_to_user(actors["dev"].user_id, _event(n))

        events = session.drain()
        assert [e["n"] for e in events] == list(range(2, 12))
        assert session.dropped_events == 2
        assert broker.get_stats()["dropped_events"] == 2

    def test_slow_session_does_not_affect_others(self, broker, actors):
        slow = broker.register(actors["dev"])
        fast = broker.register(actors["dev"])
        for n in range(15):
            broker.publish_to_user(actors["dev"].user_id, _event(n))
            fast.drain()
        assert slow.pending() == 10
        assert fast.dropped_events == 0

    def test_waker_is_called(self, broker, actors):
        calls = []
        session = broker.register(actors["dev"], waker=lambda: calls.append(1))
        broker.publish_to_user(actors["dev"].user_id, _event(1))
        assert calls == [1]
        broker.disconnect(session)
        assert calls == [1, 1]


class TestConnect:

    def test_connect_with_token(self, broker, users):
        session = broker.connect(f"Bearer {make_token(users['dev'].user_id)}")
        assert session.user_id == users["dev"].user_id
        assert session.role == "DEVELOPER"

    def test_bad_token(self, broker, users):
        with pytest.raises(AuthenticationError):
            broker.connect("Bearer not-a-token")
        assert broker.session_count() == 0

    def test_token_for_another_user(self, broker, users):
        with pytest.raises(AuthenticationError):
            broker.connect(make_token(users["dev"].user_id), user_id=users["lead"].user_id)

    def test_no_authenticator(self):
        with pytest.raises(AuthenticationError):
            ChannelBroker().connect("anything")


class TestLiveness:

    def test_reap_stale(self, broker, actors):
        stale = broker.register(actors["dev"])
        live = broker.register(actors["lead"])
        stale.last_seen -= 120

        assert broker.reap_stale(60) == 1
        assert stale.closed
        assert not live.closed

    def test_heartbeat_keeps_session(self, broker, actors):
        session = broker.register(actors["dev"])
        session.last_seen -= 120
        broker.heartbeat(session)
        assert broker.reap_stale(60) == 0
