"""WebSocket writer tests with fake sockets"""
import asyncio
import logging

from agencyflow.realtime import gateway


class RecordingSocket:
    def __init__(self):
        self.sent = []
        self.closed = False

    async def send_json(self, data):
        self.sent.append(data)

    async def close(self, code=1000, reason=None):
        self.closed = True


class StalledSocket(RecordingSocket):
    async def send_json(self, data):
        await asyncio.sleep(10)


class ClosedSocket(RecordingSocket):
    async def send_json(self, data):
        raise RuntimeError("Cannot call send once a close message has been sent")

    async def close(self, code=1000, reason=None):
        raise RuntimeError("Unexpected ASGI message 'websocket.close'")


def _run_writer(socket, session, broker):
    async def run():
        await asyncio.wait_for(gateway._writer(socket, session, broker, asyncio.Event()), timeout=2)
    asyncio.run(run())


def test_stalled_write_tears_session_down(broker, actors, monkeypatch, caplog):
    monkeypatch.setattr(gateway.settings, "broker_write_timeout_seconds", 0.05)
    session = broker.register(actors["dev"])
    session.enqueue({"type": "pong"})
    socket = StalledSocket()

    with caplog.at_level(logging.WARNING):
        _run_writer(socket, session, broker)

    assert session.closed
    assert broker.session_count() == 0
    assert socket.closed
    assert "Write timed out" in caplog.text


def test_failed_write_tears_session_down(broker, actors, caplog):
    session = broker.register(actors["dev"])
    session.enqueue({"type": "pong"})

    with caplog.at_level(logging.WARNING):
        _run_writer(ClosedSocket(), session, broker)

    assert session.closed
    assert not broker.is_user_online(actors["dev"].user_id)
    assert broker.publish_to_user(actors["dev"].user_id, {"type": "late"}) == 0
    assert "Write failed" in caplog.text


def test_writer_delivers_in_order_until_closed(broker, actors):
    session = broker.register(actors["dev"])
    socket = RecordingSocket()

    async def run():
        wake = asyncio.Event()
        task = asyncio.create_task(gateway._writer(socket, session, broker, wake))
        session.enqueue({"type": "a"})
        session.enqueue({"type": "b"})
        wake.set()
        await asyncio.sleep(0.05)
        broker.disconnect(session)
        wake.set()
        await asyncio.wait_for(task, timeout=2)

    asyncio.run(run())

    assert [e["type"] for e in socket.sent] == ["a", "b"]
    assert not socket.closed
