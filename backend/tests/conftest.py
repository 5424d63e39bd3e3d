"""
Pytest Configuration and Fixtures

Every test runs against a fresh in-memory MongoDB (mongomock) patched
into the mongo_client globals, a fresh channel broker and a fresh JWT
validator.
"""

import jwt
import mongomock
import pytest

from agencyflow.config.settings import settings
from agencyflow.domain.models import ActorContext, Project, User, WorkItem
from agencyflow.domain.enums import Role, WorkItemKind
from agencyflow.realtime import broker as broker_module
from agencyflow.realtime.broker import ChannelBroker
from agencyflow.repositories import mongo_client
from agencyflow.repositories.project_repo import ProjectRepository
from agencyflow.repositories.user_repo import UserRepository
from agencyflow.repositories.work_item_repo import WorkItemRepository
from agencyflow.utils import jwt as jwt_module
from agencyflow.utils.time import utc_now


@pytest.fixture(autouse=True)
def db(monkeypatch):
    """In-memory database shared by every repository in the test"""
    client = mongomock.MongoClient()
    database = client[settings.mongo_db]
    monkeypatch.setattr(mongo_client, "_client", client)
    monkeypatch.setattr(mongo_client, "_database", database)
    return database


@pytest.fixture(autouse=True)
def broker(monkeypatch, db):
    """Fresh global broker and JWT validator"""
    monkeypatch.setattr(jwt_module, "_jwt_validator", None)
    fresh = ChannelBroker(authenticator=jwt_module.get_current_user, queue_size=10)
    monkeypatch.setattr(broker_module, "_broker", fresh)
    return fresh


# =============================================================================
# Actors and projects
# =============================================================================

@pytest.fixture
def users(db):
    """One active user per role, plus a second developer and team lead"""
    repo = UserRepository()
    created = {}
    for key, role in [
        ("admin", Role.ADMIN),
        ("manager", Role.MANAGER),
        ("lead", Role.TEAM_LEAD),
        ("dev", Role.DEVELOPER),
        ("designer", Role.DESIGNER),
        ("dev2", Role.DEVELOPER),
        ("lead2", Role.TEAM_LEAD),
        ("manager2", Role.MANAGER),
    ]:
        created[key] = repo.create_user(User(
            user_id=f"USR-{key}",
            name=key.capitalize(),
            email=f"{key}@agency.test",
            role=role
        ))
    return created


@pytest.fixture
def project(users):
    """A NEW project staffed by manager, lead and designer"""
    return ProjectRepository().create_project(Project(
        project_id="PRJ-1",
        name="Website Redesign",
        manager_id=users["manager"].user_id,
        team_lead_id=users["lead"].user_id,
        designer_id=users["designer"].user_id
    ))


def actor_for(user: User) -> ActorContext:
    """Request-scoped actor context for a stored user"""
    return ActorContext(user_id=user.user_id, role=user.role, display_name=user.name)


@pytest.fixture
def actors(users):
    return {key: actor_for(user) for key, user in users.items()}


def make_token(user_id: str) -> str:
    """Bearer token the validator accepts"""
    return jwt.encode({"sub": user_id}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def insert_work_item(
    work_item_id: str,
    kind: str,
    status: str,
    project_id: str,
    assigned_actor_id: str,
    created_by_id: str,
    title: str = "Seeded item"
) -> WorkItem:
    """Store an item directly in any status, bypassing the engine"""
    now = utc_now()
    return WorkItemRepository().create_work_item(WorkItem(
        work_item_id=work_item_id,
        kind=WorkItemKind(kind),
        project_id=project_id,
        title=title,
        status=status,
        assigned_actor_id=assigned_actor_id,
        created_by_id=created_by_id,
        last_transition_at=now,
        created_at=now
    ))
