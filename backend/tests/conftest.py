"""Shared test fixtures: in-memory database, seeded users and an API client."""
import os

# Keep app startup away from the real database file and backup directory.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BACKUP_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from streamertrack.api.deps import get_engine, limiter
from streamertrack.database import get_db
from streamertrack.main import app
from streamertrack.models import Base
from streamertrack.models.cleaning_event import CleaningEvent
from streamertrack.models.project import Project
from streamertrack.modules import scope_resolver
from streamertrack.utils.scope import CallerScope, Role
from streamertrack.utils.sessions import SessionStore, load_users

TEST_AUTH_USERS = ",".join([
    "grand:grandpw:grandsuperuser:ALL",
    "super:superpw:superuser:TTN",
    "globalsuper:globalpw:superuser:TTN:true",
    "otherSuper:otherpw:superuser:NOR",
    "admin:adminpw:admin:TTN",
    "otherAdmin:otherpw:admin:NOR",
    "viewer:viewerpw:viewer:TTN",
])

PASSWORDS = {
    "grand": "grandpw",
    "super": "superpw",
    "globalsuper": "globalpw",
    "otherSuper": "otherpw",
    "admin": "adminpw",
    "otherAdmin": "otherpw",
    "viewer": "viewerpw",
}


@pytest.fixture
def engine():
    """One shared in-memory SQLite connection for the whole test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# -- Scopes ------------------------------------------------------------------

@pytest.fixture
def grand_scope():
    return CallerScope("grand", Role.GRAND_SUPER_USER, None, is_global=True)


@pytest.fixture
def super_scope():
    return CallerScope("super", Role.SUPER_USER, "TTN")


@pytest.fixture
def admin_scope():
    return CallerScope("admin", Role.ADMIN, "TTN")


@pytest.fixture
def other_admin_scope():
    return CallerScope("otherAdmin", Role.ADMIN, "NOR")


@pytest.fixture
def viewer_scope():
    return CallerScope("viewer", Role.VIEWER, "TTN")


# -- Data helpers ------------------------------------------------------------

@pytest.fixture
def make_project(db):
    """Factory: insert a project with full geometry (defaults to the stock 12 x 107 cable)."""
    def _make(number="P-100", vessel_tag="TTN", activate=False, **geometry):
        values = {
            "num_cables": 12,
            "sections_per_cable": 107,
            "section_length": 75.0,
            "module_frequency": 4,
            "channels_per_section": 6,
            "use_rope_for_tail": True,
        }
        values.update(geometry)
        project = Project(
            project_number=number, project_name=f"Project {number}", vessel_tag=vessel_tag, **values
        )
        db.add(project)
        db.flush()
        if activate:
            scope_resolver.activate(db, vessel_tag, project.id)
        db.commit()
        return project
    return _make


@pytest.fixture
def make_event(db):
    """Factory: insert one cleaning event row as-is (no validation)."""
    def _make(streamer_id=1, start=0, end=0, section_type="active", cleaned_at="2024-05-01T10:00:00Z",
              method="rope", project_number="P-100", vessel_tag="TTN", count=1):
        event = CleaningEvent(
            streamer_id=streamer_id,
            section_index_start=start,
            section_index_end=end,
            section_type=section_type,
            cleaning_method=method,
            cleaned_at=cleaned_at,
            cleaning_count=count,
            project_number=project_number,
            vessel_tag=vessel_tag,
        )
        db.add(event)
        db.commit()
        return event
    return _make


# -- API client --------------------------------------------------------------

@pytest.fixture
def session_store():
    return SessionStore(load_users(TEST_AUTH_USERS))


@pytest.fixture
def api_client(engine, session_factory, session_store):
    """TestClient wired to the in-memory database and the test user table."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_engine] = lambda: engine
    limiter.reset()
    with TestClient(app) as client:
        app.state.sessions = session_store
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(session_store):
    """Factory: bearer headers for a configured test user."""
    def _headers(username):
        token, _ = session_store.login(username, PASSWORDS[username])
        return {"Authorization": f"Bearer {token}"}
    return _headers
