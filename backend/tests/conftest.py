import os

# Keep the import-time table creation of `lexo.main` away from the dev database.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("API_BASE_URL", "http://test.local")
os.environ.setdefault("ADMIN_CREATION_KEY", "test-admin-key")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from lexo import models
from lexo.database import create_db_and_tables, get_session
from lexo.exercises import build_registry


@pytest.fixture()
def engine():
    """Fresh in-memory SQLite database shared by every connection."""
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(eng)
    yield eng
    SQLModel.metadata.drop_all(eng)


@pytest.fixture()
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture()
def registry():
    return build_registry()


@pytest.fixture()
def parent(session):
    user = models.User(email="parent@example.com", first_name="Pat", last_name="Doe", password_hash="x")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def child(session, parent):
    kid = models.ChildUser(first_name="Sam", username="sammy", birthdate=date(2019, 5, 4), parent_id=parent.id)
    session.add(kid)
    session.commit()
    session.refresh(kid)
    return kid


@pytest.fixture()
def client(engine):
    from lexo.main import app

    def _session_override():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _session_override
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def base_payload(exercise_type: str, **extra) -> dict:
    """Camel-case create payload with valid common fields."""
    payload = {
        "exerciseType": exercise_type,
        "title": f"{exercise_type.title()} practice",
        "description": "A short practice session for kids.",
        "durationMinutes": 5,
        "mainColor": "#FFAA00",
        "thumbnailUrl": "http://test.local/thumb.png",
        "xp": 30,
        "ageRange": {"min": 3, "max": 6},
        "difficulty": "easy",
    }
    payload.update(extra)
    return payload
