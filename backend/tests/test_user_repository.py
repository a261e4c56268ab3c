from datetime import date

import pytest
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from conftest import base_payload
from lexo import models
from lexo.database import create_db_and_tables
from lexo.repositories import ExerciseRepository, UserRepository
from lexo.schemas import ExerciseCreateBody


@pytest.fixture()
def fk_session():
    """In-memory database that enforces foreign keys like a server database would."""
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    @event.listens_for(eng, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    create_db_and_tables(eng)
    with Session(eng) as s:
        yield s
    SQLModel.metadata.drop_all(eng)


def _user(session, email):
    user = models.User(email=email, first_name="Pat", last_name="Doe", password_hash="x")
    return UserRepository(session).create(user)


def test_deleting_an_exercise_owner_keeps_the_exercise(fk_session, registry):
    owner = _user(fk_session, "owner@example.com")
    kid = models.ChildUser(first_name="Sam", username="sammy", birthdate=date(2019, 5, 4), parent_id=owner.id)
    fk_session.add(kid)
    fk_session.commit()
    exercises = ExerciseRepository(fk_session, registry)
    located = exercises.create(
        ExerciseCreateBody.model_validate(base_payload("letter", letters=["A"])).root, owner.id
    )
    exercises.make_available(located.exercise.id, kid.id)
    exercise_id, owner_id, kid_id = located.exercise.id, owner.id, kid.id

    UserRepository(fk_session).delete(owner)

    fk_session.expire_all()
    assert fk_session.get(models.User, owner_id) is None
    assert fk_session.get(models.ChildUser, kid_id) is None
    assert fk_session.get(models.ChildExerciseLink, (kid_id, exercise_id)) is None
    kept = exercises.find_by_id(exercise_id)
    assert kept.exercise.user_id is None
    assert exercises.find_by_owner(owner_id) == []


def test_list_returns_users_oldest_first(session):
    first = _user(session, "first@example.com")
    second = _user(session, "second@example.com")
    assert [u.id for u in UserRepository(session).list()] == [first.id, second.id]


def test_save_bumps_updated_at(session):
    user = _user(session, "pat@example.com")
    before = user.updated_at
    user.first_name = "Patricia"
    saved = UserRepository(session).save(user)
    assert saved.first_name == "Patricia"
    assert saved.updated_at >= before
