"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
children, exercises). Repositories return SQLModel objects and perform
commits/refreshes where appropriate.

Exercise kinds are stored in separate tables, so `ExerciseRepository`
fans every cross-kind operation out over the handlers of an
`ExerciseTypeRegistry`, in registration order.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from . import models
from .errors import InvalidPayloadError, NotFoundError
from .exercises.base import ExerciseTypeHandler
from .exercises.registry import ExerciseTypeRegistry
from .schemas import ExerciseFilter, ExerciseUpdate, ValidationResult

logger = logging.getLogger("lexo.exercises")

COMMON_FIELDS = ("title", "description", "duration_minutes", "main_color", "thumbnail_url", "xp", "difficulty")


@dataclass
class LocatedExercise:
    """An exercise together with the kind of table it was loaded from.

    `items` holds the presentation items with their image URLs recomputed.
    """
    exercise_type: str
    exercise: models.ExerciseBase
    items: List[dict]


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email.lower())
        return self.session.exec(stmt).first()

    def get(self, user_id: str) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def list(self) -> List[models.User]:
        """Every account, oldest first."""
        return self.session.exec(select(models.User).order_by(models.User.created_at)).all()

    def save(self, user: models.User) -> models.User:
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def delete(self, user: models.User) -> None:
        """Delete a user; children and their exercise links go with it.

        Exercises the user created stay in the catalog without an owner.
        """
        for child in list(user.children):
            _delete_links(self.session, models.ChildExerciseLink.child_id == child.id)
        for model in models.EXERCISE_MODELS:
            for exercise in self.session.exec(select(model).where(model.user_id == user.id)).all():
                exercise.user_id = None
                self.session.add(exercise)
        # owner references must be gone before the user row
        self.session.flush()
        self.session.delete(user)
        self.session.commit()


class ChildUserRepository:
    """CRUD operations for `ChildUser` records."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, child: models.ChildUser) -> models.ChildUser:
        self.session.add(child)
        self.session.commit()
        self.session.refresh(child)
        return child

    def get(self, child_id: str) -> Optional[models.ChildUser]:
        return self.session.get(models.ChildUser, child_id)

    def list_for_parent(self, parent_id: str) -> List[models.ChildUser]:
        """Return a parent's children, oldest profile first."""
        stmt = (
            select(models.ChildUser)
            .where(models.ChildUser.parent_id == parent_id)
            .order_by(models.ChildUser.created_at)
        )
        return self.session.exec(stmt).all()

    def save(self, child: models.ChildUser) -> models.ChildUser:
        child.updated_at = datetime.now(timezone.utc)
        self.session.add(child)
        self.session.commit()
        self.session.refresh(child)
        return child

    def delete(self, child: models.ChildUser) -> None:
        _delete_links(self.session, models.ChildExerciseLink.child_id == child.id)
        self.session.flush()
        self.session.delete(child)
        self.session.commit()


class ExerciseRepository:
    """Unified access to every exercise kind."""
    def __init__(self, session: Session, registry: ExerciseTypeRegistry):
        self.session = session
        self.registry = registry

    def find_by_id(self, exercise_id: str) -> LocatedExercise:
        """Probe each kind's table in registry order and return the first match.

        Raises:
            NotFoundError: no kind holds `exercise_id`.
        """
        for handler in self.registry.handlers:
            exercise = self.session.get(handler.model, exercise_id)
            if exercise is not None:
                return self._located(handler, exercise)
        raise NotFoundError("Exercise not found")

    def get(self, exercise_id: str) -> LocatedExercise:
        return self.find_by_id(exercise_id)

    def find_by_owner(self, user_id: str) -> List[LocatedExercise]:
        """All exercises owned by `user_id`, grouped by kind in registry order."""
        out = []
        for handler in self.registry.handlers:
            stmt = (
                select(handler.model)
                .where(handler.model.user_id == user_id)
                .order_by(handler.model.created_at)
            )
            out.extend(self._located(handler, e) for e in self.session.exec(stmt).all())
        return out

    def find_all(self, filters: Optional[ExerciseFilter] = None) -> dict:
        """List exercises per kind with shared filters.

        `limit`/`offset` are applied to each kind on its own and `total` is
        the sum of the per-kind filtered counts, so a page can hold up to
        `limit` exercises of every kind.
        """
        filters = filters or ExerciseFilter()
        exercises: Dict[str, List[LocatedExercise]] = {}
        total = 0
        for handler in self.registry.handlers:
            conditions = self._filter_conditions(handler.model, filters)
            stmt = select(handler.model).where(*conditions).order_by(
                handler.model.created_at.desc(), handler.model.id
            )
            if filters.offset:
                stmt = stmt.offset(filters.offset)
            if filters.limit:
                stmt = stmt.limit(filters.limit)
            count_stmt = select(func.count()).select_from(handler.model).where(*conditions)
            total += self.session.exec(count_stmt).one()
            exercises[handler.exercise_type.value] = [
                self._located(handler, e) for e in self.session.exec(stmt).all()
            ]
        return {"exercises": exercises, "total": total}

    def create(self, data, owner_id: Optional[str] = None) -> LocatedExercise:
        """Build an exercise through its handler, attach the owner and persist it."""
        try:
            handler = self.registry.get_handler_for_type(data.exercise_type)
            exercise = handler.create(self.session, data)
            if owner_id and self.session.get(models.User, owner_id):
                exercise.user_id = owner_id
            self.session.add(exercise)
            self.session.commit()
            self.session.refresh(exercise)
        except Exception:
            self.session.rollback()
            logger.exception("exercise_create_failed %s", json.dumps({"exercise_type": str(getattr(data, "exercise_type", "")), "owner_id": owner_id}))
            raise
        return self._located(handler, exercise)

    def update(self, exercise_id: str, data: ExerciseUpdate) -> LocatedExercise:
        """Apply kind-specific then common-field changes to an exercise.

        When `data.exercise_type` is omitted the handler is chosen from the
        kind the exercise was found in.
        """
        located = self.find_by_id(exercise_id)
        exercise = located.exercise
        try:
            exercise_type = data.exercise_type or located.exercise_type
            handler = self.registry.get_handler_for_type(exercise_type)
            handler.update(self.session, exercise, data)

            for field in COMMON_FIELDS:
                value = getattr(data, field)
                if value is not None:
                    setattr(exercise, field, value)
            if data.age_range is not None:
                exercise.age_range_min = data.age_range.min
                exercise.age_range_max = data.age_range.max
            if exercise.age_range_min > exercise.age_range_max:
                raise InvalidPayloadError("Minimum age must be less than or equal to maximum age")

            exercise.updated_at = datetime.now(timezone.utc)
            self.session.add(exercise)
            self.session.commit()
            self.session.refresh(exercise)
        except Exception:
            self.session.rollback()
            logger.exception("exercise_update_failed %s", json.dumps({"exercise_id": exercise_id}))
            raise
        return self._located(handler, exercise)

    def delete(self, exercise_id: str) -> bool:
        """Remove an exercise and its availability links."""
        located = self.find_by_id(exercise_id)
        _delete_links(self.session, models.ChildExerciseLink.exercise_id == exercise_id)
        self.session.delete(located.exercise)
        self.session.commit()
        return True

    def validate_answer(self, answer) -> ValidationResult:
        """Locate the answered exercise and let the answer's handler check it."""
        located = self.find_by_id(answer.exercise_id)
        try:
            handler = self.registry.get_handler_for_type(answer.exercise_type)
            return handler.validate_answer(self.session, located.exercise, answer)
        except Exception:
            self.session.rollback()
            logger.exception("answer_validation_failed %s", json.dumps({
                "exercise_id": answer.exercise_id,
                "child_id": answer.child_id,
                "exercise_type": str(answer.exercise_type),
            }))
            raise

    def make_available(self, exercise_id: str, child_id: str) -> models.ChildExerciseLink:
        """Link an exercise to a child; linking twice keeps a single row."""
        located = self.find_by_id(exercise_id)
        if not self.session.get(models.ChildUser, child_id):
            raise NotFoundError("Child user not found")
        link = self.session.get(models.ChildExerciseLink, (child_id, exercise_id))
        if link:
            return link
        link = models.ChildExerciseLink(
            child_id=child_id, exercise_id=exercise_id, exercise_type=located.exercise_type
        )
        self.session.add(link)
        self.session.commit()
        self.session.refresh(link)
        return link

    def find_available_for_child(self, child_id: str) -> List[LocatedExercise]:
        """Exercises linked to a child, in the order they were made available."""
        stmt = (
            select(models.ChildExerciseLink)
            .where(models.ChildExerciseLink.child_id == child_id)
            .order_by(models.ChildExerciseLink.created_at)
        )
        out = []
        for link in self.session.exec(stmt).all():
            handler = self.registry.get_handler_for_type(link.exercise_type)
            exercise = self.session.get(handler.model, link.exercise_id)
            if exercise is not None:
                out.append(self._located(handler, exercise))
        return out

    @staticmethod
    def _located(handler: ExerciseTypeHandler, exercise) -> LocatedExercise:
        return LocatedExercise(
            exercise_type=handler.exercise_type.value,
            exercise=exercise,
            items=handler.present_items(exercise),
        )

    @staticmethod
    def _filter_conditions(model, filters: ExerciseFilter) -> list:
        conditions = []
        if filters.difficulty is not None:
            conditions.append(model.difficulty == filters.difficulty)
        # age ranges overlap the requested [min_age, max_age]
        if filters.max_age is not None:
            conditions.append(model.age_range_min <= filters.max_age)
        if filters.min_age is not None:
            conditions.append(model.age_range_max >= filters.min_age)
        return conditions


def _delete_links(session: Session, condition) -> None:
    for link in session.exec(select(models.ChildExerciseLink).where(condition)).all():
        session.delete(link)
