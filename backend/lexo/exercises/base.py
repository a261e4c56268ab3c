"""
Base interface for exercise type handlers.

Every exercise kind (letter, number, color, animal) is implemented by a
handler inheriting from `ExerciseTypeHandler`. The handler owns the
kind-specific parts of an exercise: building a new record from validated
input, replacing its items on update, and checking a child's answer.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List

from sqlmodel import Session

from .. import models
from ..errors import InvalidPayloadError, NotFoundError, TypeMismatchError
from ..schemas import ExerciseBaseIn, ValidationResult

logger = logging.getLogger("lexo.exercises")


class ExerciseTypeHandler(ABC):
    """
    Capability interface shared by all exercise kinds.

    Subclasses set:
    - `exercise_type`: the discriminator they accept
    - `model`: the SQLModel table holding their exercises
    - `items_field`: name of the JSON column with the item sequence
    - `position_label`: word used in the out-of-range feedback
    """

    exercise_type: models.ExerciseType
    model: type
    items_field: str
    position_label: str

    def can_handle(self, exercise_type: str) -> bool:
        """Return True if `exercise_type` is this handler's discriminator."""
        return exercise_type == self.exercise_type

    def create(self, session: Session, data) -> models.ExerciseBase:
        """
        Build a new, not yet persisted exercise from validated input.

        Raises:
            InvalidPayloadError: the payload is for another kind or its items
                violate a rule the schema layer does not check.
        """
        if getattr(data, "exercise_type", None) != self.exercise_type:
            raise InvalidPayloadError(f"Invalid data for {self.exercise_type.value} exercise")
        items = self.build_items(data)
        if not items:
            raise InvalidPayloadError(f"A {self.exercise_type.value} exercise needs at least one item")
        exercise = self.model(**self._base_fields(data), **self.extra_fields(data))
        setattr(exercise, self.items_field, items)
        return exercise

    def update(self, session: Session, exercise: models.ExerciseBase, data) -> models.ExerciseBase:
        """
        Replace kind-specific fields of `exercise` in place.

        Common fields (title, xp, ...) are left to the repository.
        """
        self._ensure_model(exercise)
        declared = getattr(data, "exercise_type", None)
        if declared is not None and declared != self.exercise_type:
            raise TypeMismatchError(
                f"Cannot apply a {declared.value} update to a {self.exercise_type.value} exercise"
            )
        self.apply_update(exercise, data)
        return exercise

    def validate_answer(self, session: Session, exercise: models.ExerciseBase, answer) -> ValidationResult:
        """
        Check a child's answer for one item and credit XP when it is right.

        An index outside the item sequence is a normal failed result, not an
        error. A correct answer adds `round(exercise.xp / item_count, 2)` to
        the child's XP and commits the child.

        Raises:
            TypeMismatchError: the answer or exercise belongs to another kind.
            NotFoundError: the child does not exist.
        """
        if answer.exercise_type != self.exercise_type:
            raise TypeMismatchError(
                f"Answer for a {answer.exercise_type} exercise sent to the {self.exercise_type.value} handler"
            )
        self._ensure_model(exercise)
        child = session.get(models.ChildUser, answer.child_id)
        if not child:
            raise NotFoundError("Child user not found")

        items = self.items_of(exercise)
        index = answer.item_index
        if index < 0 or index >= len(items):
            return ValidationResult(
                correct=False,
                expected_answer=None,
                feedback=f"Invalid {self.position_label} position",
                gained_xp=0,
            )

        expected = self.expected_value(items[index])
        correct = self.is_correct(expected, answer.answer)
        gained_xp = 0.0
        if correct:
            gained_xp = round(exercise.xp / len(items), 2)
            child.xp = round((child.xp or 0) + gained_xp, 2)
            session.add(child)
            session.commit()
            logger.info("xp_credited child=%s exercise=%s gained=%s", child.id, exercise.id, gained_xp)
        return ValidationResult(
            correct=correct,
            expected_answer=expected,
            feedback=self.feedback(items[index], correct, answer.answer, index),
            gained_xp=gained_xp,
        )

    def items_of(self, exercise: models.ExerciseBase) -> List[Any]:
        return list(getattr(exercise, self.items_field) or [])

    def raw_items(self, exercise: models.ExerciseBase) -> List[Any]:
        """Stored item values, without derived display fields."""
        return self.items_of(exercise)

    def present_items(self, exercise: models.ExerciseBase) -> List[dict]:
        """Items as shown to clients, image URLs recomputed."""
        return [self.present_item(exercise, item) for item in self.items_of(exercise)]

    def extra_fields(self, data) -> dict:
        """Kind-specific scalar columns to set on creation."""
        return {}

    def is_correct(self, expected, submitted) -> bool:
        return submitted == expected

    @abstractmethod
    def build_items(self, data) -> List[Any]:
        """Return the raw item sequence to store for a create payload."""

    @abstractmethod
    def apply_update(self, exercise: models.ExerciseBase, data) -> None:
        """Replace the kind-specific fields present in `data`."""

    @abstractmethod
    def expected_value(self, item):
        """The value a correct answer must match."""

    @abstractmethod
    def present_item(self, exercise: models.ExerciseBase, item) -> dict:
        pass

    @abstractmethod
    def feedback(self, item, correct: bool, submitted, index: int) -> str:
        pass

    def _ensure_model(self, exercise) -> None:
        if not isinstance(exercise, self.model):
            raise TypeMismatchError(f"Exercise is not a {self.exercise_type.value} exercise")

    @staticmethod
    def _base_fields(data: ExerciseBaseIn) -> dict:
        return {
            "title": data.title,
            "description": data.description,
            "duration_minutes": data.duration_minutes,
            "main_color": data.main_color,
            "thumbnail_url": data.thumbnail_url,
            "xp": data.xp,
            "age_range_min": data.age_range.min,
            "age_range_max": data.age_range.max,
            "difficulty": data.difficulty,
        }
