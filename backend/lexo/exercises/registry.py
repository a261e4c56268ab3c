"""
Exercise type registry - maps discriminators to their handlers.

The registry is built once at startup by `build_registry()` and handed to
request handlers explicitly (the FastAPI app keeps it on `app.state`).
New exercise kinds are added by:
1. Writing an `ExerciseTypeHandler` subclass with its own table model
2. Registering an instance in `build_registry()`
"""

from typing import List

from ..errors import UnknownExerciseTypeError
from .animal import AnimalExerciseHandler
from .base import ExerciseTypeHandler
from .color import ColorExerciseHandler
from .letter import LetterExerciseHandler
from .number import NumberExerciseHandler


class ExerciseTypeRegistry:
    """Ordered collection of exercise handlers."""

    def __init__(self, handlers=None):
        self._handlers: List[ExerciseTypeHandler] = []
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: ExerciseTypeHandler) -> None:
        """Append `handler`; a second handler for the same discriminator is rejected."""
        if any(existing.can_handle(handler.exercise_type) for existing in self._handlers):
            raise ValueError(f"exercise type already registered: {handler.exercise_type.value}")
        self._handlers.append(handler)

    def get_handler_for_type(self, exercise_type: str) -> ExerciseTypeHandler:
        """
        Return the first handler accepting `exercise_type`.

        Raises:
            UnknownExerciseTypeError: no handler accepts it.
        """
        for handler in self._handlers:
            if handler.can_handle(exercise_type):
                return handler
        raise UnknownExerciseTypeError(f"No handler registered for exercise type: {exercise_type}")

    @property
    def handlers(self) -> List[ExerciseTypeHandler]:
        return list(self._handlers)

    @property
    def types(self) -> List[str]:
        return [handler.exercise_type.value for handler in self._handlers]


def build_registry() -> ExerciseTypeRegistry:
    """Registry with every built-in exercise kind, in lookup order."""
    return ExerciseTypeRegistry([
        LetterExerciseHandler(),
        NumberExerciseHandler(),
        ColorExerciseHandler(),
        AnimalExerciseHandler(),
    ])
