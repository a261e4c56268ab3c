"""Exercise handler registry and base interface."""

from .base import ExerciseTypeHandler
from .registry import ExerciseTypeRegistry, build_registry

__all__ = ['ExerciseTypeHandler', 'ExerciseTypeRegistry', 'build_registry']
