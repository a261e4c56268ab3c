"""Letter recognition exercises: the child names each shown letter."""

from .. import models
from ..errors import InvalidPayloadError
from ..utils.images import letter_image_url
from .base import ExerciseTypeHandler


class LetterExerciseHandler(ExerciseTypeHandler):
    exercise_type = models.ExerciseType.LETTER
    model = models.LetterExercise
    items_field = "letters"
    position_label = "letter"

    def build_items(self, data):
        return self._letters(data.letters)

    def apply_update(self, exercise, data):
        if data.letters is not None:
            exercise.letters = self._letters(data.letters)

    def expected_value(self, item):
        return item

    def is_correct(self, expected, submitted) -> bool:
        return submitted.lower() == expected.lower()

    def present_item(self, exercise, item):
        return {"letter": item, "imageUrl": letter_image_url(item)}

    def feedback(self, item, correct, submitted, index):
        if correct:
            return f"Correct! The letter at position {index + 1} is {item}"
        return f"Try again! The letter at position {index + 1} should be {item}"

    @staticmethod
    def _letters(values):
        if any(len(value) != 1 for value in values):
            raise InvalidPayloadError("Each letter must be a single character")
        return list(values)
