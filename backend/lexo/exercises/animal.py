"""Animal naming exercises."""

from .. import models
from ..errors import InvalidPayloadError
from ..utils.images import animal_image_url
from .base import ExerciseTypeHandler


class AnimalExerciseHandler(ExerciseTypeHandler):
    exercise_type = models.ExerciseType.ANIMAL
    model = models.AnimalExercise
    items_field = "animals"
    position_label = "animal"

    def build_items(self, data):
        return self._animals(data.animals)

    def apply_update(self, exercise, data):
        if data.animals is not None:
            exercise.animals = self._animals(data.animals)

    def expected_value(self, item):
        return item

    def is_correct(self, expected, submitted) -> bool:
        return submitted.strip().lower() == expected.lower()

    def present_item(self, exercise, item):
        return {"animal": item, "imageUrl": animal_image_url(item)}

    def feedback(self, item, correct, submitted, index):
        if correct:
            return f"Correct! This is a {item}"
        return f"Not quite, this is a {item}"

    @staticmethod
    def _animals(values):
        animals = [value.strip() for value in values]
        if any(not animal for animal in animals):
            raise InvalidPayloadError("Animal names cannot be blank")
        return animals
