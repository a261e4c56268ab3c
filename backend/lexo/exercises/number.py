"""Number recognition exercises (0 to 10), drawn as digits or as hands."""

from .. import models
from ..errors import InvalidPayloadError
from ..utils.images import number_image_url
from .base import ExerciseTypeHandler


class NumberExerciseHandler(ExerciseTypeHandler):
    exercise_type = models.ExerciseType.NUMBER
    model = models.NumberExercise
    items_field = "numbers"
    position_label = "number"

    def extra_fields(self, data):
        return {"image_type": data.image_type}

    def build_items(self, data):
        return self._numbers(data.numbers, data.image_type)

    def apply_update(self, exercise, data):
        if data.image_type is not None:
            exercise.image_type = data.image_type
        if data.numbers is not None:
            exercise.numbers = self._numbers(data.numbers, exercise.image_type)
        elif data.image_type is not None:
            # a new default style restyles every item
            exercise.numbers = [
                {"number": item["number"], "image_type": models.NumberImageType(data.image_type).value}
                for item in exercise.numbers
            ]

    def expected_value(self, item):
        return item["number"]

    def present_item(self, exercise, item):
        return {
            "number": item["number"],
            "imageType": item["image_type"],
            "imageUrl": number_image_url(item["number"], item["image_type"]),
        }

    def feedback(self, item, correct, submitted, index):
        if correct:
            return f"Correct! This number is {item['number']}"
        return f"Try again! This number is {item['number']}"

    @staticmethod
    def _numbers(values, default_style):
        items = []
        for value in values:
            if not 0 <= value.number <= 10:
                raise InvalidPayloadError("Numbers must be between 0 and 10")
            style = value.image_type or default_style
            items.append({"number": value.number, "image_type": models.NumberImageType(style).value})
        return items
