"""Color exercises: pick the color of a fruit among distractors."""

from .. import models
from ..errors import InvalidPayloadError
from ..utils.images import fruit_image_url
from .base import ExerciseTypeHandler


class ColorExerciseHandler(ExerciseTypeHandler):
    exercise_type = models.ExerciseType.COLOR
    model = models.ColorExercise
    items_field = "color_challenges"
    position_label = "color"

    def build_items(self, data):
        return self._challenges(data.color_challenges)

    def apply_update(self, exercise, data):
        if data.color_challenges is not None:
            exercise.color_challenges = self._challenges(data.color_challenges)

    def expected_value(self, item):
        return item["correct_color"]

    def is_correct(self, expected, submitted) -> bool:
        return models.ColorName(submitted).value == expected

    def present_item(self, exercise, item):
        return {
            "fruit": item["fruit"],
            "correctColor": item["correct_color"],
            "wrongColors": list(item["wrong_colors"]),
            "imageUrl": fruit_image_url(item["fruit"]),
        }

    def feedback(self, item, correct, submitted, index):
        if correct:
            return f"Correct! The {item['fruit']} is {item['correct_color']}."
        return f"Incorrect. The {item['fruit']} is {item['correct_color']}, not {models.ColorName(submitted).value}."

    @staticmethod
    def _challenges(values):
        challenges = []
        for challenge in values:
            correct = models.ColorName(challenge.correct_color).value
            wrong = [models.ColorName(color).value for color in challenge.wrong_colors]
            if correct in wrong:
                raise InvalidPayloadError("A wrong color cannot be the correct color")
            if len(set(wrong)) != len(wrong):
                raise InvalidPayloadError("Wrong colors must be distinct")
            challenges.append({
                "fruit": models.Fruit(challenge.fruit).value,
                "correct_color": correct,
                "wrong_colors": wrong,
            })
        return challenges
