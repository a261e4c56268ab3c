"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
route handlers and tests. Wire names are camelCase (`exerciseType`,
`ageRange`, `itemIndex`); Python code uses the snake_case attribute names.
"""

from datetime import date
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator
from pydantic.alias_generators import to_camel

from .models import ColorName, Difficulty, ExerciseType, Fruit, NumberImageType

HEX_COLOR = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AgeRangeIn(CamelModel):
    min: int = Field(ge=0, le=18)
    max: int = Field(ge=0, le=18)

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.min > self.max:
            raise ValueError("minimum age must be less than or equal to maximum age")
        return self


class ExerciseBaseIn(CamelModel):
    """Fields every exercise kind carries."""
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    duration_minutes: float = Field(gt=0)
    main_color: str = Field(pattern=HEX_COLOR)
    thumbnail_url: str = Field(pattern=r"^https?://")
    xp: float = Field(ge=0)
    age_range: AgeRangeIn
    difficulty: Difficulty


class NumberItemIn(CamelModel):
    number: int = Field(ge=0, le=10)
    image_type: Optional[NumberImageType] = None


class ColorChallengeIn(CamelModel):
    fruit: Fruit
    correct_color: ColorName
    wrong_colors: List[ColorName] = Field(min_length=1)


class LetterExerciseCreate(ExerciseBaseIn):
    exercise_type: Literal["letter"]
    letters: List[str] = Field(min_length=1)

    @model_validator(mode="after")
    def _single_characters(self):
        if any(len(letter) != 1 for letter in self.letters):
            raise ValueError("each letter must be a single character")
        return self


class NumberExerciseCreate(ExerciseBaseIn):
    exercise_type: Literal["number"]
    image_type: NumberImageType = NumberImageType.REGULAR
    numbers: List[NumberItemIn] = Field(min_length=1)


class ColorExerciseCreate(ExerciseBaseIn):
    exercise_type: Literal["color"]
    color_challenges: List[ColorChallengeIn] = Field(min_length=1)


class AnimalExerciseCreate(ExerciseBaseIn):
    exercise_type: Literal["animal"]
    animals: List[str] = Field(min_length=1)

    @model_validator(mode="after")
    def _non_blank(self):
        if any(not animal.strip() for animal in self.animals):
            raise ValueError("animal names cannot be blank")
        return self


ExerciseCreate = Union[LetterExerciseCreate, NumberExerciseCreate, ColorExerciseCreate, AnimalExerciseCreate]


class ExerciseCreateBody(RootModel[Annotated[ExerciseCreate, Field(discriminator="exercise_type")]]):
    """Request body for creating an exercise of any kind."""


class ExerciseUpdate(CamelModel):
    """Partial update; `exercise_type` may be omitted and is then inferred."""
    exercise_type: Optional[ExerciseType] = None
    title: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    duration_minutes: Optional[float] = Field(default=None, gt=0)
    main_color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    thumbnail_url: Optional[str] = Field(default=None, pattern=r"^https?://")
    xp: Optional[float] = Field(default=None, ge=0)
    age_range: Optional[AgeRangeIn] = None
    difficulty: Optional[Difficulty] = None
    letters: Optional[List[str]] = Field(default=None, min_length=1)
    numbers: Optional[List[NumberItemIn]] = Field(default=None, min_length=1)
    image_type: Optional[NumberImageType] = None
    color_challenges: Optional[List[ColorChallengeIn]] = Field(default=None, min_length=1)
    animals: Optional[List[str]] = Field(default=None, min_length=1)


class ExerciseFilter(CamelModel):
    """Query filters for listing exercises; pagination applies per kind."""
    difficulty: Optional[Difficulty] = None
    min_age: Optional[int] = Field(default=None, ge=0, le=18)
    max_age: Optional[int] = Field(default=None, ge=0, le=18)
    limit: Optional[int] = Field(default=None, gt=0)
    offset: Optional[int] = Field(default=None, ge=0)


class AnswerBase(CamelModel):
    exercise_id: str
    child_id: str
    item_index: int


class LetterAnswer(AnswerBase):
    exercise_type: Literal["letter"]
    answer: str = Field(min_length=1, max_length=1)


class NumberAnswer(AnswerBase):
    exercise_type: Literal["number"]
    answer: int = Field(ge=0, le=10)


class ColorAnswer(AnswerBase):
    exercise_type: Literal["color"]
    answer: ColorName


class AnimalAnswer(AnswerBase):
    exercise_type: Literal["animal"]
    answer: str = Field(min_length=1)


ExerciseAnswer = Union[LetterAnswer, NumberAnswer, ColorAnswer, AnimalAnswer]


class ExerciseAnswerBody(RootModel[Annotated[ExerciseAnswer, Field(discriminator="exercise_type")]]):
    """Request body for validating an answer of any kind."""


class ValidationResult(CamelModel):
    """Outcome of checking one submitted answer."""
    correct: bool
    expected_answer: Optional[Union[int, str]] = None
    feedback: Optional[str] = None
    gained_xp: float = 0.0


class UserCreate(CamelModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=6)


class AdminCreate(UserCreate):
    admin_creation_key: str


class UserUpdate(CamelModel):
    email: Optional[str] = Field(default=None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=6)


class LoginIn(CamelModel):
    email: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class ChildCreate(CamelModel):
    first_name: str = Field(min_length=2, max_length=50)
    username: str = Field(min_length=2, max_length=50)
    birthdate: date
    avatar_url: Optional[str] = None


class ChildUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    username: Optional[str] = Field(default=None, min_length=2, max_length=50)
    birthdate: Optional[date] = None
    avatar_url: Optional[str] = None
