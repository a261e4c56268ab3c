"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Exercise kinds share the `ExerciseBase` columns but each kind lives in its
own table; the base is never persisted on its own. Item sequences are
stored as JSON holding only raw values (letter, number, fruit/color,
species); image URLs are derived on load, see `lexo.utils.images`.
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field, Relationship


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ExerciseType(str, Enum):
    """Wire discriminator identifying an exercise's concrete kind."""
    LETTER = "letter"
    NUMBER = "number"
    COLOR = "color"
    ANIMAL = "animal"


class NumberImageType(str, Enum):
    REGULAR = "regular"
    HAND = "hand"


class Fruit(str, Enum):
    APPLE = "apple"
    BANANA = "banana"
    CHERRY = "cherry"
    GRAPE = "grape"
    LEMON = "lemon"
    ORANGE = "orange"
    PEAR = "pear"
    STRAWBERRY = "strawberry"
    BLUEBERRY = "blueberry"
    WATERMELON = "watermelon"


class ColorName(str, Enum):
    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    PINK = "pink"
    BROWN = "brown"
    BLACK = "black"
    WHITE = "white"


class User(SQLModel, table=True):
    """A parent (or admin) account.

    Fields:
    - `email`: unique login name
    - `password_hash`: passlib hash, salt included (never returned)
    - `google_id`: optional external identity, unique when present
    """
    id: str = Field(default_factory=_uuid, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    first_name: str
    last_name: str
    google_id: Optional[str] = Field(default=None, unique=True)
    email_verified: bool = False
    is_admin: bool = False
    password_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    children: List["ChildUser"] = Relationship(
        back_populates="parent",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class ChildUser(SQLModel, table=True):
    """A child profile; always belongs to exactly one parent `User`."""
    id: str = Field(default_factory=_uuid, primary_key=True)
    first_name: str
    username: str
    birthdate: date
    xp: float = 0.0
    gems: int = 0
    avatar_url: Optional[str] = None
    parent_id: str = Field(foreign_key="user.id", nullable=False, index=True)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    parent: Optional[User] = Relationship(back_populates="children")


class ChildExerciseLink(SQLModel, table=True):
    """Availability of an exercise to a child.

    Exercises of different kinds live in different tables, so the link keeps
    the discriminator next to the exercise id instead of a foreign key.
    """
    child_id: str = Field(foreign_key="childuser.id", primary_key=True)
    exercise_id: str = Field(primary_key=True)
    exercise_type: ExerciseType
    created_at: datetime = Field(default_factory=_now)


class ExerciseBase(SQLModel):
    """Columns shared by every exercise kind."""
    id: str = Field(default_factory=_uuid, primary_key=True)
    user_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)
    title: str
    description: str
    duration_minutes: float
    main_color: str
    thumbnail_url: str
    xp: float = 0.0
    age_range_min: int
    age_range_max: int
    difficulty: Difficulty = Field(index=True)
    created_at: datetime = Field(default_factory=_now, index=True)
    updated_at: datetime = Field(default_factory=_now)


class LetterExercise(ExerciseBase, table=True):
    letters: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class NumberExercise(ExerciseBase, table=True):
    """Numbers 0-10; each item is `{"number": int, "image_type": str}`."""
    image_type: NumberImageType = NumberImageType.REGULAR
    numbers: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class ColorExercise(ExerciseBase, table=True):
    """Each challenge is `{"fruit", "correct_color", "wrong_colors"}`."""
    color_challenges: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class AnimalExercise(ExerciseBase, table=True):
    animals: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


# Tables that carry an owner `user_id`.
EXERCISE_MODELS = (LetterExercise, NumberExercise, ColorExercise, AnimalExercise)
