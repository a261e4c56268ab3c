"""Image URL helpers for exercise items.

Only raw item values are stored; every URL is rebuilt from them on load so
the path layout lives in one place.
"""

from ..config import settings


def _public(kind: str, name: str) -> str:
    return f"{settings.API_BASE_URL.rstrip('/')}/public/{kind}/{name}.png"


def letter_image_url(letter: str) -> str:
    return _public("letters", letter)


def animal_image_url(animal: str) -> str:
    return _public("animals", animal.strip().lower())


def number_image_url(number: int, image_type: str) -> str:
    return _public(f"numbers/{image_type}", str(number))


def fruit_image_url(fruit: str) -> str:
    return _public("colors", fruit)
