"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories and
auxiliary logic. Services are intentionally thin: they perform ownership
checks, execute domain logic and persist aggregates via repositories.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .errors import ConflictError, ForbiddenError, NotFoundError
from .exercises.registry import ExerciseTypeRegistry
from .repositories import LocatedExercise
from .schemas import AdminCreate, ChildCreate, ChildUpdate, ExerciseUpdate, UserCreate, UserUpdate

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, data: UserCreate, is_admin: bool = False) -> models.User:
        """Create a new user with a hashed password.

        Raises `ConflictError` when the email is already taken.
        """
        email = data.email.strip().lower()
        if self.user_repo.get_by_email(email):
            raise ConflictError("A user with this email already exists")
        u = models.User(
            email=email,
            first_name=data.first_name,
            last_name=data.last_name,
            password_hash=PWD_CTX.hash(data.password),
            is_admin=is_admin,
        )
        return self.user_repo.create(u)

    def register_admin(self, data: AdminCreate) -> models.User:
        """Create an admin account; requires the configured creation key."""
        if not settings.ADMIN_CREATION_KEY or data.admin_creation_key != settings.ADMIN_CREATION_KEY:
            raise ForbiddenError("Invalid admin creation key")
        return self.register(data, is_admin=True)

    def authenticate(self, email: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_email(email.strip())
        if not user or not user.password_hash:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        return create_token(user)


def create_token(user: models.User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
    payload = {"user_id": user.id, "email": user.email, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class UserService:
    """Account management: a user may manage itself, an admin anyone."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def _target(self, actor: models.User, user_id: str) -> models.User:
        if user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("Only an admin can manage other users")
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def list(self, actor: models.User) -> List[models.User]:
        if not actor.is_admin:
            raise ForbiddenError("Only an admin can list users")
        return self.user_repo.list()

    def update(self, actor: models.User, user_id: str, data: UserUpdate) -> models.User:
        """Apply the given fields; a new password is hashed, a new email must be free."""
        user = self._target(actor, user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            email = changes.pop("email").strip().lower()
            existing = self.user_repo.get_by_email(email)
            if existing and existing.id != user.id:
                raise ConflictError("A user with this email already exists")
            user.email = email
        if "password" in changes:
            user.password_hash = PWD_CTX.hash(changes.pop("password"))
        for field, value in changes.items():
            setattr(user, field, value)
        return self.user_repo.save(user)

    def delete(self, actor: models.User, user_id: str) -> None:
        self.user_repo.delete(self._target(actor, user_id))


class ChildService:
    """Manage the child profiles of a parent account."""
    def __init__(self, session: Session):
        self.session = session
        self.child_repo = repositories.ChildUserRepository(session)

    def create(self, parent: models.User, data: ChildCreate) -> models.ChildUser:
        child = models.ChildUser(
            first_name=data.first_name,
            username=data.username,
            birthdate=data.birthdate,
            avatar_url=data.avatar_url,
            parent_id=parent.id,
        )
        return self.child_repo.create(child)

    def list(self, parent: models.User) -> List[models.ChildUser]:
        return self.child_repo.list_for_parent(parent.id)

    def get(self, user: models.User, child_id: str) -> models.ChildUser:
        """Return a child visible to `user` (its parent or an admin)."""
        child = self.child_repo.get(child_id)
        if not child:
            raise NotFoundError("Child user not found")
        if child.parent_id != user.id and not user.is_admin:
            raise ForbiddenError()
        return child

    def update(self, user: models.User, child_id: str, data: ChildUpdate) -> models.ChildUser:
        child = self.get(user, child_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(child, field, value)
        return self.child_repo.save(child)

    def delete(self, user: models.User, child_id: str) -> None:
        child = self.get(user, child_id)
        self.child_repo.delete(child)


class ExerciseService:
    """Exercise operations with the owner-or-admin rule applied."""
    def __init__(self, session: Session, registry: ExerciseTypeRegistry):
        self.session = session
        self.exercise_repo = repositories.ExerciseRepository(session, registry)
        self.child_service = ChildService(session)

    @staticmethod
    def can_modify(located: LocatedExercise, user: models.User) -> bool:
        return user.is_admin or (located.exercise.user_id is not None and located.exercise.user_id == user.id)

    def _require_modify(self, exercise_id: str, user: models.User) -> LocatedExercise:
        located = self.exercise_repo.find_by_id(exercise_id)
        if not self.can_modify(located, user):
            raise ForbiddenError("Only the owner or an admin can change this exercise")
        return located

    def create(self, data, user: models.User) -> LocatedExercise:
        return self.exercise_repo.create(data, user.id)

    def update(self, exercise_id: str, data: ExerciseUpdate, user: models.User) -> LocatedExercise:
        self._require_modify(exercise_id, user)
        return self.exercise_repo.update(exercise_id, data)

    def delete(self, exercise_id: str, user: models.User) -> bool:
        self._require_modify(exercise_id, user)
        return self.exercise_repo.delete(exercise_id)

    def make_available(self, exercise_id: str, child_id: str, user: models.User) -> models.ChildExerciseLink:
        """Link an exercise to one of the caller's children."""
        self.child_service.get(user, child_id)
        return self.exercise_repo.make_available(exercise_id, child_id)

    def available_for_child(self, child_id: str, user: models.User) -> List[LocatedExercise]:
        self.child_service.get(user, child_id)
        return self.exercise_repo.find_available_for_child(child_id)
