"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the Lexo backend. Controllers
are intentionally thin: they accept validated requests, delegate to
services and repositories, and return JSON responses.

Endpoints implemented:
- GET /health
- POST /users, POST /users/admin, POST /users/login
- GET /users/me, DELETE /users/me
- GET /users, PATCH /users/{id}, DELETE /users/{id}
- GET /exercises, GET /exercises/{id}, POST /exercises/validate
- GET /exercises/my/all, POST /exercises
- PATCH /exercises/{id}, DELETE /exercises/{id}
- POST /exercises/{id}/children/{child_id}
- GET /children, POST /children
- GET|PATCH|DELETE /children/{id}, GET /children/{id}/exercises
"""

import json
import logging
import os
import time
import uuid
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlmodel import Session

from . import models, repositories, services
from .auth import get_current_user
from .config import settings
from .database import create_db_and_tables, get_session
from .errors import LexoError
from .exercises.registry import ExerciseTypeRegistry, build_registry
from .repositories import LocatedExercise
from .schemas import (
    AdminCreate,
    ChildCreate,
    ChildUpdate,
    ExerciseAnswerBody,
    ExerciseCreateBody,
    ExerciseFilter,
    ExerciseUpdate,
    LoginIn,
    UserCreate,
    UserUpdate,
)

app = FastAPI(title="Lexo API")
logger = logging.getLogger("lexo.api")
if not logger.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

app.state.registry = build_registry()

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


def get_registry(request: Request) -> ExerciseTypeRegistry:
    """Dependency returning the registry built at startup."""
    return request.app.state.registry


def _http_error(e: LexoError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


def _user_out(user: models.User) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'isAdmin': user.is_admin,
        'emailVerified': user.email_verified,
        'createdAt': user.created_at.isoformat(),
    }


def _child_out(child: models.ChildUser) -> dict:
    return {
        'id': child.id,
        'firstName': child.first_name,
        'username': child.username,
        'birthdate': child.birthdate.isoformat(),
        'xp': child.xp,
        'gems': child.gems,
        'avatarUrl': child.avatar_url,
        'parentId': child.parent_id,
    }


def _exercise_out(located: LocatedExercise) -> dict:
    e = located.exercise
    out = {
        'id': e.id,
        'exerciseType': located.exercise_type,
        'ownerId': e.user_id,
        'title': e.title,
        'description': e.description,
        'durationMinutes': e.duration_minutes,
        'mainColor': e.main_color,
        'thumbnailUrl': e.thumbnail_url,
        'xp': e.xp,
        'ageRange': {'min': e.age_range_min, 'max': e.age_range_max},
        'difficulty': models.Difficulty(e.difficulty).value,
        'createdAt': e.created_at.isoformat(),
        'updatedAt': e.updated_at.isoformat(),
        'items': located.items,
    }
    if located.exercise_type == models.ExerciseType.NUMBER.value:
        out['imageType'] = models.NumberImageType(e.image_type).value
    return out


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


@app.post('/users', status_code=201)
def register(payload: UserCreate, db: Session = Depends(get_session)):
    """Register a parent account and return it with an access token."""
    try:
        user = services.AuthService(db).register(payload)
    except LexoError as e:
        raise _http_error(e)
    return {'user': _user_out(user), 'access_token': services.create_token(user)}


@app.post('/users/admin', status_code=201)
def register_admin(payload: AdminCreate, db: Session = Depends(get_session)):
    """Register an admin account; requires `ADMIN_CREATION_KEY`."""
    try:
        user = services.AuthService(db).register_admin(payload)
    except LexoError as e:
        raise _http_error(e)
    return {'user': _user_out(user), 'access_token': services.create_token(user)}


@app.post('/users/login')
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a signed JWT token."""
    token = services.AuthService(db).authenticate(payload.email, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.get('/users/me')
def me(user: models.User = Depends(get_current_user)):
    return _user_out(user)


@app.delete('/users/me')
def delete_me(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Delete the caller's account together with its children."""
    repositories.UserRepository(db).delete(user)
    return {'status': 'ok'}


@app.get('/users')
def list_users(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List every account (admin only)."""
    try:
        users = services.UserService(db).list(user)
    except LexoError as e:
        raise _http_error(e)
    return [_user_out(u) for u in users]


@app.patch('/users/{user_id}')
def update_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Update an account; users may update themselves, admins anyone."""
    try:
        updated = services.UserService(db).update(user, user_id, payload)
    except LexoError as e:
        raise _http_error(e)
    return {'user': _user_out(updated), 'access_token': services.create_token(updated)}


@app.delete('/users/{user_id}')
def delete_user(user_id: str, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    try:
        services.UserService(db).delete(user, user_id)
    except LexoError as e:
        raise _http_error(e)
    return {'status': 'ok'}


@app.get('/exercises')
def list_exercises(
    difficulty: Optional[models.Difficulty] = None,
    min_age: Optional[int] = Query(default=None, alias='minAge', ge=0, le=18),
    max_age: Optional[int] = Query(default=None, alias='maxAge', ge=0, le=18),
    limit: Optional[int] = Query(default=None, gt=0),
    offset: Optional[int] = Query(default=None, ge=0),
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
):
    """List exercises grouped by kind.

    Filters apply to every kind; `limit`/`offset` paginate each kind
    separately and `total` sums the per-kind counts.
    """
    filters = ExerciseFilter(difficulty=difficulty, min_age=min_age, max_age=max_age, limit=limit, offset=offset)
    result = repositories.ExerciseRepository(db, registry).find_all(filters)
    return {
        'exercises': {kind: [_exercise_out(x) for x in items] for kind, items in result['exercises'].items()},
        'total': result['total'],
        'filters': filters.model_dump(by_alias=True, exclude_none=True, mode='json'),
    }


@app.get('/exercises/my/all')
def my_exercises(
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
    user: models.User = Depends(get_current_user),
):
    """Return every exercise created by the authenticated user."""
    return [_exercise_out(x) for x in repositories.ExerciseRepository(db, registry).find_by_owner(user.id)]


@app.post('/exercises/validate')
def validate_answer(
    payload: ExerciseAnswerBody,
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
):
    """Check a child's answer for one exercise item and credit XP."""
    try:
        result = repositories.ExerciseRepository(db, registry).validate_answer(payload.root)
    except LexoError as e:
        raise _http_error(e)
    return result.model_dump(by_alias=True)


@app.get('/exercises/{exercise_id}')
def get_exercise(
    exercise_id: str,
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
):
    try:
        located = repositories.ExerciseRepository(db, registry).find_by_id(exercise_id)
    except LexoError as e:
        raise _http_error(e)
    return _exercise_out(located)


@app.post('/exercises', status_code=201)
def create_exercise(
    payload: ExerciseCreateBody,
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
    user: models.User = Depends(get_current_user),
):
    """Create an exercise of the kind named by `exerciseType`."""
    try:
        located = services.ExerciseService(db, registry).create(payload.root, user)
    except LexoError as e:
        raise _http_error(e)
    return _exercise_out(located)


@app.patch('/exercises/{exercise_id}')
def update_exercise(
    exercise_id: str,
    payload: ExerciseUpdate,
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
    user: models.User = Depends(get_current_user),
):
    """Update an exercise; only its owner or an admin may do so.

    `exerciseType` is optional: the kind the exercise is stored as is used
    when it is left out.
    """
    try:
        located = services.ExerciseService(db, registry).update(exercise_id, payload, user)
    except LexoError as e:
        raise _http_error(e)
    return _exercise_out(located)


@app.delete('/exercises/{exercise_id}')
def delete_exercise(
    exercise_id: str,
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
    user: models.User = Depends(get_current_user),
):
    try:
        services.ExerciseService(db, registry).delete(exercise_id, user)
    except LexoError as e:
        raise _http_error(e)
    return {'status': 'ok'}


@app.post('/exercises/{exercise_id}/children/{child_id}')
def make_exercise_available(
    exercise_id: str,
    child_id: str,
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
    user: models.User = Depends(get_current_user),
):
    """Make an exercise available to one of the caller's children."""
    try:
        link = services.ExerciseService(db, registry).make_available(exercise_id, child_id, user)
    except LexoError as e:
        raise _http_error(e)
    return {'childId': link.child_id, 'exerciseId': link.exercise_id, 'exerciseType': models.ExerciseType(link.exercise_type).value}


@app.get('/children')
def list_children(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return [_child_out(c) for c in services.ChildService(db).list(user)]


@app.post('/children', status_code=201)
def create_child(payload: ChildCreate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Create a child profile under the authenticated parent."""
    return _child_out(services.ChildService(db).create(user, payload))


@app.get('/children/{child_id}')
def get_child(child_id: str, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    try:
        child = services.ChildService(db).get(user, child_id)
    except LexoError as e:
        raise _http_error(e)
    return _child_out(child)


@app.patch('/children/{child_id}')
def update_child(
    child_id: str,
    payload: ChildUpdate,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    try:
        child = services.ChildService(db).update(user, child_id, payload)
    except LexoError as e:
        raise _http_error(e)
    return _child_out(child)


@app.delete('/children/{child_id}')
def delete_child(child_id: str, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    try:
        services.ChildService(db).delete(user, child_id)
    except LexoError as e:
        raise _http_error(e)
    return {'status': 'ok'}


@app.get('/children/{child_id}/exercises')
def child_exercises(
    child_id: str,
    db: Session = Depends(get_session),
    registry: ExerciseTypeRegistry = Depends(get_registry),
    user: models.User = Depends(get_current_user),
):
    """Exercises made available to a child."""
    try:
        located = services.ExerciseService(db, registry).available_for_child(child_id, user)
    except LexoError as e:
        raise _http_error(e)
    return [_exercise_out(x) for x in located]
