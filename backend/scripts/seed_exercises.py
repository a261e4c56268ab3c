"""CLI script to load exercises from a JSON file into the backend DB.
Usage: python scripts/seed_exercises.py FILE [--owner EMAIL] [--dry-run]

FILE holds a list of exercise payloads in the same camelCase shape the
`POST /exercises` endpoint accepts.
"""
import sys
import argparse
import json
import pathlib
from typing import Optional
# Ensure `backend/` is on sys.path so `lexo` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from pydantic import ValidationError
from sqlmodel import Session
from lexo.database import engine, create_db_and_tables
from lexo import repositories
from lexo.errors import LexoError
from lexo.exercises import build_registry
from lexo.schemas import ExerciseCreateBody


def main(path: pathlib.Path, owner: Optional[str] = None, dry_run: bool = False):
    """Validate every payload in `path` and create the valid ones.

    Invalid payloads are reported and skipped. Results are printed to
    stdout for a quick CLI feedback loop.
    """
    items = json.loads(path.read_text(encoding='utf-8'))
    if not isinstance(items, list):
        print(f'{path} must contain a JSON list of exercises')
        return
    create_db_and_tables()
    registry = build_registry()
    with Session(engine) as session:
        owner_id = None
        if owner:
            user = repositories.UserRepository(session).get_by_email(owner)
            if not user:
                print(f'Owner not found: {owner}')
                return
            owner_id = user.id
        repo = repositories.ExerciseRepository(session, registry)
        created = 0
        for idx, item in enumerate(items):
            try:
                data = ExerciseCreateBody.model_validate(item).root
                if dry_run:
                    print(f'[{idx}] ok: {data.exercise_type} "{data.title}"')
                    continue
                located = repo.create(data, owner_id)
                created += 1
                print(f'[{idx}] created {located.exercise_type} exercise {located.exercise.id}')
            except (ValidationError, LexoError) as e:
                print(f'[{idx}] skipped: {e}')
        print(f'Total created exercises: {created} of {len(items)}')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('file', type=pathlib.Path, help='JSON file with a list of exercise payloads')
    parser.add_argument('--owner', help='Email of the user owning the created exercises')
    parser.add_argument('--dry-run', action='store_true', help='Only validate the payloads')
    args = parser.parse_args()
    main(args.file, owner=args.owner, dry_run=args.dry_run)
