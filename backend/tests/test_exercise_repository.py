import pytest

from conftest import base_payload
from lexo import models
from lexo.errors import InvalidPayloadError, NotFoundError, TypeMismatchError, UnknownExerciseTypeError
from lexo.repositories import ExerciseRepository
from lexo.schemas import AgeRangeIn, ExerciseCreateBody, ExerciseFilter, ExerciseUpdate, LetterAnswer, NumberAnswer

KIND_ITEMS = {
    "letter": {"letters": ["A", "b", "C"]},
    "number": {"numbers": [{"number": 0}, {"number": 10, "imageType": "hand"}]},
    "color": {"colorChallenges": [{"fruit": "lemon", "correctColor": "yellow", "wrongColors": ["blue"]}]},
    "animal": {"animals": ["cat", "dog"]},
}

STORED_ITEMS = {
    "letter": ["A", "b", "C"],
    "number": [{"number": 0, "image_type": "regular"}, {"number": 10, "image_type": "hand"}],
    "color": [{"fruit": "lemon", "correct_color": "yellow", "wrong_colors": ["blue"]}],
    "animal": ["cat", "dog"],
}


@pytest.fixture()
def repo(session, registry):
    return ExerciseRepository(session, registry)


def _data(kind, **overrides):
    payload = base_payload(kind, **KIND_ITEMS[kind])
    payload.update(overrides)
    return ExerciseCreateBody.model_validate(payload).root


@pytest.mark.parametrize("kind", ["letter", "number", "color", "animal"])
def test_create_then_load_round_trips_items(repo, registry, session, parent, kind):
    created = repo.create(_data(kind), parent.id)
    handler = registry.get_handler_for_type(kind)

    session.expire_all()
    first = repo.find_by_id(created.exercise.id)
    session.expire_all()
    second = repo.find_by_id(created.exercise.id)

    assert first.exercise_type == kind
    assert isinstance(first.exercise, handler.model)
    assert handler.raw_items(first.exercise) == STORED_ITEMS[kind]
    assert first.items == second.items
    assert all(item["imageUrl"].startswith("http://test.local/public/") for item in first.items)
    assert first.exercise.user_id == parent.id


def test_round_trip_keeps_raw_values(repo, registry):
    located = repo.create(_data("number"))
    loaded = repo.find_by_id(located.exercise.id)
    assert loaded.exercise.numbers == [
        {"number": 0, "image_type": "regular"},
        {"number": 10, "image_type": "hand"},
    ]
    assert loaded.items[1]["imageUrl"] == "http://test.local/public/numbers/hand/10.png"


def test_create_without_known_owner_leaves_owner_empty(repo):
    located = repo.create(_data("animal"), "no-such-user")
    assert located.exercise.user_id is None


def test_find_by_id_missing(repo):
    with pytest.raises(NotFoundError):
        repo.find_by_id("missing")


def test_find_by_owner_concatenates_kinds_in_registry_order(repo, session, parent):
    other = models.User(email="other@example.com", first_name="O", last_name="T")
    session.add(other)
    session.commit()
    repo.create(_data("animal"), parent.id)
    repo.create(_data("letter"), parent.id)
    repo.create(_data("color"), other.id)
    repo.create(_data("letter", title="Second letters"), parent.id)

    mine = repo.find_by_owner(parent.id)

    assert [x.exercise_type for x in mine] == ["letter", "letter", "animal"]
    assert [x.exercise.title for x in mine][:2] == ["Letter practice", "Second letters"]


def test_find_all_filters_by_difficulty_across_kinds(repo):
    for kind in KIND_ITEMS:
        repo.create(_data(kind, difficulty="hard"))
        repo.create(_data(kind, difficulty="easy"))

    result = repo.find_all(ExerciseFilter(difficulty="hard"))

    assert set(result["exercises"]) == {"letter", "number", "color", "animal"}
    found = [x for items in result["exercises"].values() for x in items]
    assert len(found) == 4
    assert all(x.exercise.difficulty == models.Difficulty.HARD for x in found)
    assert result["total"] == sum(len(items) for items in result["exercises"].values())


def test_find_all_age_overlap(repo):
    repo.create(_data("letter", ageRange={"min": 2, "max": 4}, title="Toddlers"))
    repo.create(_data("letter", ageRange={"min": 6, "max": 8}, title="School"))
    repo.create(_data("animal", ageRange={"min": 4, "max": 7}, title="Middle"))

    result = repo.find_all(ExerciseFilter(min_age=5, max_age=6))

    titles = {x.exercise.title for items in result["exercises"].values() for x in items}
    assert titles == {"School", "Middle"}
    assert result["total"] == 2


def test_find_all_paginates_each_kind_separately(repo):
    for i in range(3):
        repo.create(_data("letter", title=f"Letters {i}"))
        repo.create(_data("animal", title=f"Animals {i}"))

    result = repo.find_all(ExerciseFilter(limit=2))

    assert len(result["exercises"]["letter"]) == 2
    assert len(result["exercises"]["animal"]) == 2
    assert result["exercises"]["number"] == []
    # total counts every filtered row, not only the returned page
    assert result["total"] == 6


def test_update_without_type_infers_it(repo):
    located = repo.create(_data("letter"))

    updated = repo.update(located.exercise.id, ExerciseUpdate(
        letters=["Q"], title="Renamed", age_range={"min": 4, "max": 9}, xp=50,
    ))

    assert updated.exercise_type == "letter"
    assert updated.exercise.letters == ["Q"]
    assert updated.exercise.title == "Renamed"
    assert (updated.exercise.age_range_min, updated.exercise.age_range_max) == (4, 9)
    assert repo.find_by_id(located.exercise.id).exercise.xp == 50


def test_update_with_conflicting_type_is_a_mismatch(repo):
    located = repo.create(_data("letter"))
    with pytest.raises(TypeMismatchError):
        repo.update(located.exercise.id, ExerciseUpdate(exercise_type="animal", animals=["cat"]))
    assert repo.find_by_id(located.exercise.id).exercise.letters == ["A", "b", "C"]


def test_update_cannot_invert_age_range(repo):
    located = repo.create(_data("animal", ageRange={"min": 3, "max": 5}))
    # skip schema validation to reach the repository's own check
    data = ExerciseUpdate.model_construct(age_range=AgeRangeIn.model_construct(min=8, max=2))
    with pytest.raises(InvalidPayloadError):
        repo.update(located.exercise.id, data)
    loaded = repo.find_by_id(located.exercise.id).exercise
    assert (loaded.age_range_min, loaded.age_range_max) == (3, 5)


def test_delete_removes_from_every_lookup(repo, child):
    located = repo.create(_data("color"))
    repo.make_available(located.exercise.id, child.id)

    assert repo.delete(located.exercise.id) is True

    with pytest.raises(NotFoundError):
        repo.find_by_id(located.exercise.id)
    with pytest.raises(NotFoundError):
        repo.delete(located.exercise.id)
    assert repo.find_available_for_child(child.id) == []


def test_validate_answer_scenario(repo, session, child):
    located = repo.create(_data("letter", letters=["A", "B", "C"], xp=30))
    exercise_id = located.exercise.id

    hit = repo.validate_answer(LetterAnswer(
        exercise_id=exercise_id, child_id=child.id, exercise_type="letter", item_index=1, answer="b"))
    session.refresh(child)
    assert (hit.correct, hit.gained_xp, hit.expected_answer) == (True, 10, "B")
    assert child.xp == 10

    miss = repo.validate_answer(LetterAnswer(
        exercise_id=exercise_id, child_id=child.id, exercise_type="letter", item_index=5, answer="Z"))
    session.refresh(child)
    assert (miss.correct, miss.gained_xp, miss.feedback) == (False, 0, "Invalid letter position")
    assert child.xp == 10


def test_validate_answer_with_wrong_kind(repo, child):
    located = repo.create(_data("letter"))
    with pytest.raises(TypeMismatchError):
        repo.validate_answer(NumberAnswer(
            exercise_id=located.exercise.id, child_id=child.id, exercise_type="number", item_index=0, answer=1))


def test_validate_answer_unknown_exercise(repo, child):
    with pytest.raises(NotFoundError):
        repo.validate_answer(LetterAnswer(
            exercise_id="nope", child_id=child.id, exercise_type="letter", item_index=0, answer="A"))


def test_make_available_is_idempotent(repo, child):
    letter = repo.create(_data("letter"))
    number = repo.create(_data("number"))
    repo.make_available(number.exercise.id, child.id)
    repo.make_available(letter.exercise.id, child.id)
    repo.make_available(number.exercise.id, child.id)

    available = repo.find_available_for_child(child.id)

    assert sorted(x.exercise_type for x in available) == ["letter", "number"]


def test_create_with_unregistered_type(session, child):
    from lexo.exercises import ExerciseTypeRegistry
    from lexo.exercises.animal import AnimalExerciseHandler

    repo = ExerciseRepository(session, ExerciseTypeRegistry([AnimalExerciseHandler()]))
    with pytest.raises(UnknownExerciseTypeError):
        repo.create(_data("letter"))


def test_get_matches_find_by_id(repo):
    located = repo.create(_data("color"))
    got = repo.get(located.exercise.id)
    assert got.exercise_type == "color"
    assert got.exercise.id == located.exercise.id
    with pytest.raises(NotFoundError):
        repo.get("missing")
