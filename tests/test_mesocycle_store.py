"""
Tests for the JSON mesocycle store.

Covers atomic iteration creation, iteration gating, per-user lookups and
the status changes driven by completing workouts and rest days.
"""

import json
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from meso_scheduler.core.errors import IterationGateError, NotFoundError
from meso_scheduler.io.mesocycle_store import MesocycleStore
from meso_scheduler.io.serializers import ValidationError


class _Clock:
    """Controllable time source."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def temp_store_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock():
    return _Clock(datetime(2026, 2, 2, 18, 0))


@pytest.fixture
def store(temp_store_dir, clock):
    """Initialized store with two exercises and a Push/Rest plan."""
    s = MesocycleStore(temp_store_dir / "store.json", clock=clock)
    s.init()
    bench = s.add_exercise("Bench Press", "chest")
    row = s.add_exercise("Barbell Row", "back")
    s.add_plan("Push/Rest", [(False, "Push", [bench.id, row.id]), (True, None, [])])
    return s


def _new_mesocycle(store: MesocycleStore, iterations: int = 3, user: str = "local"):
    plan = store.list_plans()[0]
    meso = store.create_mesocycle("Block A", plan.id, iterations, user_id=user)
    return plan, meso


def _finish_iteration(store: MesocycleStore, clock: _Clock, mesocycle_id: int, iteration: int) -> None:
    """Train and complete every day of one iteration."""
    instance = store.get_mesocycle(mesocycle_id).get_instance(iteration)
    for day in instance.days:
        clock.advance(days=1)
        if day.is_rest_day:
            store.complete_rest_day(day.id)
        else:
            workout = store.start_workout(day.id)
            store.log_set(workout.id, 1, 100, 10)
            store.complete_workout(workout.id)


class TestStoreFile:

    def test_init_creates_empty_document(self, temp_store_dir):
        s = MesocycleStore(temp_store_dir / "nested" / "store.json")
        assert not s.exists()
        s.init()
        assert s.exists()
        assert s.list_exercises() == []
        assert s.list_mesocycles() == []

    def test_missing_store_raises(self, temp_store_dir):
        s = MesocycleStore(temp_store_dir / "missing.json")
        with pytest.raises(FileNotFoundError):
            s.load()

    def test_corrupt_store_raises_validation_error(self, temp_store_dir):
        path = temp_store_dir / "store.json"
        path.write_text("{not json")
        with pytest.raises(ValidationError):
            MesocycleStore(path).load()

    def test_no_temporary_files_left(self, store, temp_store_dir):
        _new_mesocycle(store)
        assert [p.name for p in temp_store_dir.iterdir()] == ["store.json"]

    def test_categories_stored_upper_case(self, store):
        assert [e.category for e in store.list_exercises()] == ["CHEST", "BACK"]

    def test_plan_round_trips(self, store):
        plan = store.list_plans()[0]
        assert [d.day_number for d in plan.days] == [1, 2]
        assert plan.days[0].workout.ordered_exercise_ids == [1, 2]
        assert plan.days[1].is_rest_day and plan.days[1].workout is None

    def test_plan_with_unknown_exercise_rejected(self, store):
        with pytest.raises(NotFoundError):
            store.add_plan("Broken", [(False, "Legs", [42])])
        assert len(store.list_plans()) == 1


class TestIterationCreation:

    def test_create_materializes_every_plan_day(self, store):
        plan, meso = _new_mesocycle(store, iterations=3)
        instance = store.create_iteration_atomic(plan, meso.id, 1)

        assert instance.iteration_number == 1
        assert instance.status == "NOT_STARTED"
        assert instance.rir == 2
        assert [d.day_number for d in instance.days] == [1, 2]

        stored = store.get_mesocycle(meso.id).get_instance(1)
        assert [d.id for d in stored.days] == [d.id for d in instance.days]

    def test_gated_creation_leaves_store_untouched(self, store, temp_store_dir):
        plan, meso = _new_mesocycle(store)
        store.create_iteration_atomic(plan, meso.id, 1)
        before = (temp_store_dir / "store.json").read_bytes()

        with pytest.raises(IterationGateError):
            store.create_iteration_atomic(plan, meso.id, 2)

        assert (temp_store_dir / "store.json").read_bytes() == before
        assert len(store.get_mesocycle(meso.id).instances) == 1

    def test_create_mesocycle_with_first_iteration_in_one_save(self, store, monkeypatch):
        saves = []
        original_save = store.save

        def counting_save(data):
            saves.append(data)
            original_save(data)

        monkeypatch.setattr(store, "save", counting_save)
        plan = store.list_plans()[0]

        meso = store.create_mesocycle("Block A", plan.id, 3, with_first_iteration=True, max_rir=2)

        assert len(saves) == 1
        stored = store.get_mesocycle(meso.id)
        assert [i.iteration_number for i in stored.instances] == [1]
        assert stored.get_instance(1).rir == 2
        assert [d.day_number for d in stored.get_instance(1).days] == [1, 2]

    def test_iteration_numbers_cannot_skip(self, store):
        plan, meso = _new_mesocycle(store)
        with pytest.raises(IterationGateError):
            store.create_iteration_atomic(plan, meso.id, 2)

    def test_plan_must_belong_to_mesocycle(self, store):
        _, meso = _new_mesocycle(store)
        other = store.add_plan("Other", [(True, None, [])])
        with pytest.raises(ValidationError):
            store.create_iteration_atomic(other, meso.id, 1)

    def test_next_iteration_after_completion(self, store, clock):
        plan, meso = _new_mesocycle(store, iterations=2)
        store.create_next_iteration(meso.id)
        _finish_iteration(store, clock, meso.id, 1)

        second = store.create_next_iteration(meso.id)
        assert second.iteration_number == 2
        assert second.rir == 0
        with pytest.raises(IterationGateError):
            store.create_next_iteration(meso.id)


class TestOwnership:

    def test_other_users_mesocycle_not_found(self, store):
        plan, meso = _new_mesocycle(store, user="alice")

        assert store.get_mesocycle(meso.id, user_id="alice").id == meso.id
        with pytest.raises(NotFoundError):
            store.get_mesocycle(meso.id, user_id="bob")
        with pytest.raises(NotFoundError):
            store.create_iteration_atomic(plan, meso.id, 1, user_id="bob")
        assert store.list_mesocycles(user_id="bob") == []

    def test_missing_mesocycle(self, store):
        with pytest.raises(NotFoundError):
            store.get_mesocycle(99)

    def test_other_users_day_not_found(self, store):
        _, meso = _new_mesocycle(store, user="alice")
        instance = store.create_next_iteration(meso.id, user_id="alice")
        with pytest.raises(NotFoundError):
            store.start_workout(instance.days[0].id, user_id="bob")


class TestTrainingFlow:

    def test_first_workout_starts_iteration_and_mesocycle(self, store, clock):
        _, meso = _new_mesocycle(store)
        instance = store.create_next_iteration(meso.id)

        workout = store.start_workout(instance.days[0].id)

        stored = store.get_mesocycle(meso.id)
        assert stored.status == "IN_PROGRESS"
        assert stored.get_instance(1).status == "IN_PROGRESS"
        assert workout.started_at == clock.now
        assert store.start_workout(instance.days[0].id).id == workout.id

    def test_set_numbers_count_per_exercise(self, store):
        _, meso = _new_mesocycle(store)
        instance = store.create_next_iteration(meso.id)
        workout = store.start_workout(instance.days[0].id)

        first = store.log_set(workout.id, 1, 100, 10)
        second = store.log_set(workout.id, 1, 100, 8)
        other = store.log_set(workout.id, 2, 60, 12)

        assert (first.set_number, second.set_number, other.set_number) == (1, 2, 1)

    def test_unknown_exercise_rejected(self, store):
        _, meso = _new_mesocycle(store)
        instance = store.create_next_iteration(meso.id)
        workout = store.start_workout(instance.days[0].id)
        with pytest.raises(NotFoundError):
            store.log_set(workout.id, 42, 10, 10)

    def test_rest_day_has_no_workout(self, store):
        _, meso = _new_mesocycle(store)
        instance = store.create_next_iteration(meso.id)
        with pytest.raises(ValidationError):
            store.start_workout(instance.days[1].id)

    def test_workout_day_is_not_a_rest_day(self, store):
        _, meso = _new_mesocycle(store)
        instance = store.create_next_iteration(meso.id)
        with pytest.raises(ValidationError):
            store.complete_rest_day(instance.days[0].id)

    def test_completing_all_days_completes_iteration(self, store, clock):
        _, meso = _new_mesocycle(store)
        store.create_next_iteration(meso.id)
        _finish_iteration(store, clock, meso.id, 1)

        stored = store.get_mesocycle(meso.id)
        instance = stored.get_instance(1)
        assert instance.status == "COMPLETE"
        assert instance.completed_at == clock.now
        assert all(d.is_complete and d.updated_at is not None for d in instance.days)
        assert stored.status == "IN_PROGRESS"

    def test_final_iteration_completes_mesocycle(self, store, clock):
        _, meso = _new_mesocycle(store, iterations=1)
        store.create_next_iteration(meso.id)
        _finish_iteration(store, clock, meso.id, 1)

        assert store.get_mesocycle(meso.id).status == "COMPLETE"

    def test_start_iteration_requires_previous(self, store, clock):
        _, meso = _new_mesocycle(store)
        store.create_next_iteration(meso.id)
        store.start_iteration(meso.id, 1)
        with pytest.raises(IterationGateError):
            store.start_iteration(meso.id, 1)
        with pytest.raises(NotFoundError):
            store.start_iteration(meso.id, 2)


class TestMesocycleLifecycle:

    def test_complete_mesocycle_closes_running_iteration(self, store):
        _, meso = _new_mesocycle(store)
        instance = store.create_next_iteration(meso.id)
        store.start_workout(instance.days[0].id)

        completed = store.complete_mesocycle(meso.id)

        assert completed.status == "COMPLETE"
        assert store.get_mesocycle(meso.id).get_instance(1).status == "COMPLETE"
        with pytest.raises(ValidationError):
            store.complete_mesocycle(meso.id)

    def test_delete_mesocycle(self, store):
        _, meso = _new_mesocycle(store)
        store.delete_mesocycle(meso.id)
        assert store.list_mesocycles() == []
        with pytest.raises(NotFoundError):
            store.delete_mesocycle(meso.id)


class TestExerciseHistories:

    def test_only_completed_workouts_count(self, store, clock):
        _, meso = _new_mesocycle(store, iterations=2)
        store.create_next_iteration(meso.id)
        _finish_iteration(store, clock, meso.id, 1)
        second = store.create_next_iteration(meso.id)
        workout = store.start_workout(second.days[0].id)
        store.log_set(workout.id, 1, 200, 1)

        histories = {h.exercise.id: h for h in store.exercise_histories()}

        assert [(s.weight, s.reps) for s in histories[1].sets] == [(100, 10)]
        assert histories[2].sets == []

    def test_filter_by_mesocycle(self, store, clock):
        _, first = _new_mesocycle(store, iterations=1)
        store.create_next_iteration(first.id)
        _finish_iteration(store, clock, first.id, 1)
        _, second = _new_mesocycle(store, iterations=1)

        assert sum(len(h.sets) for h in store.exercise_histories(mesocycle_id=first.id)) == 1
        assert sum(len(h.sets) for h in store.exercise_histories(mesocycle_id=second.id)) == 0

    def test_document_is_plain_json(self, store, temp_store_dir):
        _new_mesocycle(store)
        raw = json.loads((temp_store_dir / "store.json").read_text())
        assert set(raw) == {"next_ids", "exercises", "plans", "mesocycles"}
        assert raw["mesocycles"][0]["plan_id"] == raw["plans"][0]["id"]
