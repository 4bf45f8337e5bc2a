"""
Minimal smoke tests for meso-scheduler CLI.

Tests basic functionality:
- App runs without errors
- Store is created
- Plans and mesocycles can be added
- Workouts and rest days can be completed
- Schedule and progress are shown
"""

import json
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from meso_scheduler.cli.main import app


runner = CliRunner()


@pytest.fixture
def temp_store_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _invoke(store_path: Path, *args: str):
    return runner.invoke(app, [*args, "--store-path", str(store_path)])


def _setup(store_path: Path) -> None:
    """Store with two exercises, a Push/Rest plan and a 3-iteration mesocycle."""
    for args in (
        ["init"],
        ["add-exercise", "Bench Press", "--category", "chest"],
        ["add-exercise", "Barbell Row", "--category", "back"],
        ["add-plan", "Push/Rest", "--day", "Push:1,2", "--day", "rest"],
        ["create-mesocycle", "Block A", "--plan", "1", "--iterations", "3"],
    ):
        result = _invoke(store_path, *args)
        assert result.exit_code == 0, result.output


def _upcoming(store_path: Path) -> list[dict]:
    result = _invoke(store_path, "upcoming", "1", "--json")
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def _train_first_iteration(store_path: Path) -> None:
    workout_day, rest_day = _upcoming(store_path)[:2]

    result = _invoke(store_path, "start-workout", str(workout_day["id"]), "--json")
    assert result.exit_code == 0, result.output
    workout_id = str(json.loads(result.stdout)["id"])

    for args in (
        ["log-set", workout_id, "1", "100", "10"],
        ["log-set", workout_id, "2", "60", "8"],
        ["complete-workout", workout_id],
        ["complete-rest", str(rest_day["id"])],
    ):
        result = _invoke(store_path, *args)
        assert result.exit_code == 0, result.output


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        """Test that app runs and shows help."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "mesocycle" in result.output.lower()

    def test_init_creates_store(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        result = _invoke(store_path, "init")

        assert result.exit_code == 0
        assert store_path.exists()

    def test_commands_require_init(self, temp_store_dir):
        result = _invoke(temp_store_dir / "store.json", "mesocycles")
        assert result.exit_code == 1
        assert "init" in result.output

    def test_schedule_projects_future_iterations(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)

        result = _invoke(store_path, "schedule", "1", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)

        assert data["previousDays"] == []
        upcoming = data["upcomingDays"]
        assert [(d["iterationNumber"], d["dayNumber"]) for d in upcoming] == [
            (1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (3, 2),
        ]
        assert [d["kind"] for d in upcoming[:2]] == ["real", "real"]
        assert all(d["kind"] == "virtual" and d["id"] == -1 for d in upcoming[2:])
        assert upcoming[0]["planInstanceId"] == 1
        assert upcoming[0]["workoutName"] == "Push"
        assert upcoming[1]["isRestDay"] is True
        assert not any("_" in key for day in upcoming for key in day)

    def test_training_flow(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)
        _train_first_iteration(store_path)

        schedule = json.loads(_invoke(store_path, "schedule", "1", "--json").stdout)
        assert len(schedule["previousDays"]) == 2
        assert all(d["kind"] == "virtual" for d in schedule["upcomingDays"])
        assert len(schedule["upcomingDays"]) == 4

        mesocycles = json.loads(_invoke(store_path, "mesocycles", "--json").stdout)
        assert mesocycles[0]["status"] == "IN_PROGRESS"
        assert mesocycles[0]["completed_iterations"] == 1
        assert mesocycles[0]["progress"] == pytest.approx(33.3)

        result = _invoke(store_path, "new-iteration", "1", "--json")
        assert result.exit_code == 0, result.output
        iteration = json.loads(result.stdout)
        assert iteration["iteration_number"] == 2
        assert iteration["rir"] == 1

    def test_progress_reports(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)
        _train_first_iteration(store_path)

        progress = json.loads(_invoke(store_path, "progress", "1", "--json").stdout)
        exercises = progress["planDays"][0]["iterations"][0]["exercises"]
        assert [e["name"] for e in exercises] == ["Bench Press", "Barbell Row"]
        assert exercises[0]["volume"] == pytest.approx(1000.0)
        assert progress["iterationVolumes"] == [{"iterationNumber": 1, "totalVolume": 1480.0}]

        groups = json.loads(_invoke(store_path, "muscle-groups", "--json").stdout)
        chest = groups["muscleGroupVolume"]["CHEST"]
        assert len(chest) == 1
        assert list(chest[0].values())[0]["volume"] == pytest.approx(1000.0)
        assert list(groups["muscleGroupSets"]["BACK"][0].values())[0]["count"] == 1

        stats = json.loads(_invoke(store_path, "exercise-stats", "--json").stdout)
        assert [s["name"] for s in stats] == ["Bench Press", "Barbell Row"]
        assert stats[0]["prs"]["maxWeight"] == 100

    def test_text_views_render(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)
        _train_first_iteration(store_path)

        for args, expected in (
            (["exercises"], "Bench Press"),
            (["plans"], "Push"),
            (["mesocycles"], "Block A"),
            (["schedule", "1"], "Upcoming"),
            (["progress", "1"], "Iteration"),
            (["muscle-groups"], "CHEST"),
            (["exercise-stats", "--chart"], "Volume per Session"),
        ):
            result = _invoke(store_path, *args)
            assert result.exit_code == 0, result.output
            assert expected in result.output


class TestCLIErrors:

    def test_next_iteration_blocked_until_complete(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)

        result = _invoke(store_path, "new-iteration", "1")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_other_user_cannot_see_mesocycle(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)

        result = _invoke(store_path, "schedule", "1", "--user", "bob")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_rest_command_rejects_workout_day(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)
        workout_day = _upcoming(store_path)[0]

        result = _invoke(store_path, "complete-rest", str(workout_day["id"]))
        assert result.exit_code == 1

    def test_invalid_day_spec(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)

        result = _invoke(store_path, "add-plan", "Broken", "--day", "Legs")
        assert result.exit_code == 1
        assert "Invalid day" in result.output

    def test_delete_and_complete_mesocycle(self, temp_store_dir):
        store_path = temp_store_dir / "store.json"
        _setup(store_path)

        result = _invoke(store_path, "complete-mesocycle", "1")
        assert result.exit_code == 0, result.output
        assert _upcoming(store_path) == []

        result = _invoke(store_path, "delete-mesocycle", "1", "--force")
        assert result.exit_code == 0, result.output
        assert json.loads(_invoke(store_path, "mesocycles", "--json").stdout) == []
