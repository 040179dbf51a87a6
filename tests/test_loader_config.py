"""
Tests for YAML loading, engine settings, serializers and JSON stores.
"""

import importlib.util
import json
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest

from muscle_engine.core.config import VOLUME_THRESHOLDS
from muscle_engine.core.engine.config_loader import (
    EngineSettings,
    get_app_home,
    load_engine_settings,
    settings_from_dict,
)
from muscle_engine.core.exercises.loader import (
    exercise_from_dict,
    get_bundled_exercises_dir,
    load_exercises_from_yaml,
)
from muscle_engine.core.models import Exercise, ExerciseRelationships, LoggedSet, MuscleState, RelationshipLink
from muscle_engine.core.relationships import build_relationships
from muscle_engine.core.tracker import rebuild_relationships
from muscle_engine.io import stores
from muscle_engine.io.serializers import (
    ValidationError,
    dict_to_exercise,
    dict_to_muscle_state,
    dict_to_relationships,
    exercise_to_dict,
    json_to_workout,
    muscle_state_to_dict,
    parse_sets_string,
    parse_workout_string,
    relationships_to_dict,
    workout_to_json,
)
from muscle_engine.io.stores import JsonCatalogStore, JsonStateStore

T0 = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)

BENCH_RECORD = {
    "exercise_id": "bench_press",
    "name": "Barbell Bench Press",
    "category": "strength",
    "equipment": ["barbell", "bench"],
    "primary_muscles": ["chest"],
    "secondary_muscles": ["front_delts", "triceps"],
    "muscle_activation": {"chest": 0.9, "triceps": 0.5},
    "activation_levels": {"chest": "high"},
    "difficulty": "intermediate",
    "tags": ["compound"],
    "movement_pattern": "push",
    "force": "push",
}


@pytest.fixture
def app_home(tmp_path, monkeypatch):
    """Point MUSCLE_ENGINE_HOME at an empty temporary directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("MUSCLE_ENGINE_HOME", str(home))
    return home


def _write_yaml(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _same_muscles(exercise_id: str) -> Exercise:
    """Exercises built by this helper are each other's alternatives (similarity 1.0)."""
    return Exercise(
        exercise_id=exercise_id,
        name=exercise_id.upper(),
        category="strength",
        equipment=frozenset(),
        primary_muscles=("chest",),
        secondary_muscles=("triceps",),
        difficulty="intermediate",
    )


# ===========================================================================
# exercises/loader.py
# ===========================================================================

class TestExerciseFromDict:

    def test_fractional_activation_wins(self):
        ex = exercise_from_dict(BENCH_RECORD)
        assert ex.activation.kind == "fractional"
        assert ex.activation.fraction("chest") == pytest.approx(0.9)
        assert ex.resolved_mechanics == "compound"

    def test_categorical_activation(self):
        record = dict(BENCH_RECORD, muscle_activation=None)
        ex = exercise_from_dict(record)
        assert ex.activation.kind == "categorical"
        assert ex.activation.fraction("chest") == pytest.approx(0.85)
        assert ex.activation.fraction("lats") is None

    def test_missing_field(self):
        record = dict(BENCH_RECORD)
        del record["difficulty"]
        with pytest.raises(ValueError, match="difficulty"):
            exercise_from_dict(record)

    def test_invalid_difficulty(self):
        with pytest.raises(ValueError):
            exercise_from_dict(dict(BENCH_RECORD, difficulty="elite"))

    def test_muscles_must_be_a_list(self):
        with pytest.raises(ValueError):
            exercise_from_dict(dict(BENCH_RECORD, primary_muscles="chest"))

    def test_activation_out_of_range(self):
        with pytest.raises(ValueError):
            exercise_from_dict(dict(BENCH_RECORD, muscle_activation={"chest": 1.5}))


class TestLoadExercises:

    def test_bundled_catalog_loads(self, app_home):
        catalog = load_exercises_from_yaml()
        assert get_bundled_exercises_dir() is not None
        assert {"bench_press", "push_up", "pull_up", "back_squat", "plank"} <= set(catalog)
        assert catalog["assisted_pull_up"].bodyweight_multiplier == pytest.approx(0.7)

    def test_bundled_catalog_relationships(self, app_home):
        records = build_relationships(list(load_exercises_from_yaml().values()))
        assert records["push_up"].progressions == ("bench_press", "dumbbell_bench_press")
        assert "dumbbell_bench_press" in records["bench_press"].alternatives
        assert "push_up" in records["bench_press"].regressions
        assert records["pull_up"].progressions == ("muscle_up",)
        assert records["pull_up"].regressions == ("assisted_pull_up",)
        assert records["back_squat"].regressions == ("air_squat",)

    def test_user_override_is_deep_merged(self, app_home):
        _write_yaml(app_home / "exercises" / "bench_press.yaml", "difficulty: advanced\n")
        catalog = load_exercises_from_yaml()
        assert catalog["bench_press"].difficulty == "advanced"
        assert catalog["bench_press"].primary_muscles == ("chest",)

    def test_user_only_exercise_is_added(self, app_home):
        _write_yaml(
            app_home / "exercises" / "sled_push.yaml",
            "exercise_id: sled_push\n"
            "name: Sled Push\n"
            "category: conditioning\n"
            "primary_muscles: [quads, glutes]\n"
            "difficulty: beginner\n",
        )
        assert "sled_push" in load_exercises_from_yaml()

    def test_broken_record_is_skipped_with_warning(self, tmp_path):
        bundled = tmp_path / "bundled"
        _write_yaml(bundled / "good.yaml", "exercise_id: good\nname: Good\ncategory: s\nprimary_muscles: [chest]\ndifficulty: beginner\n")
        _write_yaml(bundled / "bad.yaml", "exercise_id: bad\nname: Bad\n")
        user = tmp_path / "user"
        user.mkdir()

        with pytest.warns(UserWarning, match="bad"):
            catalog = load_exercises_from_yaml(bundled_dir=bundled, user_dir=user)

        assert set(catalog) == {"good"}

    def test_unparseable_yaml_is_skipped(self, tmp_path):
        bundled = tmp_path / "bundled"
        _write_yaml(bundled / "oops.yaml", "exercise_id: [unclosed\n")
        user = tmp_path / "user"
        user.mkdir()

        with pytest.warns(UserWarning):
            catalog = load_exercises_from_yaml(bundled_dir=bundled, user_dir=user)

        assert catalog == {}


# ===========================================================================
# engine/config_loader.py
# ===========================================================================

class TestEngineSettings:

    def test_defaults_without_file(self, app_home):
        settings = load_engine_settings()
        assert settings == EngineSettings()
        assert settings.reference_bodyweight_kg == pytest.approx(70.0)

    def test_app_home_from_env(self, app_home):
        assert get_app_home() == app_home

    def test_partial_override(self, app_home):
        _write_yaml(
            app_home / "config.yaml",
            "reference_bodyweight_kg: 82\n"
            "volume_thresholds:\n"
            "  small: {light: 1800}\n",
        )
        settings = load_engine_settings()
        assert settings.reference_bodyweight_kg == pytest.approx(82.0)
        assert settings.volume_thresholds["small"].light == pytest.approx(1800.0)
        assert settings.volume_thresholds["small"].moderate == VOLUME_THRESHOLDS["small"].moderate
        assert settings.recovery_rate_per_day == pytest.approx(0.5)

    def test_invalid_values_fall_back_to_defaults(self, app_home):
        _write_yaml(app_home / "config.yaml", "recovery_rate_per_day: 3\n")
        with pytest.warns(UserWarning):
            settings = load_engine_settings()
        assert settings == EngineSettings()

    def test_unparseable_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("reference_bodyweight_kg: [\n", encoding="utf-8")
        with pytest.warns(UserWarning):
            settings = load_engine_settings(path)
        assert settings == EngineSettings()

    def test_thresholds_must_grow_with_size(self):
        raw = {
            "reference_bodyweight_kg": 70,
            "recovery_rate_per_day": 0.5,
            "secondary_volume_share": 0.4,
            "volume_thresholds": {
                "small": {"light": 5000, "moderate": 8000, "heavy": 12000},
                "medium": {"light": 4000, "moderate": 8000, "heavy": 12000},
                "large": {"light": 6000, "moderate": 12000, "heavy": 18000},
            },
        }
        with pytest.raises(ValueError):
            settings_from_dict(raw)

    def test_malformed_dict(self):
        with pytest.raises(ValueError):
            settings_from_dict({"reference_bodyweight_kg": 70})


# ===========================================================================
# io/serializers.py
# ===========================================================================

class TestParseSets:

    def test_weighted_and_bodyweight(self):
        sets = parse_sets_string("10x60, 8@62.5kg, 20")
        assert sets == [
            LoggedSet(reps=10, weight=60.0),
            LoggedSet(reps=8, weight=62.5),
            LoggedSet(reps=20),
        ]

    def test_timed(self):
        assert parse_sets_string("t45, T30s") == [LoggedSet(time=45.0), LoggedSet(time=30.0)]

    def test_repeat(self):
        sets = parse_sets_string("10x60*3")
        assert len(sets) == 3
        assert all(s == LoggedSet(reps=10, weight=60.0) for s in sets)

    def test_zero_reps_parse(self):
        assert parse_sets_string("0x60") == [LoggedSet(reps=0, weight=60.0)]

    @pytest.mark.parametrize("text", ["", "ten", "10x", "x60", "10x60*0"])
    def test_invalid(self, text):
        with pytest.raises(ValidationError):
            parse_sets_string(text)


class TestParseWorkout:

    def test_compact_workout(self):
        entries = parse_workout_string("bench_press:10x60,10x60;push_up:20,20;plank:t45")
        assert [e.exercise_id for e in entries] == ["bench_press", "push_up", "plank"]
        assert len(entries[0].sets) == 2
        assert entries[2].sets == [LoggedSet(time=45.0)]

    def test_trailing_separator(self):
        assert len(parse_workout_string("push_up:20;")) == 1

    @pytest.mark.parametrize("text", ["", "push_up", ":20", "push_up:"])
    def test_invalid(self, text):
        with pytest.raises(ValidationError):
            parse_workout_string(text)

    def test_json_workout(self):
        entries = parse_workout_string("bench_press:10x60;plank:t45")
        assert json_to_workout(workout_to_json(entries)) == entries

    def test_json_workout_invalid(self):
        with pytest.raises(ValidationError):
            json_to_workout("{not json")
        with pytest.raises(ValidationError):
            json_to_workout('[{"exercise_id": "x", "sets": [{"reps": "ten"}]}]')


class TestRecordSerializers:

    def test_exercise_dict(self):
        ex = exercise_from_dict(BENCH_RECORD)
        data = exercise_to_dict(ex)
        assert "activation_levels" not in data
        assert "mechanics" not in data
        assert dict_to_exercise(data) == ex

    def test_invalid_exercise(self):
        with pytest.raises(ValidationError):
            dict_to_exercise({"exercise_id": "x"})

    def test_muscle_state_dict(self):
        state = MuscleState("chest", 42.5, T0, "primary")
        data = muscle_state_to_dict(state)
        assert data["last_updated"] == "2026-03-02T18:00:00+00:00"
        assert dict_to_muscle_state(data) == state

    def test_naive_timestamp_is_utc(self):
        state = dict_to_muscle_state(
            {"muscle_id": "chest", "current_fatigue": 10, "last_updated": "2026-03-02T18:00:00"}
        )
        assert state.last_updated == T0
        assert state.last_workout_role == "none"

    @pytest.mark.parametrize(
        "data",
        [
            {"muscle_id": "chest", "current_fatigue": -1, "last_updated": "2026-03-02T18:00:00"},
            {"muscle_id": "chest", "current_fatigue": 10, "last_updated": "yesterday"},
            {"muscle_id": "chest", "current_fatigue": 10, "last_updated": "2026-03-02", "last_workout_role": "x"},
            {"muscle_id": "", "current_fatigue": 10, "last_updated": "2026-03-02T18:00:00"},
            {"current_fatigue": 10},
        ],
    )
    def test_invalid_muscle_state(self, data):
        with pytest.raises(ValidationError):
            dict_to_muscle_state(data)

    def test_relationships_dict(self):
        record = ExerciseRelationships(
            "push_up",
            progression_links=(RelationshipLink("bench_press", 0.75, 1),),
        )
        data = relationships_to_dict(record)
        assert data["progressions"] == [{"exercise_id": "bench_press", "similarity": 0.75, "difficulty_delta": 1}]
        assert dict_to_relationships(data) == record

    def test_relationships_over_cap_rejected(self):
        data = {
            "exercise_id": "a",
            "regressions": [{"exercise_id": f"r{i}", "similarity": 0.75} for i in range(4)],
        }
        with pytest.raises(ValidationError):
            dict_to_relationships(data)


# ===========================================================================
# io/stores.py
# ===========================================================================

class TestJsonStateStore:

    def test_missing_file_reads_empty(self, tmp_path):
        store = JsonStateStore(tmp_path / "muscle_state.json")
        assert store.get_all_muscle_states() == []
        assert store.get_muscle_state("chest") is None
        assert not store.exists()

    def test_put_and_get(self, tmp_path):
        path = tmp_path / "data" / "muscle_state.json"
        store = JsonStateStore(path)
        store.put_muscle_state(MuscleState("chest", 30.0, T0, "primary"))
        store.put_muscle_state(MuscleState("triceps", 12.0, T0, "secondary"))

        assert path.exists()
        reopened = JsonStateStore(path)
        assert reopened.get_muscle_state("chest").current_fatigue == pytest.approx(30.0)
        assert [s.muscle_id for s in reopened.get_all_muscle_states()] == ["chest", "triceps"]

    def test_put_replaces_record(self, tmp_path):
        store = JsonStateStore(tmp_path / "muscle_state.json")
        store.put_muscle_state(MuscleState("chest", 30.0, T0, "primary"))
        store.put_muscle_state(MuscleState("chest", 45.0, T0, "primary"))
        assert len(store.get_all_muscle_states()) == 1
        assert store.get_muscle_state("chest").current_fatigue == pytest.approx(45.0)

    def test_no_temp_files_left(self, tmp_path):
        store = JsonStateStore(tmp_path / "muscle_state.json")
        store.put_muscle_state(MuscleState("chest", 30.0, T0, "primary"))
        assert [p.name for p in tmp_path.iterdir()] == ["muscle_state.json"]

    def test_concurrent_puts_are_not_lost(self, tmp_path):
        store = JsonStateStore(tmp_path / "muscle_state.json")
        muscles = [f"m{i}" for i in range(20)]

        threads = [
            threading.Thread(target=store.put_muscle_state, args=(MuscleState(m, 10.0, T0),))
            for m in muscles
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert {s.muscle_id for s in store.get_all_muscle_states()} == set(muscles)

    def test_update_is_atomic_across_threads(self, tmp_path):
        class SlowReadStore(JsonStateStore):
            def get_muscle_state(self, muscle_id):
                state = super().get_muscle_state(muscle_id)
                time.sleep(0.05)
                return state

        store = SlowReadStore(tmp_path / "muscle_state.json")

        def add_ten(previous):
            base = previous.current_fatigue if previous is not None else 0.0
            return MuscleState("chest", base + 10.0, T0, "primary")

        threads = [
            threading.Thread(target=store.update_muscle_state, args=("chest", add_ten))
            for _ in range(3)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get_muscle_state("chest").current_fatigue == pytest.approx(30.0)

    def test_update_of_missing_muscle_receives_none(self, tmp_path):
        store = JsonStateStore(tmp_path / "muscle_state.json")
        seen = []

        def create(previous):
            seen.append(previous)
            return MuscleState("biceps", 5.0, T0, "secondary")

        written = store.update_muscle_state("biceps", create)
        assert seen == [None]
        assert store.get_muscle_state("biceps") == written

    def test_malformed_file_raises(self, tmp_path):
        path = tmp_path / "muscle_state.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(ValidationError):
            JsonStateStore(path).get_all_muscle_states()

    def test_malformed_record_raises(self, tmp_path):
        path = tmp_path / "muscle_state.json"
        path.write_text(json.dumps({"chest": {"muscle_id": "chest"}}), encoding="utf-8")
        with pytest.raises(ValidationError, match="chest"):
            JsonStateStore(path).get_muscle_state("chest")

    def test_clear(self, tmp_path):
        store = JsonStateStore(tmp_path / "muscle_state.json")
        store.put_muscle_state(MuscleState("chest", 30.0, T0))
        store.clear()
        assert not store.exists()


class TestJsonCatalogStore:

    def test_relationships_persist(self, tmp_path):
        ex = exercise_from_dict(BENCH_RECORD)
        store = JsonCatalogStore(tmp_path, exercises={ex.exercise_id: ex})
        record = ExerciseRelationships("bench_press", alternative_links=(RelationshipLink("db_press", 1.0),))

        assert store.get_relationships("bench_press") is None
        store.put_relationships("bench_press", record)

        reopened = JsonCatalogStore(tmp_path, exercises={ex.exercise_id: ex})
        assert reopened.get_relationships("bench_press") == record
        assert reopened.get_exercise("bench_press") == ex
        assert reopened.get_exercise("nope") is None

    def test_defaults_to_yaml_catalog(self, tmp_path, app_home):
        store = JsonCatalogStore(tmp_path)
        assert store.get_exercise("push_up") is not None

    def test_rebuild_drops_exercises_removed_from_catalog(self, tmp_path):
        a, b, c = (_same_muscles(i) for i in ("a", "b", "c"))
        rebuild_relationships(JsonCatalogStore(tmp_path, exercises={e.exercise_id: e for e in (a, b, c)}))

        shrunk = JsonCatalogStore(tmp_path, exercises={"a": a, "c": c})
        # Stale record on disk is not served even before the next rebuild
        assert shrunk.get_relationships("b") is None
        assert "b" not in shrunk.load_relationships()

        rebuild_relationships(shrunk)
        stored = json.loads((tmp_path / "relationships.json").read_text(encoding="utf-8"))
        assert set(stored) == {"a", "c"}
        assert shrunk.get_relationships("a").alternatives == ("c",)

    def test_rebuild_writes_file_once(self, tmp_path, monkeypatch):
        catalog = {e.exercise_id: e for e in (_same_muscles(i) for i in ("a", "b", "c", "d"))}
        calls = []
        real_write = stores._write_json_atomic

        def counting_write(path, data):
            calls.append(path)
            real_write(path, data)

        monkeypatch.setattr(stores, "_write_json_atomic", counting_write)
        rebuild_relationships(JsonCatalogStore(tmp_path, exercises=catalog))
        assert calls == [tmp_path / "relationships.json"]


class TestPackaging:

    def test_bundled_exercises_are_an_importable_package(self):
        # package-data for muscle_engine.exercises only ships if the
        # directory is discovered as a (namespace) package
        module_spec = importlib.util.find_spec("muscle_engine.exercises")
        assert module_spec is not None
        locations = [Path(p).resolve() for p in module_spec.submodule_search_locations]
        assert get_bundled_exercises_dir().resolve() in locations
