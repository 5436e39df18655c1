"""Tests for the live data session."""

from datetime import date

import pytest

from schemas.app_data import AppData
from schemas.calorie import CalorieEntry, CalorieEntryCreate, CalorieEntryUpdate
from schemas.enums import WorkoutType
from schemas.weight import WeightEntryCreate
from schemas.workout import WorkoutEntry
from services.app_data import AppDataSession
from services.store import CALORIES, SETTINGS, StoreError, WEIGHTS, WORKOUTS

USER = "user-1"


@pytest.fixture()
def session(store):
    session = AppDataSession(store, USER).start()
    yield session
    session.close()


def seed_calories(store, *entries):
    for i, entry in enumerate(entries):
        store._entries(USER, CALORIES)[f"seed-{i}"] = dict(entry)


class TestSubscriptions:
    async def test_start_mirrors_existing_remote_data(self, store):
        seed_calories(store, {"day": "2024-03-01", "target": 1500, "exercise": None, "intake": 1400})
        store.documents[(USER, WORKOUTS)] = {"data": {"2024-03-01": {"type": "Push", "steps": 8000}}}
        store.documents[(USER, SETTINGS)] = {"maintenance_calories": 2200, "step_goal": 12000, "weight_goal": 170}
        store._entries(USER, WEIGHTS)["w"] = {"date": "2024-03-01", "weight": 172.5}

        session = AppDataSession(store, USER).start()

        assert session.state.calorie_data == [
            CalorieEntry(id="seed-0", day=date(2024, 3, 1), target=1500, exercise=None, intake=1400)
        ]
        assert session.state.workout_data == {date(2024, 3, 1): WorkoutEntry(type=WorkoutType.PUSH, steps=8000)}
        assert session.state.weight_data[0].weight == 172.5
        assert session.state.settings.model_dump() == {
            "maintenance_calories": 2200, "step_goal": 12000, "weight_goal": 170,
        }
        assert store.active_watchers(USER) == 4
        session.close()

    async def test_missing_settings_fields_fall_back_to_defaults(self, store):
        store.documents[(USER, SETTINGS)] = {"step_goal": 8000, "weight_goal": 0}
        session = AppDataSession(store, USER).start()
        assert session.state.maintenance_calories == 2000
        assert session.state.step_goal == 8000
        assert session.state.weight_goal == 165
        session.close()

    async def test_empty_store_gives_defaults(self, session):
        assert session.state == AppData()

    async def test_malformed_remote_entries_are_skipped(self, store):
        seed_calories(
            store,
            {"day": "03/01/2024", "target": 1500},
            {"day": "2024-03-02", "target": 1500},
        )
        store.documents[(USER, WORKOUTS)] = {"data": {"not-a-day": {"type": "Push"}, "2024-03-02": {"type": "Legs"}}}
        store._entries(USER, WEIGHTS)["w"] = {"date": "2024-03-01", "weight": -3}

        session = AppDataSession(store, USER).start()

        assert [e.day for e in session.state.calorie_data] == [date(2024, 3, 2)]
        assert list(session.state.workout_data) == [date(2024, 3, 2)]
        assert session.state.weight_data == []
        session.close()

    async def test_listeners_receive_each_snapshot(self, session):
        seen = []
        session.add_listener(seen.append)
        await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01", target=1500))
        assert len(seen) == 1
        assert seen[0].calorie_data[0].target == 1500


class TestReadiness:
    async def test_ready_waits_for_every_first_snapshot(self, deferred_store):
        deferred_store.documents[(USER, SETTINGS)] = {"maintenance_calories": 2500, "step_goal": 8000, "weight_goal": 170}
        deferred_store.documents[(USER, WORKOUTS)] = {"data": {"2024-03-01": {"type": "Push", "steps": None}}}

        session = AppDataSession(deferred_store, USER).start()
        assert not session.is_ready
        assert session.state == AppData()

        await session.ready(timeout=1)

        assert session.is_ready
        assert session.state.maintenance_calories == 2500
        assert list(session.state.workout_data) == [date(2024, 3, 1)]
        session.close()

    async def test_missing_settings_document_still_counts(self, deferred_store):
        session = AppDataSession(deferred_store, USER).start()
        await session.ready(timeout=1)
        assert session.state == AppData()
        session.close()

    async def test_stalled_streams_time_out(self, stalled_store):
        session = AppDataSession(stalled_store, USER).start()
        with pytest.raises(StoreError):
            await session.ready(timeout=0.05)
        session.close()

    async def test_close_releases_waiters(self, stalled_store):
        session = AppDataSession(stalled_store, USER).start()
        session.close()
        await session.ready(timeout=1)
        assert not session.is_active


class TestCalorieMutations:
    async def test_add_assigns_identity_through_echo(self, session, store):
        entry_id = await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01", target=1500))
        assert session.state.calorie_data == [
            CalorieEntry(id=entry_id, day=date(2024, 3, 1), target=1500, exercise=None, intake=None)
        ]
        assert store.writes[-1] == (
            "add_document", CALORIES, {"day": "2024-03-01", "target": 1500, "exercise": None, "intake": None},
        )

    async def test_no_optimistic_update(self, session, store):
        store.watchers.clear()
        await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01"))
        assert store.snapshot_collection(USER, CALORIES)
        assert session.state.calorie_data == []

    async def test_update_merges_only_sent_fields(self, session):
        entry_id = await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01", target=1500))
        await session.update_calorie_entry(entry_id, CalorieEntryUpdate(intake=1800))
        await session.update_calorie_entry(entry_id, CalorieEntryUpdate.model_validate({"target": None}))
        entry = session.state.calorie_data[0]
        assert (entry.target, entry.intake, entry.day) == (None, 1800, date(2024, 3, 1))

    async def test_update_unknown_id_changes_nothing(self, session, store):
        await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01", target=1500))
        before = store.snapshot_collection(USER, CALORIES)
        await session.update_calorie_entry("x", CalorieEntryUpdate(intake=1200))
        assert store.snapshot_collection(USER, CALORIES) == before

    async def test_delete(self, session):
        entry_id = await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01"))
        await session.delete_calorie_entry(entry_id)
        assert session.state.calorie_data == []

    async def test_clear_all_is_one_atomic_batch(self, session, store):
        for day in ("2024-03-01", "2024-03-02", "2024-03-03"):
            await session.add_calorie_entry(CalorieEntryCreate(day=day))
        sizes = []
        store.watch_collection(USER, CALORIES, lambda docs: sizes.append(len(docs)))

        await session.clear_all_calorie_data()

        assert sizes == [3, 0]
        assert await store.list_documents(USER, CALORIES) == []
        assert session.state.calorie_data == []

    async def test_clear_all_on_empty_collection(self, session, store):
        await session.clear_all_calorie_data()
        assert await store.list_documents(USER, CALORIES) == []

    async def test_import_replaces_collection(self, session, store):
        await session.add_calorie_entry(CalorieEntryCreate(day="2023-12-31", target=1200))
        imported = [
            CalorieEntry(id="imported-1", day="2024-01-01", target=1500, exercise=200, intake=1700),
            CalorieEntry(id="imported-2", day="2024-01-02", target=None, exercise=None, intake=1900),
        ]
        sizes = []
        store.watch_collection(USER, CALORIES, lambda docs: sizes.append(len(docs)))

        await session.import_calorie_data(imported)

        documents = await store.list_documents(USER, CALORIES)
        assert len(documents) == 2
        assert {(d["day"], d["target"], d["exercise"], d["intake"]) for d in documents} == {
            ("2024-01-01", 1500, 200, 1700),
            ("2024-01-02", None, None, 1900),
        }
        assert not {d["id"] for d in documents} & {"imported-1", "imported-2"}
        # clear commits before the batch create
        assert sizes == [1, 0, 2]


class TestWorkoutAndWeight:
    async def test_save_workout_data_round_trip(self, session, store):
        first = {
            date(2024, 3, 1): WorkoutEntry(type=WorkoutType.PUSH, steps=5000),
            date(2024, 3, 2): WorkoutEntry(type=WorkoutType.REST),
        }
        await session.save_workout_data(first)
        second = {date(2024, 3, 2): WorkoutEntry(type=WorkoutType.REST)}
        await session.save_workout_data(second)

        assert session.state.workout_data == second
        assert store.snapshot_document(USER, WORKOUTS) == {"data": {"2024-03-02": {"type": "Rest", "steps": None}}}

    async def test_weight_add_and_delete(self, session):
        entry_id = await session.save_weight_entry(WeightEntryCreate(date="2024-03-01", weight=171.4))
        assert [(e.id, e.weight) for e in session.state.weight_data] == [(entry_id, 171.4)]
        await session.delete_weight_entry(entry_id)
        assert session.state.weight_data == []


class TestSettings:
    async def test_each_change_is_its_own_full_write(self, session, store):
        session.set_maintenance_calories(2300)
        session.set_step_goal(12000)
        await session.flush_settings()

        settings_writes = [w for w in store.writes if w[1] == SETTINGS]
        assert settings_writes == [
            ("set_document", SETTINGS, {"maintenance_calories": 2300, "step_goal": 10000, "weight_goal": 165}),
            ("set_document", SETTINGS, {"maintenance_calories": 2300, "step_goal": 12000, "weight_goal": 165}),
        ]
        assert session.state.step_goal == 12000

    async def test_unchanged_value_is_not_written(self, session, store):
        session.update_settings(maintenance_calories=2000, weight_goal=160)
        await session.flush_settings()
        assert [w[2]["weight_goal"] for w in store.writes if w[1] == SETTINGS] == [160]

    async def test_failed_settings_write_does_not_raise(self, session, store):
        store.fail_writes = True
        session.set_weight_goal(150)
        await session.flush_settings()
        assert session.state.weight_goal == 150
        assert store.snapshot_document(USER, SETTINGS) is None

    async def test_unknown_setting_rejected(self, session):
        with pytest.raises(ValueError):
            session.update_settings(calorie_goal=1)


class TestFailuresAndSignOut:
    async def test_store_failures_reach_the_caller(self, session, store):
        store.fail_writes = True
        with pytest.raises(StoreError):
            await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01"))
        with pytest.raises(StoreError):
            await session.save_workout_data({})

    async def test_close_resets_synchronously_and_stops_listening(self, store):
        store.documents[(USER, SETTINGS)] = {"maintenance_calories": 2500, "step_goal": 7000, "weight_goal": 150}
        session = AppDataSession(store, USER).start()
        await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01"))

        session.close()

        assert session.state == AppData()
        assert (session.state.maintenance_calories, session.state.step_goal, session.state.weight_goal) == (
            2000, 10000, 165,
        )
        assert store.active_watchers(USER) == 0

    async def test_mutations_are_no_ops_without_a_user(self, store):
        session = AppDataSession(store, USER).start()
        session.close()
        writes = list(store.writes)

        assert await session.add_calorie_entry(CalorieEntryCreate(day="2024-03-01")) is None
        await session.update_calorie_entry("x", CalorieEntryUpdate(intake=1))
        await session.delete_calorie_entry("x")
        await session.clear_all_calorie_data()
        await session.import_calorie_data([])
        await session.save_workout_data({})
        assert await session.save_weight_entry(WeightEntryCreate(date="2024-03-01", weight=170)) is None
        await session.delete_weight_entry("x")
        session.set_step_goal(5000)

        assert store.writes == writes
