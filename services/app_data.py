"""Live mirror of one signed-in user's data, with write-through mutations.

An ``AppDataSession`` is created when a user signs in and closed when they
sign out. While open it holds four subscriptions (settings, calorie entries,
workout data, weight entries); each remote snapshot replaces the matching
slice of ``AppData`` wholesale. Mutations write to the store only: the
mirror changes when the subscription echoes the write back.

The mirror holds defaults until all four streams have delivered their first
snapshot; callers await ``ready()`` before reading it or deriving writes
from it.

Mutation failures surface to the caller as ``StoreError``. Settings writes
are the exception: they are scheduled in the background and only logged
when they fail.
"""

import asyncio
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set

from pydantic import ValidationError

from schemas.app_data import AppData
from schemas.calorie import CalorieEntry, CalorieEntryBase, CalorieEntryUpdate
from schemas.user_settings import (
    DEFAULT_MAINTENANCE_CALORIES,
    DEFAULT_STEP_GOAL,
    DEFAULT_WEIGHT_GOAL,
    SETTINGS_FIELDS,
)
from schemas.weight import WeightEntry, WeightEntryCreate
from schemas.workout import WorkoutEntry
from services.store import CALORIES, SETTINGS, WEIGHTS, WORKOUTS, DocumentStore, StoreError, Subscription
from services.workouts import workout_data_to_document
from utils.helpers import parse_day_key
from utils.logger import setup_logger

logger = setup_logger(__name__)

SETTINGS_DEFAULTS = {
    "maintenance_calories": DEFAULT_MAINTENANCE_CALORIES,
    "step_goal": DEFAULT_STEP_GOAL,
    "weight_goal": DEFAULT_WEIGHT_GOAL,
}

AppDataListener = Callable[[AppData], None]


def settings_from_document(document: Mapping[str, Any]) -> Dict[str, int]:
    """Settings fields from a stored document; absent or zero values fall back to defaults."""
    return {name: document.get(name) or default for name, default in SETTINGS_DEFAULTS.items()}


def calorie_entries_from_documents(documents: Sequence[Mapping[str, Any]]) -> List[CalorieEntry]:
    entries = []
    for document in documents:
        try:
            entries.append(CalorieEntry.model_validate(document))
        except ValidationError as e:
            logger.warning(f"Skipping invalid calorie entry {document.get('id')}: {e}")
    return entries


def weight_entries_from_documents(documents: Sequence[Mapping[str, Any]]) -> List[WeightEntry]:
    entries = []
    for document in documents:
        try:
            entries.append(WeightEntry.model_validate(document))
        except ValidationError as e:
            logger.warning(f"Skipping invalid weight entry {document.get('id')}: {e}")
    return entries


def workout_data_from_document(document: Optional[Mapping[str, Any]]) -> Dict[date, WorkoutEntry]:
    """Day-keyed workout map from the stored document, empty when missing."""
    raw = (document or {}).get("data") or {}
    data: Dict[date, WorkoutEntry] = {}
    for key, value in raw.items():
        try:
            data[parse_day_key(key)] = WorkoutEntry.model_validate(value)
        except (ValueError, TypeError) as e:
            # pydantic's ValidationError is a ValueError
            logger.warning(f"Skipping invalid workout day {key!r}: {e}")
    return dict(sorted(data.items()))


class AppDataSession:
    """Session-scoped state for one signed-in user."""

    def __init__(self, store: DocumentStore, user_id: str):
        self.store = store
        self.user_id: Optional[str] = user_id
        self.state = AppData()
        self._subscriptions: List[Subscription] = []
        self._listeners: List[AppDataListener] = []
        self._pending_writes: Set[asyncio.Task] = set()
        # Streams that have not delivered their first snapshot yet
        self._awaiting: Set[str] = set()
        self._ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.user_id is not None

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def ready(self, timeout: Optional[float] = None) -> None:
        """Wait until every stream has delivered its first snapshot.

        Until then the mirror still holds defaults and must not be used to
        build writes. Raises ``StoreError`` when the snapshots do not arrive
        within ``timeout`` seconds.
        """
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except asyncio.TimeoutError:
            raise StoreError(f"Data for user {self.user_id} did not load in time") from None

    def _mark_delivered(self, stream: str):
        self._awaiting.discard(stream)
        if not self._awaiting:
            self._ready.set()

    def start(self) -> "AppDataSession":
        """Open the four subscriptions. Needs a running event loop."""
        if not self.is_active or self._subscriptions:
            return self
        user_id = self.user_id
        self._awaiting = {SETTINGS, CALORIES, WORKOUTS, WEIGHTS}
        self._ready.clear()
        self._subscriptions = [
            self.store.watch_document(user_id, SETTINGS, self._on_settings),
            self.store.watch_collection(user_id, CALORIES, self._on_calorie_entries),
            self.store.watch_document(user_id, WORKOUTS, self._on_workout_data),
            self.store.watch_collection(user_id, WEIGHTS, self._on_weight_entries),
        ]
        logger.info(f"Data session started for user {user_id}")
        return self

    def close(self) -> None:
        """Stop listening and reset to defaults, without touching the store.

        Writes already in flight are not aborted.
        """
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        if self.user_id is not None:
            logger.info(f"Data session closed for user {self.user_id}")
        self.user_id = None
        self._replace(AppData())
        self._listeners.clear()
        # Release anyone still waiting; the session is inactive from here on.
        self._awaiting.clear()
        self._ready.set()

    # ------------------------------------------------------------------
    # Change listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: AppDataListener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every change."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _replace(self, state: AppData):
        self.state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"App data listener failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Snapshot handlers
    # ------------------------------------------------------------------

    def _on_settings(self, document: Optional[Dict[str, Any]]):
        if not self.is_active:
            return
        if document is not None:
            self._replace(self.state.model_copy(update=settings_from_document(document)))
        self._mark_delivered(SETTINGS)

    def _on_calorie_entries(self, documents: List[Dict[str, Any]]):
        if not self.is_active:
            return
        self._replace(self.state.model_copy(update={"calorie_data": calorie_entries_from_documents(documents)}))
        self._mark_delivered(CALORIES)

    def _on_workout_data(self, document: Optional[Dict[str, Any]]):
        if not self.is_active:
            return
        self._replace(self.state.model_copy(update={"workout_data": workout_data_from_document(document)}))
        self._mark_delivered(WORKOUTS)

    def _on_weight_entries(self, documents: List[Dict[str, Any]]):
        if not self.is_active:
            return
        self._replace(self.state.model_copy(update={"weight_data": weight_entries_from_documents(documents)}))
        self._mark_delivered(WEIGHTS)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def set_maintenance_calories(self, value: int) -> None:
        self._set_setting("maintenance_calories", value)

    def set_step_goal(self, value: int) -> None:
        self._set_setting("step_goal", value)

    def set_weight_goal(self, value: int) -> None:
        self._set_setting("weight_goal", value)

    def update_settings(self, **fields: Optional[int]) -> None:
        """Apply several settings; each changed field is saved on its own."""
        for name, value in fields.items():
            if value is not None:
                self._set_setting(name, value)

    def _set_setting(self, name: str, value: int):
        if name not in SETTINGS_FIELDS:
            raise ValueError(f"Unknown setting: {name}")
        if getattr(self.state, name) == value:
            return
        self._replace(self.state.model_copy(update={name: value}))
        if self.is_active:
            self._schedule_settings_write(self.state.settings.model_dump())

    def _schedule_settings_write(self, fields: Dict[str, int]):
        task = asyncio.get_running_loop().create_task(
            self.store.set_document(self.user_id, SETTINGS, fields, merge=True)
        )
        self._pending_writes.add(task)
        task.add_done_callback(self._settings_write_done)

    def _settings_write_done(self, task: asyncio.Task):
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Settings save failed: {error}", exc_info=error)

    async def flush_settings(self) -> None:
        """Wait for settings writes still in flight."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # ------------------------------------------------------------------
    # Calorie entries
    # ------------------------------------------------------------------

    async def add_calorie_entry(self, entry: CalorieEntryBase) -> Optional[str]:
        if not self.is_active:
            return None
        data = entry.model_dump(mode="json", include={"day", "target", "exercise", "intake"})
        return await self.store.add_document(self.user_id, CALORIES, data)

    async def update_calorie_entry(self, entry_id: str, updates: CalorieEntryUpdate) -> None:
        """Merge the fields that were explicitly set into an existing entry."""
        if not self.is_active:
            return
        fields = updates.model_dump(mode="json", exclude_unset=True)
        await self.store.update_document(self.user_id, CALORIES, entry_id, fields)

    async def delete_calorie_entry(self, entry_id: str) -> None:
        if not self.is_active:
            return
        await self.store.delete_document(self.user_id, CALORIES, entry_id)

    async def clear_all_calorie_data(self) -> None:
        """Delete every calorie entry in one atomic batch."""
        if not self.is_active:
            return
        documents = await self.store.list_documents(self.user_id, CALORIES)
        await self.store.delete_documents(self.user_id, CALORIES, [d["id"] for d in documents])

    async def import_calorie_data(self, entries: Sequence[CalorieEntryBase]) -> None:
        """Replace the whole calorie collection with ``entries``.

        The clear and the batch create are two separate commits, so readers
        can briefly see an empty collection in between.
        """
        if not self.is_active:
            return
        await self.clear_all_calorie_data()
        items = [e.model_dump(mode="json", include={"day", "target", "exercise", "intake"}) for e in entries]
        await self.store.add_documents(self.user_id, CALORIES, items)
        logger.info(f"Imported {len(items)} calorie entries for user {self.user_id}")

    # ------------------------------------------------------------------
    # Workouts
    # ------------------------------------------------------------------

    async def save_workout_data(self, data: Mapping[date, WorkoutEntry]) -> None:
        """Overwrite the user's workout document with the complete map."""
        if not self.is_active:
            return
        await self.store.set_document(self.user_id, WORKOUTS, {"data": workout_data_to_document(data)})

    # ------------------------------------------------------------------
    # Weight entries
    # ------------------------------------------------------------------

    async def save_weight_entry(self, entry: WeightEntryCreate) -> Optional[str]:
        if not self.is_active:
            return None
        data = entry.model_dump(mode="json", include={"date", "weight"})
        return await self.store.add_document(self.user_id, WEIGHTS, data)

    async def delete_weight_entry(self, entry_id: str) -> None:
        if not self.is_active:
            return
        await self.store.delete_document(self.user_id, WEIGHTS, entry_id)
