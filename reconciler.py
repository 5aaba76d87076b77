"""State reconciliation for the client-held event list.

EventListReconciler owns one session's local copy of the event list and keeps
it consistent with the event store, which is always authoritative:

    IDLE -> FETCHING -> SYNCED
    SYNCED -> MUTATING -> SYNCED                  (store confirmed the change)
    SYNCED -> MUTATING -> RECONCILING -> SYNCED   (store reported NotFound)

Nothing is inserted optimistically. Local state changes only when the store
confirms a mutation, or when a NotFound answer proves the record is gone. A
NotFound is always repaired by dropping the id locally and refreshing, never by
retrying the mutation.

All operations are coroutines meant to run on a single event loop. Several
mutations may be in flight at once; each reply is applied by id against the
list as it is when the reply arrives.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Dict, Iterable, List, Optional, Tuple, TypeVar

from errors import EventPlannerError, NotFoundError, StaleSelectionError, StoreError
from logger_config import setup_logger
from scheduler import compute_due_reminders
from schemas import EventCreate, EventResponse, EventUpdate, ReminderInstance

logger = setup_logger(__name__, 'reconciler.log')

T = TypeVar("T")

UPDATE_NOT_FOUND_NOTICE = "This event no longer exists; the list was refreshed"
DELETE_NOT_FOUND_NOTICE = "This event was already removed"
STALE_SELECTION_NOTICE = "The selected event is no longer in the list; the list was refreshed"
DISCARDED_UPDATE_NOTICE = "The event was removed while the update was in progress"


class SyncState(str, Enum):
    """Lifecycle of the local list"""
    IDLE = "idle"
    FETCHING = "fetching"
    SYNCED = "synced"
    MUTATING = "mutating"
    RECONCILING = "reconciling"


class Outcome(str, Enum):
    """Result tag returned to the UI for every mutation"""
    OK = "ok"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class MutationResult:
    """What a mutation did to the local list.

    `events` is a snapshot of the local list after the mutation. `notice` is a
    soft, user-facing message (e.g. "already removed"); `error` holds the
    failure for ERROR outcomes and the absorbed NotFoundError for NOT_FOUND.
    """

    outcome: Outcome
    events: List[EventResponse]
    event: Optional[EventResponse] = None
    error: Optional[EventPlannerError] = None
    notice: Optional[str] = None
    refreshed: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @property
    def retryable(self) -> bool:
        return self.error is not None and getattr(self.error, "retryable", False)


class EventListReconciler:
    """Single owner of a session's local event list."""

    # Oldest tombstones are forgotten first; deleting a forgotten id again is a stale selection
    MAX_REMOVED_IDS = 1000

    def __init__(self, store):
        """
        Args:
            store: EventStoreClient, or anything with the same async
                create / update / delete / list methods
        """
        self.store = store
        self._events: List[EventResponse] = []
        self._loaded = False

        # In-flight counters, the state is derived from them
        self._fetching = 0
        self._mutating = 0
        self._reconciling = 0

        # Refresh replies older than the last applied one are dropped
        self._refresh_seq = 0
        self._applied_refresh_seq = 0

        # Changes confirmed while a refresh is in flight, replayed over its reply
        self._version = 0
        self._journal: List[Tuple[int, str, Optional[EventResponse]]] = []

        # Ids known to be gone, oldest first. Store ids are never reused.
        self._removed_ids: Dict[str, None] = {}

    # ------------------------------------------------------------------
    # Local list accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        if self._reconciling:
            return SyncState.RECONCILING
        if self._mutating:
            return SyncState.MUTATING
        if self._fetching:
            return SyncState.FETCHING
        return SyncState.SYNCED if self._loaded else SyncState.IDLE

    @property
    def events(self) -> List[EventResponse]:
        """Copy of the local list"""
        return list(self._events)

    def get(self, event_id: str) -> Optional[EventResponse]:
        index = self._index_of(event_id)
        return self._events[index] if index is not None else None

    def due_reminders(self, now: datetime, tz=None) -> List[ReminderInstance]:
        """Upcoming reminders computed from the current local list."""
        return compute_due_reminders(now, self._events, tz)

    def _index_of(self, event_id: str) -> Optional[int]:
        for index, event in enumerate(self._events):
            if event.id == event_id:
                return index
        return None

    def _record(self, event_id: str, event: Optional[EventResponse]) -> None:
        self._version += 1
        if self._fetching:
            self._journal.append((self._version, event_id, event))

    def _put(self, event: EventResponse) -> None:
        # Replace by id; append only if the id is not present
        index = self._index_of(event.id)
        if index is None:
            self._events.append(event)
        else:
            self._events[index] = event
        self._record(event.id, event)

    def _drop(self, event_id: str) -> None:
        self._events = [event for event in self._events if event.id != event_id]
        self._tombstone([event_id])
        self._record(event_id, None)

    def _tombstone(self, event_ids: Iterable[str]) -> None:
        for event_id in event_ids:
            self._removed_ids.pop(event_id, None)
            self._removed_ids[event_id] = None
        while len(self._removed_ids) > self.MAX_REMOVED_IDS:
            del self._removed_ids[next(iter(self._removed_ids))]

    def _result(self, outcome: Outcome, **kwargs) -> MutationResult:
        return MutationResult(outcome=outcome, events=self.events, **kwargs)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> List[EventResponse]:
        """Replace the local list with the store's list.

        Raises:
            StoreError: the list could not be fetched; the local list is unchanged
        """
        self._refresh_seq += 1
        seq = self._refresh_seq
        start_version = self._version
        self._fetching += 1
        try:
            fetched = await self.store.list()
        finally:
            self._fetching -= 1

        if seq < self._applied_refresh_seq:
            logger.info(f"Discarding refresh #{seq}, #{self._applied_refresh_seq} already applied")
        else:
            self._applied_refresh_seq = seq
            events = list(fetched)
            # Replay changes the store confirmed after this list was requested
            for version, event_id, event in self._journal:
                if version <= start_version:
                    continue
                events = [e for e in events if e.id != event_id]
                if event is not None:
                    events.append(event)

            fetched_ids = {event.id for event in events}
            self._tombstone([e.id for e in self._events if e.id not in fetched_ids])
            self._events = events
            self._loaded = True
            logger.info(f"Refreshed local list: {len(events)} event(s)")

        if not self._fetching:
            self._journal.clear()
        return self.events

    async def _refresh_quietly(self) -> bool:
        try:
            await self.refresh()
        except StoreError as e:
            logger.warning(f"Refresh failed: {str(e)}")
            return False
        return True

    async def _ensure_loaded(self) -> Optional[MutationResult]:
        if self._loaded:
            return None
        try:
            await self.refresh()
        except StoreError as e:
            logger.warning(f"Initial load failed: {str(e)}")
            return self._result(Outcome.ERROR, error=e)
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _mutate(self, call: Awaitable[T]) -> T:
        self._mutating += 1
        try:
            return await call
        finally:
            self._mutating -= 1

    async def _reject_stale(self, event_id: str) -> MutationResult:
        error = StaleSelectionError(event_id)
        logger.warning(str(error))
        refreshed = await self._refresh_quietly()
        return self._result(Outcome.ERROR, error=error, notice=STALE_SELECTION_NOTICE, refreshed=refreshed)

    async def _reconcile_missing(self, event_id: str, error: NotFoundError, notice: str) -> MutationResult:
        logger.info(f"Event {event_id} is gone server-side, reconciling")
        self._reconciling += 1
        try:
            self._drop(event_id)
            refreshed = await self._refresh_quietly()
        finally:
            self._reconciling -= 1
        return self._result(Outcome.NOT_FOUND, error=error, notice=notice, refreshed=refreshed)

    def _failed(self, action: str, error: StoreError, event_id: Optional[str] = None) -> MutationResult:
        target = f" {event_id}" if event_id else ""
        logger.error(f"Failed to {action} event{target}: {str(error)}")
        return self._result(Outcome.ERROR, error=error)

    async def apply_create(self, draft: EventCreate) -> MutationResult:
        """Submit a validated draft and append the stored event.

        The draft must already have passed validation.validate_draft.
        """
        if not isinstance(draft, EventCreate):
            raise TypeError("apply_create expects a validated EventCreate")
        not_loaded = await self._ensure_loaded()
        if not_loaded:
            return not_loaded

        try:
            event = await self._mutate(self.store.create(draft))
        except StoreError as e:
            return self._failed("create", e)

        self._put(event)
        logger.info(f"Created event {event.id} locally")
        return self._result(Outcome.OK, event=event)

    async def apply_update(self, event_id: str, patch: EventUpdate) -> MutationResult:
        """Update an event in place with the store's returned record."""
        not_loaded = await self._ensure_loaded()
        if not_loaded:
            return not_loaded
        if self._index_of(event_id) is None:
            return await self._reject_stale(event_id)

        try:
            event = await self._mutate(self.store.update(event_id, patch))
        except NotFoundError as e:
            return await self._reconcile_missing(event_id, e, UPDATE_NOT_FOUND_NOTICE)
        except StoreError as e:
            return self._failed("update", e, event_id)

        index = self._index_of(event_id)
        if index is None:
            logger.info(f"Event {event_id} left the local list during its update, reply discarded")
            return self._result(Outcome.OK, event=event, notice=DISCARDED_UPDATE_NOTICE)

        self._events[index] = event
        self._record(event_id, event)
        return self._result(Outcome.OK, event=event)

    async def apply_delete(self, event_id: str) -> MutationResult:
        """Delete an event. Deleting an already deleted event is not a failure."""
        not_loaded = await self._ensure_loaded()
        if not_loaded:
            return not_loaded
        if self._index_of(event_id) is None and event_id not in self._removed_ids:
            return await self._reject_stale(event_id)

        try:
            await self._mutate(self.store.delete(event_id))
        except NotFoundError as e:
            return await self._reconcile_missing(event_id, e, DELETE_NOT_FOUND_NOTICE)
        except StoreError as e:
            return self._failed("delete", e, event_id)

        self._drop(event_id)
        logger.info(f"Deleted event {event_id} locally")
        return self._result(Outcome.OK)
