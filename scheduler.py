"""Reminder scheduling for wedding events.

Reminders are never stored. They are recomputed from the event list whenever
they are displayed, so adding or deleting an event or toggling a reminder flag
shows up on the next call without any invalidation step.

Every function here is pure: `now` is always passed in, nothing reads the
clock, nothing logs.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Iterable, List, Optional, Union
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from schemas import OffsetKind, ReminderInstance, ReminderOffsets

OFFSET_LEAD_TIMES = {
    OffsetKind.ONE_WEEK: timedelta(days=7),
    OffsetKind.THREE_DAYS: timedelta(days=3),
    OffsetKind.ONE_DAY: timedelta(days=1),
}

_OFFSET_ORDER = {kind: index for index, kind in enumerate(OffsetKind)}

_MISSING = object()


def _resolve_zone(tz: Union[str, tzinfo, None]) -> tzinfo:
    if tz is None:
        return timezone.utc
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def _field(event: Any, name: str) -> Any:
    if isinstance(event, dict):
        return event.get(name, _MISSING)
    return getattr(event, name, _MISSING)


def _as_instant(value: Any, zone: tzinfo) -> Optional[datetime]:
    """Coerce a datetime, date or ISO string to an aware datetime, else None."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=zone)
    return value


def _as_offsets(value: Any) -> Optional[ReminderOffsets]:
    if isinstance(value, ReminderOffsets):
        return value
    if isinstance(value, dict):
        try:
            return ReminderOffsets.model_validate(value)
        except ValidationError:
            return None
    return None


def reminders_for_event(now: datetime, event: Any, tz: Union[str, tzinfo, None] = None) -> List[ReminderInstance]:
    """Reminder instances still ahead of `now` for a single event.

    Returns an empty list for events that already started, events without a
    usable id or date, and events without reminder preferences.
    """
    zone = _resolve_zone(tz)
    now = _as_instant(now, zone)
    if now is None:
        raise TypeError("now must be a datetime")

    event_id = _field(event, "id")
    if event_id is _MISSING or event_id is None or event_id == "":
        return []
    event_date = _as_instant(_field(event, "date"), zone)
    if event_date is None or event_date <= now:
        return []
    offsets = _as_offsets(_field(event, "reminder_offsets"))
    if offsets is None:
        return []

    instances = []
    for kind, lead_time in OFFSET_LEAD_TIMES.items():
        if not offsets.enabled(kind):
            continue
        notify_at = event_date - lead_time
        # A notify time already behind us is missed, not overdue
        if notify_at > now:
            instances.append(ReminderInstance(event_id=str(event_id), offset_kind=kind, notify_at=notify_at))
    return instances


def compute_due_reminders(
    now: datetime,
    events: Iterable[Any],
    tz: Union[str, tzinfo, None] = None
) -> List[ReminderInstance]:
    """Compute upcoming reminders for a collection of events.

    Args:
        now: Reference instant. Naive values are interpreted in `tz`.
        events: EventResponse models, objects exposing id / date /
            reminder_offsets, or dicts with those keys.
        tz: Zone name or tzinfo for naive datetimes (UTC when omitted)

    Returns:
        List[ReminderInstance]: sorted by notify_at, then event_id, then offset
        kind (one_week, three_days, one_day). Identical input always gives
        identical output.
    """
    instances: List[ReminderInstance] = []
    for event in events:
        instances.extend(reminders_for_event(now, event, tz))

    instances.sort(key=lambda r: (r.notify_at, r.event_id, _OFFSET_ORDER[r.offset_kind]))
    return instances


def next_reminder(
    now: datetime,
    events: Iterable[Any],
    tz: Union[str, tzinfo, None] = None
) -> Optional[ReminderInstance]:
    """The earliest upcoming reminder, or None."""
    reminders = compute_due_reminders(now, events, tz)
    return reminders[0] if reminders else None
