"""Tests for the reminder watcher."""

import asyncio
from datetime import datetime, timedelta, timezone

from errors import TransportError
from reconciler import EventListReconciler
from reminder_watcher import check_reminders, reminders_to_announce
from schemas import EventResponse, OffsetKind, ReminderInstance

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def reminder(event_id, minutes, kind=OffsetKind.ONE_DAY):
    return ReminderInstance(event_id=event_id, offset_kind=kind, notify_at=NOW + timedelta(minutes=minutes))


def test_only_reminders_inside_lookahead_are_announced():
    reminders = [reminder("a", 10), reminder("b", 50), reminder("c", 90)]
    announced = set()

    fresh = reminders_to_announce(reminders, NOW, timedelta(minutes=60), announced)

    assert [r.event_id for r in fresh] == ["a", "b"]
    assert len(announced) == 2


def test_reminders_are_announced_once():
    reminders = [reminder("a", 10)]
    announced = set()

    assert reminders_to_announce(reminders, NOW, timedelta(minutes=60), announced) == reminders
    assert reminders_to_announce(reminders, NOW, timedelta(minutes=60), announced) == []

    # moving the event re-arms the reminder
    moved = [reminder("a", 20)]
    assert reminders_to_announce(moved, NOW, timedelta(minutes=60), announced) == moved


class FlakyStore:
    def __init__(self, events):
        self.events = events
        self.down = False

    async def list(self):
        if self.down:
            raise TransportError("connection refused")
        return list(self.events)


def test_check_reminders_survives_store_outage():
    soon = datetime.now(timezone.utc) + timedelta(days=1, minutes=30)
    store = FlakyStore([
        EventResponse(
            id="evt-1",
            client_label="Claire & Louis",
            date=soon,
            venue="Domaine des Oliviers",
            contact_phone="+33612345678",
        )
    ])
    reconciler = EventListReconciler(store)
    announced = set()

    assert asyncio.run(check_reminders(reconciler, announced)) == 1

    # store down: the last known list is used, nothing is announced twice
    store.down = True
    assert asyncio.run(check_reminders(reconciler, announced)) == 0
    assert [e.id for e in reconciler.events] == ["evt-1"]


def test_passed_reminders_are_pruned_from_announced():
    announced = set()
    reminders_to_announce([reminder("a", 10), reminder("b", 30)], NOW, timedelta(minutes=60), announced)
    assert len(announced) == 2

    later = NOW + timedelta(minutes=20)
    assert reminders_to_announce([reminder("b", 30)], later, timedelta(minutes=60), announced) == []
    assert announced == {("b", OffsetKind.ONE_DAY.value, NOW + timedelta(minutes=30))}
