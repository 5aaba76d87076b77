"""Tests for reminder scheduling."""

from datetime import datetime, timedelta, timezone

import pytest

from scheduler import compute_due_reminders, next_reminder, reminders_for_event
from schemas import EventResponse, OffsetKind, ReminderOffsets

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_event(event_id, when, **offsets):
    return EventResponse(
        id=event_id,
        client_label="Claire & Louis",
        date=when,
        venue="Domaine des Oliviers",
        contact_phone="+33612345678",
        reminder_offsets=ReminderOffsets(**offsets),
    )


def test_event_eight_days_out_gets_all_three_reminders():
    event_date = NOW + timedelta(days=8)
    reminders = compute_due_reminders(NOW, [make_event("evt-1", event_date)])

    assert [(r.offset_kind, r.notify_at) for r in reminders] == [
        (OffsetKind.ONE_WEEK, event_date - timedelta(days=7)),
        (OffsetKind.THREE_DAYS, event_date - timedelta(days=3)),
        (OffsetKind.ONE_DAY, event_date - timedelta(days=1)),
    ]
    assert all(r.event_id == "evt-1" for r in reminders)
    assert all(r.notify_at > NOW for r in reminders)


def test_event_twelve_hours_out_gets_no_reminders():
    event = make_event("evt-1", NOW + timedelta(hours=12))
    assert compute_due_reminders(NOW, [event]) == []


@pytest.mark.parametrize("delta", [timedelta(0), timedelta(minutes=-1), timedelta(days=-30)])
def test_started_or_past_events_never_contribute(delta):
    event = make_event("evt-1", NOW + delta)
    assert compute_due_reminders(NOW, [event]) == []


def test_only_offsets_still_ahead_are_emitted():
    event_date = NOW + timedelta(days=5)
    reminders = compute_due_reminders(NOW, [make_event("evt-1", event_date)])

    assert [r.offset_kind for r in reminders] == [OffsetKind.THREE_DAYS, OffsetKind.ONE_DAY]


def test_notify_time_equal_to_now_is_missed():
    # one_week lands exactly on now
    event = make_event("evt-1", NOW + timedelta(days=7))
    kinds = [r.offset_kind for r in compute_due_reminders(NOW, [event])]
    assert OffsetKind.ONE_WEEK not in kinds
    assert kinds == [OffsetKind.THREE_DAYS, OffsetKind.ONE_DAY]


def test_disabled_offsets_are_skipped():
    event_date = NOW + timedelta(days=10)
    partial = make_event("evt-1", event_date, three_days=False)
    silent = make_event("evt-2", event_date, one_week=False, three_days=False, one_day=False)

    reminders = compute_due_reminders(NOW, [partial, silent])
    assert [(r.event_id, r.offset_kind) for r in reminders] == [
        ("evt-1", OffsetKind.ONE_WEEK),
        ("evt-1", OffsetKind.ONE_DAY),
    ]


def test_output_sorted_by_notify_time_with_stable_ties():
    same_day = NOW + timedelta(days=20)
    events = [
        make_event("b", same_day),
        make_event("c", NOW + timedelta(days=9)),
        make_event("a", same_day),
    ]
    reminders = compute_due_reminders(NOW, events)

    notify_times = [r.notify_at for r in reminders]
    assert notify_times == sorted(notify_times)

    # identical notify times: event id decides
    tied = [r.event_id for r in reminders if r.notify_at == same_day - timedelta(days=7)]
    assert tied == ["a", "b"]


def test_repeated_calls_are_identical():
    events = [make_event(f"evt-{i}", NOW + timedelta(days=i)) for i in range(1, 15)]
    first = compute_due_reminders(NOW, events)
    second = compute_due_reminders(NOW, list(reversed(events)))

    assert first == second
    assert compute_due_reminders(NOW, events) == first


def test_events_without_usable_date_or_id_are_skipped():
    good = {
        "id": "good",
        "date": (NOW + timedelta(days=2)).isoformat(),
        "reminder_offsets": {"one_week": True, "three_days": True, "one_day": True},
    }
    events = [
        good,
        {"id": "bad-date", "date": "not a date", "reminder_offsets": {}},
        {"id": "no-date", "reminder_offsets": {}},
        {"id": "null-date", "date": None, "reminder_offsets": {}},
        {"date": (NOW + timedelta(days=2)).isoformat(), "reminder_offsets": {}},
        {"id": "no-offsets", "date": (NOW + timedelta(days=2)).isoformat()},
    ]

    reminders = compute_due_reminders(NOW, events)
    assert [(r.event_id, r.offset_kind) for r in reminders] == [("good", OffsetKind.ONE_DAY)]


def test_naive_dates_use_given_zone():
    # 12:00 in Paris (UTC+2 in June) is 10:00 UTC
    event = {"id": "paris", "date": "2025-06-10T12:00:00", "reminder_offsets": {"one_week": False, "three_days": False}}
    reminders = compute_due_reminders(NOW, [event], tz="Europe/Paris")

    assert len(reminders) == 1
    assert reminders[0].notify_at == datetime(2025, 6, 9, 10, 0, tzinfo=timezone.utc)


def test_naive_now_is_interpreted_in_zone():
    event = make_event("evt-1", NOW + timedelta(days=8))
    naive_now = NOW.replace(tzinfo=None)
    assert compute_due_reminders(naive_now, [event]) == compute_due_reminders(NOW, [event])


def test_next_reminder():
    events = [make_event("later", NOW + timedelta(days=30)), make_event("soon", NOW + timedelta(days=2))]

    first = next_reminder(NOW, events)
    assert first.event_id == "soon"
    assert first.offset_kind == OffsetKind.ONE_DAY
    assert next_reminder(NOW, []) is None


def test_reminders_for_single_event():
    event = make_event("evt-1", NOW + timedelta(days=4))
    kinds = [r.offset_kind for r in reminders_for_event(NOW, event)]
    assert kinds == [OffsetKind.THREE_DAYS, OffsetKind.ONE_DAY]


def test_now_must_be_a_datetime():
    with pytest.raises(TypeError):
        compute_due_reminders("yesterday", [make_event("evt-1", NOW)])
