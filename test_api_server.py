"""API tests for Wedding Event Planner."""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

import crud
from api_server import app
from config import settings

client = TestClient(app)


def make_draft(days=30, **overrides):
    draft = {
        "client_label": "Claire & Louis",
        "partners_name": "Louis Martin",
        "date": (datetime.now(timezone.utc) + timedelta(days=days)).isoformat(),
        "venue": "Domaine des Oliviers",
        "contact_phone": "+33612345678",
        "guest_count": 120,
        "budget": 18000,
        "ceremony_type": "both",
    }
    draft.update(overrides)
    return draft


def create(**overrides):
    response = client.post("/events", json=make_draft(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


def test_root_and_health():
    assert client.get("/").json()["service"] == "Wedding Event Planner API"

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database_status"] == "connected"


def test_event_crud_flow():
    created = create(notes="  Vegetarian menu  ")
    assert created["id"]
    assert created["notes"] == "Vegetarian menu"
    assert created["status"] == "planned"
    assert created["reminder_offsets"] == {"one_week": True, "three_days": True, "one_day": True}

    fetched = client.get(f"/events/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["client_label"] == "Claire & Louis"

    listed = client.get("/events").json()
    assert [e["id"] for e in listed] == [created["id"]]

    updated = client.put(
        f"/events/{created['id']}",
        json={"guest_count": 140, "status": "confirmed", "reminder_offsets": {"one_week": False}}
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["guest_count"] == 140
    assert body["status"] == "confirmed"
    assert body["venue"] == "Domaine des Oliviers"
    assert body["reminder_offsets"] == {"one_week": False, "three_days": True, "one_day": True}

    assert [e["id"] for e in client.get("/events", params={"status": "confirmed"}).json()] == [created["id"]]
    assert client.get("/events", params={"status": "planned"}).json() == []

    deleted = client.delete(f"/events/{created['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["event_id"] == created["id"]
    assert client.get(f"/events/{created['id']}").status_code == 404


def test_list_is_soonest_first():
    later = create(days=90, client_label="Later")
    sooner = create(days=10, client_label="Sooner")

    assert [e["id"] for e in client.get("/events").json()] == [sooner["id"], later["id"]]


def test_invalid_draft_reports_every_field():
    response = client.post("/events", json={"client_label": "", "venue": "X", "guest_count": 0})

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Event validation failed"
    assert set(detail["errors"]) == {"client_label", "date", "venue", "contact_phone", "guest_count"}
    assert detail["errors"]["client_label"] == ["Field is required"]
    assert client.get("/events").json() == []


def test_past_date_is_rejected():
    response = client.post("/events", json=make_draft(days=-1))

    assert response.status_code == 422
    assert list(response.json()["detail"]["errors"]) == ["date"]


def test_date_and_time_fields_are_combined():
    day = (datetime.now(timezone.utc) + timedelta(days=30)).date().isoformat()
    created = create(date=day, time="15:30")

    assert created["date"].startswith(f"{day}T15:30:00")


def test_invalid_patch_is_rejected():
    event = create()
    response = client.put(f"/events/{event['id']}", json={"guest_count": 1001, "venue": ""})

    assert response.status_code == 422
    assert set(response.json()["detail"]["errors"]) == {"guest_count", "venue"}


def test_missing_event_returns_404():
    assert client.get("/events/no-such-id").status_code == 404
    assert client.put("/events/no-such-id", json={"guest_count": 2}).status_code == 404
    assert client.delete("/events/no-such-id").status_code == 404


def test_upcoming_reminders():
    event = create(days=10)
    partial = create(days=20, reminder_offsets={"one_day": False})

    response = client.get("/reminders/upcoming")
    assert response.status_code == 200
    reminders = response.json()

    assert [(r["event_id"], r["offset_kind"]) for r in reminders] == [
        (event["id"], "one_week"),
        (event["id"], "three_days"),
        (event["id"], "one_day"),
        (partial["id"], "one_week"),
        (partial["id"], "three_days"),
    ]
    assert len(client.get("/reminders/upcoming", params={"limit": 2}).json()) == 2


def test_search_events():
    create(client_label="Claire & Louis", venue="Domaine des Oliviers")
    create(client_label="Emma & Hugo", partners_name="Hugo", venue="Château Margaux")

    assert [e["client_label"] for e in client.get("/events/search", params={"query": "Margaux"}).json()] == [
        "Emma & Hugo"
    ]
    assert len(client.get("/events/search", params={"query": "Hugo"}).json()) == 1
    assert client.get("/events/search", params={"query": "Nobody"}).json() == []


def test_event_stats():
    create(days=10)
    create(days=20, status="confirmed")

    stats = client.get("/events/stats").json()
    assert stats["total"] == 2
    assert stats["by_status"] == {"planned": 1, "confirmed": 1, "completed": 0, "cancelled": 0}
    assert stats["upcoming_reminders"] == 6
    assert stats["next_reminder"]["offset_kind"] == "one_week"


def test_stats_without_events():
    stats = client.get("/events/stats").json()
    assert stats["total"] == 0
    assert stats["next_reminder"] is None


def test_reminders_are_not_hidden_by_past_events(db, monkeypatch):
    monkeypatch.setattr(settings, "MAX_EVENTS_LIST", 3)
    now = datetime.now(timezone.utc)
    for day in range(1, 5):
        crud.create_event(db, {
            "client_label": f"Past {day}",
            "date": now - timedelta(days=day),
            "venue": "Domaine des Oliviers",
            "contact_phone": "+33612345678",
        })
    event = create(days=10)

    reminders = client.get("/reminders/upcoming").json()
    assert [(r["event_id"], r["offset_kind"]) for r in reminders] == [
        (event["id"], "one_week"),
        (event["id"], "three_days"),
        (event["id"], "one_day"),
    ]

    stats = client.get("/events/stats").json()
    assert stats["total"] == 5
    assert stats["upcoming_reminders"] == 3


def test_list_pages_with_offset():
    events = [create(days=days) for days in (10, 20, 30)]

    first = client.get("/events", params={"limit": 2}).json()
    rest = client.get("/events", params={"limit": 2, "offset": 2}).json()

    assert [e["id"] for e in first + rest] == [e["id"] for e in events]
    assert client.get("/events", params={"offset": -1}).status_code == 422


def test_non_finite_budget_is_rejected():
    response = client.post(
        "/events",
        content='{"client_label": "Claire & Louis", "date": "2099-06-14", "venue": "Domaine des Oliviers",'
                ' "contact_phone": "+33612345678", "budget": Infinity}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    assert list(response.json()["detail"]["errors"]) == ["budget"]


def test_timeline_and_services_round_trip():
    created = create(
        timeline=[{"time": "19:30", "event": "Dinner"}, {"time": "15:00", "event": "Ceremony"}],
        services=["catering", "photography"],
    )
    assert [entry["time"] for entry in created["timeline"]] == ["15:00", "19:30"]
    assert created["services"] == ["catering", "photography"]

    updated = client.put(f"/events/{created['id']}", json={"services": ["catering", "music", "catering"]}).json()
    assert updated["services"] == ["catering", "music"]
    assert updated["timeline"] == created["timeline"]
    assert client.get(f"/events/{created['id']}").json()["services"] == ["catering", "music"]
