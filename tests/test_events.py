"""API tests for calendar events, conflict warnings, alerts and reminders."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from roomdesk.domain.models import AlertType, CalendarEvent, EventStatus
from roomdesk.main import (
    alert_repo,
    app,
    event_repo,
    reminder_schedule_repo,
)

_NOW = datetime(2026, 6, 1, 0, 0, tzinfo=timezone.utc)


def _at(hour: int, minute: int = 0) -> datetime:
    return _NOW + timedelta(hours=hour, minutes=minute)


@pytest.fixture(autouse=True)
def _clear_repos():
    event_repo._store.clear()
    alert_repo._alerts.clear()
    reminder_schedule_repo._items.clear()
    yield
    event_repo._store.clear()
    alert_repo._alerts.clear()
    reminder_schedule_repo._items.clear()


@pytest.fixture()
def client():
    return TestClient(app)


def _create(client: TestClient, title: str, start: datetime, end: datetime, **extra):
    payload = {
        "title": title,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "created_by": "alice",
    }
    payload.update(extra)
    return client.post("/events", json=payload)


# ---------------------------------------------------------------------------
# Creation with soft conflicts
# ---------------------------------------------------------------------------


def test_create_event_without_conflicts(client):
    resp = _create(client, "Standup", _at(9), _at(9, 15))

    assert resp.status_code == 201
    body = resp.json()
    assert body["conflicts"] == []
    assert body["event"]["status"] == "scheduled"
    assert event_repo.get(body["event"]["id"]) is not None
    assert alert_repo.list_for_user("alice") == []


def test_overlapping_event_is_created_with_warnings(client):
    existing = _create(client, "Design review", _at(9), _at(10)).json()["event"]

    resp = _create(client, "Lunch & learn", _at(9, 30), _at(11))

    assert resp.status_code == 201
    body = resp.json()
    assert [c["id"] for c in body["conflicts"]] == [existing["id"]]
    assert len(event_repo.list_all()) == 2


def test_conflicting_event_raises_warning_alert(client):
    existing = _create(client, "Design review", _at(9), _at(10)).json()["event"]
    new_id = _create(client, "Lunch & learn", _at(9, 30), _at(11)).json()["event"]["id"]

    alerts = alert_repo.list_for_user("alice")
    assert len(alerts) == 1
    assert alerts[0].type == AlertType.WARNING
    assert alerts[0].metadata["event_id"] == new_id
    assert alerts[0].metadata["conflicting_event_ids"] == [existing["id"]]
    assert "Design review" in alerts[0].message


def test_adjacent_events_do_not_conflict(client):
    _create(client, "First", _at(9), _at(10))
    resp = _create(client, "Second", _at(10), _at(11))
    assert resp.json()["conflicts"] == []


def test_cancelled_event_does_not_conflict(client):
    event_repo.add(
        CalendarEvent(
            title="Called off",
            start=_at(9),
            end=_at(10),
            created_by="bob",
            status=EventStatus.CANCELLED,
        )
    )
    assert _create(client, "Replacement", _at(9), _at(10)).json()["conflicts"] == []


def test_event_created_cancelled_gets_no_warnings(client):
    _create(client, "Design review", _at(9), _at(10))

    resp = _create(client, "Called off", _at(9), _at(10), status="cancelled")

    assert resp.status_code == 201
    assert resp.json()["conflicts"] == []
    assert alert_repo.list_for_user("alice") == []


def test_invalid_event_interval_is_422(client):
    assert _create(client, "Backwards", _at(10), _at(9)).status_code == 422


# ---------------------------------------------------------------------------
# Conflict check endpoint
# ---------------------------------------------------------------------------


def test_check_conflicts_sorted_and_excluding(client):
    late = _create(client, "B", _at(9, 30), _at(10, 30)).json()["event"]["id"]
    early = _create(client, "A", _at(9), _at(10)).json()["event"]["id"]

    resp = client.post(
        "/events/check-conflicts",
        json={"start": _at(9, 45).isoformat(), "end": _at(10, 15).isoformat()},
    )
    assert resp.status_code == 200
    assert resp.json()["has_conflict"] is True
    assert [c["id"] for c in resp.json()["conflicts"]] == [early, late]

    resp = client.post(
        "/events/check-conflicts",
        json={
            "start": _at(9, 45).isoformat(),
            "end": _at(10, 15).isoformat(),
            "exclude_id": early,
        },
    )
    assert [c["id"] for c in resp.json()["conflicts"]] == [late]


def test_check_conflicts_rejects_empty_interval(client):
    resp = client.post(
        "/events/check-conflicts",
        json={"start": _at(9).isoformat(), "end": _at(9).isoformat()},
    )
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Update / delete / list
# ---------------------------------------------------------------------------


def test_move_event_onto_another_returns_warnings(client):
    fixed = _create(client, "Fixed", _at(14), _at(15)).json()["event"]["id"]
    moving = _create(client, "Moving", _at(9), _at(10)).json()["event"]["id"]

    resp = client.patch(
        f"/events/{moving}",
        json={"start": _at(14, 30).isoformat(), "end": _at(15, 30).isoformat()},
    )

    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()["conflicts"]] == [fixed]
    assert event_repo.get(moving).start == _at(14, 30)


def test_update_title_only_skips_conflict_check(client):
    _create(client, "A", _at(9), _at(10))
    overlapping = _create(client, "B", _at(9), _at(10)).json()["event"]["id"]

    resp = client.patch(f"/events/{overlapping}", json={"title": "B renamed"})

    assert resp.status_code == 200
    assert resp.json()["conflicts"] == []
    assert event_repo.get(overlapping).title == "B renamed"


def test_update_with_reversed_interval_is_422(client):
    event_id = _create(client, "A", _at(9), _at(10)).json()["event"]["id"]

    resp = client.patch(f"/events/{event_id}", json={"end": _at(8).isoformat()})

    assert resp.status_code == 422
    assert event_repo.get(event_id).end == _at(10)


def test_cancelled_event_cannot_be_reopened(client):
    event_id = _create(client, "A", _at(9), _at(10)).json()["event"]["id"]
    client.patch(f"/events/{event_id}", json={"status": "cancelled"})

    resp = client.patch(f"/events/{event_id}", json={"status": "scheduled"})

    assert resp.status_code == 400
    assert event_repo.get(event_id).status == EventStatus.CANCELLED


def test_delete_event(client):
    event_id = _create(
        client, "A", _at(9), _at(10), reminders=[_at(8).isoformat()]
    ).json()["event"]["id"]

    assert client.delete(f"/events/{event_id}").json() == {"success": True}
    assert client.get(f"/events/{event_id}").status_code == 404
    assert reminder_schedule_repo.list_for_event(event_id) == []


def test_list_events_window_and_status(client):
    _create(client, "Morning", _at(9), _at(10))
    _create(client, "Afternoon", _at(14), _at(15), status="in-progress")

    window = client.get(
        "/events", params={"start": _at(10).isoformat(), "end": _at(16).isoformat()}
    ).json()
    assert [e["title"] for e in window] == ["Afternoon"]

    in_progress = client.get("/events", params={"status": "in-progress"}).json()
    assert [e["title"] for e in in_progress] == ["Afternoon"]


# ---------------------------------------------------------------------------
# Alerts and reminders
# ---------------------------------------------------------------------------


def test_tick_fires_event_reminders(client):
    event_id = _create(
        client,
        "Board meeting",
        _at(9),
        _at(10),
        reminders=[_at(8).isoformat(), _at(8, 45).isoformat()],
        attendees=["bob"],
    ).json()["event"]["id"]

    fired = client.post("/tick", params={"now": _at(8, 30).isoformat()}).json()
    assert len(fired["reminders_fired"]) == 1

    items = reminder_schedule_repo.list_for_event(event_id)
    assert [i.was_sent for i in items] == [True, False]

    bob_alerts = client.get("/alerts", params={"user_id": "bob"}).json()
    assert [a["title"] for a in bob_alerts] == ["Event reminder"]

    again = client.post("/tick", params={"now": _at(8, 30).isoformat()}).json()
    assert again["reminders_fired"] == []


def test_cancelling_event_drops_pending_reminders(client):
    event_id = _create(
        client,
        "Board meeting",
        _at(9),
        _at(10),
        reminders=[_at(8).isoformat()],
        attendees=["bob"],
    ).json()["event"]["id"]

    resp = client.patch(f"/events/{event_id}", json={"status": "cancelled"})
    assert resp.status_code == 200
    assert reminder_schedule_repo.list_for_event(event_id) == []

    fired = client.post("/tick", params={"now": _at(8, 30).isoformat()}).json()
    assert fired["reminders_fired"] == []
    assert client.get("/alerts", params={"user_id": "bob"}).json() == []


def test_alert_read_flow(client):
    _create(client, "A", _at(9), _at(10))
    _create(client, "B", _at(9), _at(10))

    assert client.get("/alerts/unread-count", params={"user_id": "alice"}).json() == {
        "count": 1
    }
    alert = client.get("/alerts", params={"user_id": "alice"}).json()[0]
    assert alert["is_read"] is False

    resp = client.post(f"/alerts/{alert['id']}/read", json={"user_id": "alice"})
    assert resp.status_code == 200

    assert client.get("/alerts/unread-count", params={"user_id": "alice"}).json() == {
        "count": 0
    }
    unread = client.get("/alerts", params={"user_id": "alice", "unread_only": True}).json()
    assert unread == []
    assert client.get("/alerts", params={"user_id": "bob"}).json() == []


def test_mark_unknown_alert_read_is_404(client):
    resp = client.post("/alerts/nope/read", json={"user_id": "alice"})
    assert resp.status_code == 404


def test_alert_limit_is_bounded(client):
    resp = client.get("/alerts", params={"user_id": "alice", "limit": 500})
    assert resp.status_code == 422


def test_mark_all_read(client):
    _create(client, "A", _at(9), _at(10))
    _create(client, "B", _at(9), _at(10))
    _create(client, "C", _at(9), _at(10))

    resp = client.post("/alerts/read-all", json={"user_id": "alice"})

    assert resp.json() == {"success": True, "updated": 2}
    assert client.get("/alerts/unread-count", params={"user_id": "alice"}).json() == {
        "count": 0
    }
