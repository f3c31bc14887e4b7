# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the Co-Parent Scheduling Service HTTP API.
Runs against in-memory sqlite; see conftest.py for the environment.
"""

import json
import logging
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from coparent.core.config import settings
from coparent.core.database import engine
from coparent.core.dependencies import get_notification_client, get_user_service
from coparent.core.logging import JSONFormatter
from coparent.models.tables import metadata
from coparent.repositories.event_repository import EventRepository
from coparent.repositories.invitation_repository import InvitationRepository
from coparent.repositories.rotation_repository import RotationRepository
from coparent.repositories.user_repository import UserRepository
from coparent.services.webhook_security import compute_signature, extract_signing_key
from main import app

client = TestClient(app)

ALICE = {"X-User-ID": "user_alice"}
BOB = {"X-User-ID": "user_bob"}
CAROL = {"X-User-ID": "user_carol"}
DAVE = {"X-User-ID": "user_dave"}

UTC = timezone.utc


# ============================================
# Fixtures & helpers
# ============================================
@pytest.fixture(autouse=True)
def reset_database():
    """Fresh schema for every test."""
    metadata.drop_all(engine)
    metadata.create_all(engine)
    yield


def seed_user(user_id, email, first_name=None, last_name=None):
    repo = UserRepository(engine)
    with repo.transaction() as conn:
        repo.create(conn, user_id, email, first_name, last_name)


def instant(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture
def family():
    """Alice (parent_1), Bob (parent_2, may edit), Carol (grandparent, read only), two kids."""
    seed_user("user_alice", "alice@example.com", "Alice", "Martin")
    seed_user("user_bob", "bob@example.com", "Bob", "Dupont")
    seed_user("user_carol", "carol@example.com", "Carol", "Chen")
    created = client.post("/api/v1/family", json={"name": "Martin-Dupont"}, headers=ALICE)
    assert created.status_code == 201
    for email, role, can_edit in [("bob@example.com", "parent_2", True),
                                  ("carol@example.com", "grandparent", False)]:
        added = client.post(
            "/api/v1/family/members",
            json={"email": email, "role": role, "can_edit_schedule": can_edit},
            headers=ALICE,
        )
        assert added.status_code == 201
    emma = client.post(
        "/api/v1/children",
        json={"first_name": "Emma", "last_name": "Martin", "date_of_birth": "2018-05-01"},
        headers=ALICE,
    ).json()
    leo = client.post(
        "/api/v1/children",
        json={"first_name": "Leo", "last_name": "Martin", "date_of_birth": "2020-09-12"},
        headers=ALICE,
    ).json()
    return {"family_id": created.json()["id"], "emma": emma["id"], "leo": leo["id"]}


@pytest.fixture
def other_family():
    """Dave runs a separate family with one child."""
    seed_user("user_dave", "dave@example.com", "Dave", "Other")
    created = client.post("/api/v1/family", json={"name": "Other"}, headers=DAVE).json()
    child = client.post(
        "/api/v1/children",
        json={"first_name": "Zoe", "last_name": "Other", "date_of_birth": "2019-01-01"},
        headers=DAVE,
    ).json()
    return {"family_id": created["id"], "child": child["id"]}


def rotation_payload(family_id, **overrides):
    payload = {
        "family_id": family_id,
        "name": "School year",
        "pattern_type": "2-2-3",
        "start_date": "2024-01-01",
        "end_date": "2024-03-31",
        "primary_parent_id": "user_alice",
        "secondary_parent_id": "user_bob",
    }
    payload.update(overrides)
    return payload


def event_payload(child_id, start="2024-01-02T09:00:00Z", end="2024-01-02T17:00:00Z",
                  parent_id="user_bob", **extra):
    payload = {"child_id": child_id, "parent_id": parent_id,
               "start_time": start, "end_time": end}
    payload.update(extra)
    return payload


def create_event(child_id, headers=ALICE, **kwargs):
    response = client.post("/api/v1/events", json=event_payload(child_id, **kwargs),
                           headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def list_events(start="2024-01-01", end="2024-01-31", headers=ALICE, **params):
    return client.get("/api/v1/events", params={"start": start, "end": end, **params},
                      headers=headers)


# ============================================
# Health & Metrics
# ============================================
class TestHealth:
    def test_health_returns_ok_status(self):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == settings.SERVICE_NAME
        assert data["version"] == settings.SERVICE_VERSION
        assert "timestamp" in data

    def test_health_counts_families(self, family):
        assert client.get("/health").json()["families_count"] == 1

    def test_readiness(self):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_readiness_database_down(self):
        broken = MagicMock()
        broken.connect.side_effect = SQLAlchemyError("connection refused")
        with patch("coparent.controllers.system_controller.engine", broken):
            response = client.get("/health/ready")
        assert response.status_code == 503


class TestRequestID:
    def test_response_has_request_id_header(self):
        response = client.get("/health")
        assert len(response.headers.get("X-Request-ID", "")) > 0

    def test_request_id_propagated(self):
        response = client.get("/health", headers={"X-Request-ID": "req-12345"})
        assert response.headers["X-Request-ID"] == "req-12345"

    def test_error_body_carries_request_id(self):
        response = client.get("/api/v1/rotations", headers={"X-Request-ID": "req-err"})
        assert response.status_code == 401
        assert response.json()["request_id"] == "req-err"


class _JSONCapture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.setFormatter(JSONFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(json.loads(self.format(record)))


@pytest.fixture
def rotation_log():
    service_logger = logging.getLogger("coparent.services.rotation_service")
    capture = _JSONCapture()
    previous = service_logger.level
    service_logger.addHandler(capture)
    service_logger.setLevel(logging.INFO)
    yield capture.lines
    service_logger.removeHandler(capture)
    service_logger.setLevel(previous)


class TestStructuredLogging:
    def test_mutation_log_carries_request_context(self, family, rotation_log):
        response = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers={**ALICE, "X-Request-ID": "req-log-1"})
        assert response.status_code == 201
        created = [line for line in rotation_log if line["message"].startswith("Rotation created")]
        assert len(created) == 1
        assert created[0]["request_id"] == "req-log-1"
        assert created[0]["user_id"] == "user_alice"
        assert created[0]["family_id"] == family["family_id"]
        assert created[0]["logger"] == "coparent.services.rotation_service"

    def test_conflict_warning_names_family(self, family, rotation_log):
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                    headers=ALICE)
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                    headers=ALICE)
        rejected = [line for line in rotation_log if line["level"] == "WARNING"]
        assert rejected[0]["family_id"] == family["family_id"]
        assert "Rotation overlap rejected" in rejected[0]["message"]


class TestMetrics:
    def test_metrics_exposes_service_counters(self, family):
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                    headers=ALICE)
        text = client.get("/metrics").text
        assert "coparent_requests_total" in text
        assert "coparent_rotations_created_total" in text


# ============================================
# Authentication & membership
# ============================================
class TestAuth:
    def test_missing_user_header_is_401(self):
        response = client.get("/api/v1/events")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"

    def test_non_member_is_403(self):
        seed_user("user_nobody", "nobody@example.com")
        response = client.get("/api/v1/events", headers={"X-User-ID": "user_nobody"})
        assert response.status_code == 403
        assert response.json()["detail"] == "You must be a member of a family"


# ============================================
# Rotations
# ============================================
class TestRotations:
    def test_list_patterns(self, family):
        response = client.get("/api/v1/rotations/patterns", headers=ALICE)
        assert response.status_code == 200
        names = {p["pattern_type"] for p in response.json()}
        assert names == {"2-2-3", "2-2-5-5", "3-4-4-3", "alternating-weeks", "every-weekend"}

    def test_create_rotation(self, family):
        response = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE)
        assert response.status_code == 201
        data = response.json()
        assert data["pattern_type"] == "2-2-3"
        assert data["start_date"] == "2024-01-01"
        assert data["end_date"] == "2024-03-31"
        assert data["is_active"] is True
        assert data["created_by"] == "user_alice"

    def test_adjacent_rotations_allowed(self, family):
        first = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                            headers=ALICE)
        second = client.post(
            "/api/v1/rotations",
            json=rotation_payload(family["family_id"], start_date="2024-04-01",
                                  end_date="2024-06-30"),
            headers=ALICE,
        )
        assert first.status_code == 201
        assert second.status_code == 201

    def test_shared_boundary_day_conflicts(self, family):
        first = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                            headers=ALICE).json()
        response = client.post(
            "/api/v1/rotations",
            json=rotation_payload(family["family_id"], start_date="2024-03-31",
                                  end_date="2024-06-30"),
            headers=ALICE,
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "conflict"
        assert body["conflict_start"] == "2024-01-01"
        assert body["conflict_end"] == "2024-03-31"
        assert body["conflicting_rotation_id"] == first["id"]
        assert "overlaps with an existing active rotation" in body["detail"]

    def test_open_ended_rotation_blocks_everything(self, family):
        client.post("/api/v1/rotations",
                    json=rotation_payload(family["family_id"], start_date="2030-01-01",
                                          end_date=None),
                    headers=ALICE)
        response = client.post(
            "/api/v1/rotations",
            json=rotation_payload(family["family_id"], start_date="2020-01-01",
                                  end_date="2020-02-01"),
            headers=ALICE,
        )
        assert response.status_code == 409
        assert response.json()["conflict_end"] is None

    def test_same_parent_rejected_before_overlap_check(self, family):
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"], end_date=None),
                    headers=ALICE)
        response = client.post(
            "/api/v1/rotations",
            json=rotation_payload(family["family_id"], secondary_parent_id="user_alice"),
            headers=ALICE,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "constraint_violation"

    def test_end_must_follow_start(self, family):
        response = client.post(
            "/api/v1/rotations",
            json=rotation_payload(family["family_id"], end_date="2024-01-01"),
            headers=ALICE,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "End date must be after start date"

    def test_invalid_pattern(self, family):
        response = client.post("/api/v1/rotations",
                               json=rotation_payload(family["family_id"], pattern_type="1-1"),
                               headers=ALICE)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_invalid_date(self, family):
        response = client.post("/api/v1/rotations",
                               json=rotation_payload(family["family_id"], start_date="2024-02-30"),
                               headers=ALICE)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_empty_end_date_is_not_open_ended(self, family):
        response = client.post("/api/v1/rotations",
                               json=rotation_payload(family["family_id"], end_date=""),
                               headers=ALICE)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert client.get("/api/v1/rotations", headers=ALICE).json() == []
        later = client.post(
            "/api/v1/rotations",
            json=rotation_payload(family["family_id"], start_date="2030-01-01",
                                  end_date="2030-02-01"),
            headers=ALICE,
        )
        assert later.status_code == 201

    def test_parent_must_be_parenting_member(self, family):
        response = client.post(
            "/api/v1/rotations",
            json=rotation_payload(family["family_id"], secondary_parent_id="user_carol"),
            headers=ALICE,
        )
        assert response.status_code == 404

    def test_requires_edit_rights(self, family):
        response = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=CAROL)
        assert response.status_code == 403
        assert response.json()["detail"] == "You do not have permission to edit schedules"

    def test_other_family_forbidden(self, family, other_family):
        response = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=DAVE)
        assert response.status_code == 403

    def test_unknown_family(self, family):
        response = client.post("/api/v1/rotations", json=rotation_payload("no-such-family"),
                               headers=ALICE)
        assert response.status_code == 404

    def test_list_rotations_enriched(self, family):
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                    headers=ALICE)
        response = client.get("/api/v1/rotations", headers=CAROL)
        assert response.status_code == 200
        rotations = response.json()
        assert len(rotations) == 1
        assert rotations[0]["family"]["name"] == "Martin-Dupont"
        assert rotations[0]["primary_parent"]["first_name"] == "Alice"
        assert rotations[0]["secondary_parent"]["email"] == "bob@example.com"

    def test_rotation_events(self, family):
        rotation = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE).json()
        response = client.get(f"/api/v1/rotations/{rotation['id']}/events",
                              params={"start": "2024-01-01", "end": "2024-01-07"}, headers=BOB)
        assert response.status_code == 200
        events = response.json()
        assert len(events) == 7
        assert [e["parent_id"] for e in events] == [
            "user_alice", "user_alice", "user_bob", "user_bob",
            "user_alice", "user_alice", "user_alice",
        ]
        assert events[0]["parent_name"] == "Alice Martin"
        assert events[0]["date"] == "2024-01-01"

    def test_rotation_events_after_end_are_empty(self, family):
        rotation = client.post(
            "/api/v1/rotations",
            json=rotation_payload(family["family_id"], end_date="2024-01-10"),
            headers=ALICE,
        ).json()
        response = client.get(f"/api/v1/rotations/{rotation['id']}/events",
                              params={"start": "2024-02-01", "end": "2024-02-10"}, headers=ALICE)
        assert response.json() == []

    def test_rotation_events_inverted_window_is_empty(self, family):
        rotation = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE).json()
        response = client.get(f"/api/v1/rotations/{rotation['id']}/events",
                              params={"start": "2024-02-10", "end": "2024-02-01"}, headers=ALICE)
        assert response.status_code == 200
        assert response.json() == []

    def test_unknown_rotation_events_are_empty(self, family):
        response = client.get("/api/v1/rotations/missing/events",
                              params={"start": "2024-01-01", "end": "2024-01-07"}, headers=ALICE)
        assert response.status_code == 200
        assert response.json() == []

    def test_rotation_events_need_membership(self, family, other_family):
        rotation = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE).json()
        response = client.get(f"/api/v1/rotations/{rotation['id']}/events",
                              params={"start": "2024-01-01", "end": "2024-01-07"}, headers=DAVE)
        assert response.status_code == 403

    def test_soft_delete_keeps_row(self, family):
        rotation = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE).json()
        repo = RotationRepository(engine)
        with repo.connection() as conn:
            before = repo.get(conn, rotation["id"])

        refreshed = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)
        with patch("coparent.repositories.rotation_repository.utcnow", return_value=refreshed):
            response = client.delete(f"/api/v1/rotations/{rotation['id']}", headers=ALICE)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        with repo.connection() as conn:
            after = repo.get(conn, rotation["id"])
        assert after["is_active"] is False
        assert after["updated_at"] == refreshed
        unchanged = {k for k in before if k not in ("is_active", "updated_at")}
        assert {k: after[k] for k in unchanged} == {k: before[k] for k in unchanged}
        assert client.get("/api/v1/rotations", headers=ALICE).json() == []

    def test_deleted_rotation_no_longer_blocks(self, family):
        rotation = client.post("/api/v1/rotations",
                               json=rotation_payload(family["family_id"], end_date=None),
                               headers=ALICE).json()
        client.delete(f"/api/v1/rotations/{rotation['id']}", headers=ALICE)
        response = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE)
        assert response.status_code == 201

    def test_delete_missing_rotation(self, family):
        response = client.delete("/api/v1/rotations/missing", headers=ALICE)
        assert response.status_code == 404

    def test_delete_requires_edit_rights(self, family):
        rotation = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE).json()
        response = client.delete(f"/api/v1/rotations/{rotation['id']}", headers=CAROL)
        assert response.status_code == 403


# ============================================
# Visitation events
# ============================================
class TestVisitationEvents:
    def test_create_event(self, family):
        event = create_event(family["emma"], notes="Pick up after school")
        assert event["child_id"] == family["emma"]
        assert event["parent_id"] == "user_bob"
        assert event["created_by"] == "user_alice"
        assert instant(event["start_time"]) == datetime(2024, 1, 2, 9, tzinfo=UTC)
        assert event["notes"] == "Pick up after school"

    def test_offset_times_are_stored_in_utc(self, family):
        event = create_event(family["emma"], start="2024-01-02T11:00:00+02:00",
                             end="2024-01-02T19:00:00+02:00")
        assert instant(event["start_time"]) == datetime(2024, 1, 2, 9, tzinfo=UTC)

    def test_overlap_same_child_conflicts(self, family):
        existing = create_event(family["emma"])
        response = client.post(
            "/api/v1/events",
            json=event_payload(family["emma"], start="2024-01-02T14:00:00Z",
                               end="2024-01-02T20:00:00Z"),
            headers=ALICE,
        )
        assert response.status_code == 409
        body = response.json()
        assert body["conflicting_event_id"] == existing["id"]
        assert "2024-01-02 09:00 UTC to 2024-01-02 17:00 UTC" in body["detail"]
        assert instant(body["conflict_start"]) == datetime(2024, 1, 2, 9, tzinfo=UTC)

    def test_other_child_never_conflicts(self, family):
        create_event(family["emma"])
        create_event(family["leo"], start="2024-01-02T14:00:00Z", end="2024-01-02T20:00:00Z")

    def test_touching_boundary_allowed(self, family):
        create_event(family["emma"], start="2024-01-02T09:00:00Z", end="2024-01-02T12:00:00Z")
        create_event(family["emma"], start="2024-01-02T12:00:00Z", end="2024-01-02T17:00:00Z")

    def test_end_before_start(self, family):
        response = client.post(
            "/api/v1/events",
            json=event_payload(family["emma"], start="2024-01-02T17:00:00Z",
                               end="2024-01-02T09:00:00Z"),
            headers=ALICE,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "End time must be after start time"

    def test_recurring_needs_rule(self, family):
        response = client.post("/api/v1/events",
                               json=event_payload(family["emma"], is_recurring=True),
                               headers=ALICE)
        assert response.status_code == 400

    def test_recurring_with_rule(self, family):
        event = create_event(
            family["emma"], is_recurring=True,
            recurrence_rule={"frequency": "weekly", "interval": 2, "days_of_week": [5, 6]},
        )
        assert event["recurrence_rule"]["frequency"] == "weekly"
        assert event["recurrence_rule"]["days_of_week"] == [5, 6]

    def test_parent_must_be_a_parent(self, family):
        response = client.post("/api/v1/events",
                               json=event_payload(family["emma"], parent_id="user_carol"),
                               headers=ALICE)
        assert response.status_code == 404

    def test_child_of_other_family(self, family, other_family):
        response = client.post("/api/v1/events", json=event_payload(other_family["child"]),
                               headers=ALICE)
        assert response.status_code == 404
        assert response.json()["detail"] == "Child not found in your family"

    def test_requires_edit_rights(self, family):
        response = client.post("/api/v1/events", json=event_payload(family["emma"]),
                               headers=CAROL)
        assert response.status_code == 403

    def test_list_events_window(self, family):
        create_event(family["emma"])
        create_event(family["leo"], start="2024-01-05T09:00:00Z", end="2024-01-05T10:00:00Z")
        assert list_events("2024-01-01", "2024-01-01").json() == []
        events = list_events("2024-01-02", "2024-01-31").json()
        assert len(events) == 2
        assert events[0]["child_id"] == family["emma"]
        assert events[0]["parent_name"] == "Bob Dupont"
        assert events[0]["child"]["first_name"] == "Emma"

    def test_list_events_filtered_by_child(self, family):
        create_event(family["emma"])
        create_event(family["leo"])
        events = list_events(child_id=family["leo"]).json()
        assert [e["child_id"] for e in events] == [family["leo"]]

    def test_list_events_bad_window(self, family):
        response = list_events("2024-01-31", "2024-01-01")
        assert response.status_code == 400

    def test_update_notes_only(self, family):
        event = create_event(family["emma"])
        response = client.patch(f"/api/v1/events/{event['id']}", json={"notes": "Bring boots"},
                                headers=BOB)
        assert response.status_code == 200
        assert response.json()["notes"] == "Bring boots"
        assert response.json()["start_time"] == event["start_time"]

    def test_update_excludes_itself(self, family):
        event = create_event(family["emma"])
        response = client.patch(
            f"/api/v1/events/{event['id']}",
            json={"start_time": "2024-01-02T10:00:00Z", "end_time": "2024-01-02T18:00:00Z"},
            headers=ALICE,
        )
        assert response.status_code == 200
        assert instant(response.json()["end_time"]) == datetime(2024, 1, 2, 18, tzinfo=UTC)

    def test_update_into_conflict_is_rejected(self, family):
        create_event(family["emma"])
        other = create_event(family["emma"], start="2024-01-03T09:00:00Z",
                             end="2024-01-03T17:00:00Z")
        response = client.patch(
            f"/api/v1/events/{other['id']}",
            json={"start_time": "2024-01-02T16:00:00Z", "end_time": "2024-01-02T20:00:00Z"},
            headers=ALICE,
        )
        assert response.status_code == 409
        stored = [e for e in list_events().json() if e["id"] == other["id"]][0]
        assert stored["start_time"] == other["start_time"]

    def test_update_moving_child_checks_new_child(self, family):
        create_event(family["leo"])
        event = create_event(family["emma"])
        response = client.patch(f"/api/v1/events/{event['id']}",
                                json={"child_id": family["leo"]}, headers=ALICE)
        assert response.status_code == 409

    def test_guard_skipped_when_times_unchanged(self, family):
        event = create_event(family["emma"])
        # Legacy overlapping row written straight to storage.
        repo = EventRepository(engine)
        with repo.transaction() as conn:
            repo.create(conn, family["family_id"], family["emma"], "user_bob",
                        datetime(2024, 1, 2, 10, tzinfo=UTC), datetime(2024, 1, 2, 11, tzinfo=UTC),
                        created_by="user_alice")
        response = client.patch(f"/api/v1/events/{event['id']}",
                                json={"is_holiday_exception": True}, headers=ALICE)
        assert response.status_code == 200
        assert response.json()["is_holiday_exception"] is True

    def test_update_missing_event(self, family):
        response = client.patch("/api/v1/events/missing", json={"notes": "x"}, headers=ALICE)
        assert response.status_code == 404

    def test_delete_event(self, family):
        event = create_event(family["emma"])
        response = client.delete(f"/api/v1/events/{event['id']}", headers=ALICE)
        assert response.status_code == 200
        assert list_events().json() == []
        assert client.delete(f"/api/v1/events/{event['id']}", headers=ALICE).status_code == 404

    def test_parent_is_notified(self, family):
        with patch.object(get_notification_client(), "schedule_changed") as notify:
            create_event(family["emma"])
        notify.assert_called_once()
        assert notify.call_args[0][0] == "bob@example.com"

    def test_no_notification_for_own_event(self, family):
        with patch.object(get_notification_client(), "schedule_changed") as notify:
            create_event(family["emma"], headers=BOB)
        notify.assert_not_called()


# ============================================
# Calendar
# ============================================
class TestCalendar:
    def test_merges_manual_and_rotation_entries(self, family):
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                    headers=ALICE)
        event = create_event(family["emma"])
        response = client.get("/api/v1/calendar", params={"start": "2024-01-01",
                                                          "end": "2024-01-03"}, headers=CAROL)
        assert response.status_code == 200
        data = response.json()
        assert data["family_id"] == family["family_id"]
        assert data["start"] == "2024-01-01"
        assert data["end"] == "2024-01-03"
        entries = data["entries"]
        assert [e["source"] for e in entries] == ["rotation", "rotation", "manual", "rotation"]
        manual = entries[2]
        assert manual["id"] == event["id"]
        assert manual["title"] == "Emma - Bob"
        assert entries[0]["title"] == "School year - Alice Martin"
        assert entries[0]["all_day"] is True

    def test_rotation_days_do_not_block_events(self, family):
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                    headers=ALICE)
        create_event(family["emma"], parent_id="user_bob", start="2024-01-01T09:00:00Z",
                     end="2024-01-01T17:00:00Z")

    def test_default_window_around_center(self, family):
        response = client.get("/api/v1/calendar", params={"center": "2024-03-31"}, headers=ALICE)
        data = response.json()
        assert data["start"] == "2024-02-29"
        assert data["end"] == "2024-05-31"

    @pytest.mark.parametrize("params", [{"start": "2024-01-01"}, {"end": "2024-01-31"}])
    def test_half_specified_window_rejected(self, family, params):
        response = client.get("/api/v1/calendar", params=params, headers=ALICE)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_inactive_rotations_are_hidden(self, family):
        rotation = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE).json()
        client.delete(f"/api/v1/rotations/{rotation['id']}", headers=ALICE)
        response = client.get("/api/v1/calendar", params={"start": "2024-01-01",
                                                          "end": "2024-01-03"}, headers=ALICE)
        assert response.json()["entries"] == []


# ============================================
# Swap requests
# ============================================
class TestSwaps:
    def request_swap(self, event_id, headers=BOB, start="2024-01-04T09:00:00Z",
                     end="2024-01-04T17:00:00Z"):
        return client.post(
            "/api/v1/swaps",
            json={"event_id": event_id, "new_start_time": start, "new_end_time": end,
                  "reason": "Work trip"},
            headers=headers,
        )

    def test_event_parent_asks_creator(self, family):
        event = create_event(family["emma"])
        response = self.request_swap(event["id"])
        assert response.status_code == 201
        swap = response.json()
        assert swap["status"] == "pending"
        assert swap["requested_by"] == "user_bob"
        assert swap["requested_to"] == "user_alice"

    def test_cannot_ask_yourself(self, family):
        event = create_event(family["emma"], parent_id="user_alice")
        response = self.request_swap(event["id"], headers=ALICE)
        assert response.status_code == 400

    def test_approve_moves_event(self, family):
        event = create_event(family["emma"])
        swap = self.request_swap(event["id"]).json()
        response = client.post(f"/api/v1/swaps/{swap['id']}/approve", headers=ALICE)
        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["responded_at"] is not None
        moved = list_events().json()[0]
        assert instant(moved["start_time"]) == datetime(2024, 1, 4, 9, tzinfo=UTC)

    def test_approve_rechecks_overlap(self, family):
        event = create_event(family["emma"])
        swap = self.request_swap(event["id"]).json()
        create_event(family["emma"], start="2024-01-04T08:00:00Z", end="2024-01-04T10:00:00Z")
        response = client.post(f"/api/v1/swaps/{swap['id']}/approve", headers=ALICE)
        assert response.status_code == 409
        pending = client.get("/api/v1/swaps", params={"status": "pending"}, headers=ALICE).json()
        assert [s["id"] for s in pending] == [swap["id"]]

    def test_only_recipient_may_approve(self, family):
        event = create_event(family["emma"])
        swap = self.request_swap(event["id"]).json()
        response = client.post(f"/api/v1/swaps/{swap['id']}/approve", headers=BOB)
        assert response.status_code == 403

    def test_reject_then_approve(self, family):
        event = create_event(family["emma"])
        swap = self.request_swap(event["id"]).json()
        rejected = client.post(f"/api/v1/swaps/{swap['id']}/reject", headers=ALICE)
        assert rejected.json()["status"] == "rejected"
        again = client.post(f"/api/v1/swaps/{swap['id']}/approve", headers=ALICE)
        assert again.status_code == 400
        assert again.json()["detail"] == "Swap request is already rejected"

    def test_requester_cancels(self, family):
        event = create_event(family["emma"])
        swap = self.request_swap(event["id"]).json()
        assert client.post(f"/api/v1/swaps/{swap['id']}/cancel", headers=ALICE).status_code == 403
        cancelled = client.post(f"/api/v1/swaps/{swap['id']}/cancel", headers=BOB)
        assert cancelled.json()["status"] == "cancelled"

    def test_list_swaps(self, family):
        event = create_event(family["emma"])
        self.request_swap(event["id"])
        swaps = client.get("/api/v1/swaps", headers=ALICE).json()
        assert len(swaps) == 1
        assert swaps[0]["event"]["id"] == event["id"]
        assert client.get("/api/v1/swaps", params={"status": "bogus"},
                          headers=ALICE).status_code == 400

    def test_recipient_is_notified(self, family):
        event = create_event(family["emma"])
        with patch.object(get_notification_client(), "swap_requested") as notify:
            self.request_swap(event["id"])
        assert notify.call_args[0][:2] == ("alice@example.com", "Bob Dupont")


# ============================================
# Family & children
# ============================================
class TestFamily:
    def test_no_family_yet(self):
        seed_user("user_alice", "alice@example.com", "Alice", "Martin")
        response = client.get("/api/v1/family", headers=ALICE)
        assert response.status_code == 200
        assert response.json() is None

    def test_create_requires_known_user(self):
        response = client.post("/api/v1/family", json={"name": "Ghosts"}, headers=ALICE)
        assert response.status_code == 404

    def test_one_family_per_user(self, family):
        response = client.post("/api/v1/family", json={"name": "Second"}, headers=ALICE)
        assert response.status_code == 400

    def test_blank_name_rejected(self):
        seed_user("user_alice", "alice@example.com")
        response = client.post("/api/v1/family", json={"name": "   "}, headers=ALICE)
        assert response.status_code == 422

    def test_family_detail(self, family):
        data = client.get("/api/v1/family", headers=BOB).json()
        assert data["name"] == "Martin-Dupont"
        members = {m["user_id"]: m for m in data["members"]}
        assert members["user_alice"]["role_label"] == "Primary Parent"
        assert members["user_carol"]["display_name"] == "Carol Chen"
        assert [c["first_name"] for c in data["children"]] == ["Emma", "Leo"]

    def test_add_unknown_user(self, family):
        response = client.post("/api/v1/family/members",
                               json={"email": "ghost@example.com", "role": "attorney"},
                               headers=ALICE)
        assert response.status_code == 404

    def test_add_invalid_role(self, family):
        seed_user("user_erin", "erin@example.com")
        response = client.post("/api/v1/family/members",
                               json={"email": "erin@example.com", "role": "uncle"},
                               headers=ALICE)
        assert response.status_code == 400

    def test_add_member_of_other_family(self, family, other_family):
        response = client.post("/api/v1/family/members",
                               json={"email": "dave@example.com", "role": "attorney"},
                               headers=ALICE)
        assert response.status_code == 400

    def test_read_only_member_cannot_manage(self, family):
        seed_user("user_erin", "erin@example.com")
        response = client.post("/api/v1/family/members",
                               json={"email": "erin@example.com", "role": "attorney"},
                               headers=CAROL)
        assert response.status_code == 403

    def test_update_and_remove_member(self, family):
        members = client.get("/api/v1/family", headers=ALICE).json()["members"]
        carol = [m for m in members if m["user_id"] == "user_carol"][0]
        updated = client.patch(f"/api/v1/family/members/{carol['id']}",
                               json={"role": "attorney", "can_edit_schedule": True},
                               headers=ALICE)
        assert updated.status_code == 200
        assert updated.json()["role"] == "attorney"
        assert updated.json()["can_edit_schedule"] is True
        removed = client.delete(f"/api/v1/family/members/{carol['id']}", headers=ALICE)
        assert removed.status_code == 200
        assert client.get("/api/v1/family", headers=CAROL).json() is None

    def test_cannot_remove_yourself(self, family):
        members = client.get("/api/v1/family", headers=ALICE).json()["members"]
        alice = [m for m in members if m["user_id"] == "user_alice"][0]
        response = client.delete(f"/api/v1/family/members/{alice['id']}", headers=ALICE)
        assert response.status_code == 400


class TestChildren:
    def test_list_children(self, family):
        children = client.get("/api/v1/children", headers=CAROL).json()
        assert [c["first_name"] for c in children] == ["Emma", "Leo"]

    def test_future_birth_date(self, family):
        response = client.post(
            "/api/v1/children",
            json={"first_name": "Baby", "last_name": "Martin", "date_of_birth": "2999-01-01"},
            headers=ALICE,
        )
        assert response.status_code == 400

    def test_update_child(self, family):
        response = client.patch(f"/api/v1/children/{family['emma']}",
                                json={"first_name": "Emmy"}, headers=ALICE)
        assert response.status_code == 200
        assert response.json()["first_name"] == "Emmy"
        assert response.json()["last_name"] == "Martin"

    def test_child_mutations_need_edit_rights(self, family):
        response = client.delete(f"/api/v1/children/{family['emma']}", headers=CAROL)
        assert response.status_code == 403

    def test_delete_child_removes_events(self, family):
        create_event(family["emma"])
        response = client.delete(f"/api/v1/children/{family['emma']}", headers=ALICE)
        assert response.status_code == 200
        assert list_events().json() == []

    def test_other_family_child_not_found(self, family, other_family):
        response = client.patch(f"/api/v1/children/{other_family['child']}",
                                json={"first_name": "X"}, headers=ALICE)
        assert response.status_code == 404


# ============================================
# Invitations
# ============================================
class TestInvitations:
    def test_email_invitation(self, family):
        with patch.object(get_notification_client(), "notify") as notify:
            response = client.post("/api/v1/invitations/email",
                                   json={"email": "erin@example.com", "role": "attorney"},
                                   headers=ALICE)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert len(data["token"]) == 64
        assert notify.call_args[0][0] == "erin@example.com"

    def test_duplicate_email_invitation(self, family):
        body = {"email": "erin@example.com", "role": "attorney"}
        client.post("/api/v1/invitations/email", json=body, headers=ALICE)
        response = client.post("/api/v1/invitations/email", json=body, headers=ALICE)
        assert response.status_code == 409

    def test_parent_1_cannot_be_invited(self, family):
        response = client.post("/api/v1/invitations/link", json={"role": "parent_1"},
                               headers=ALICE)
        assert response.status_code == 400

    def test_preview_is_public(self, family):
        token = client.post("/api/v1/invitations/link", json={"role": "grandparent"},
                            headers=ALICE).json()["token"]
        response = client.get(f"/api/v1/invitations/token/{token}")
        assert response.status_code == 200
        assert response.json()["family_name"] == "Martin-Dupont"
        assert response.json()["inviter_name"] == "Alice Martin"

    def test_unknown_token(self):
        assert client.get("/api/v1/invitations/token/nope").status_code == 404

    def test_accept_invitation(self, family):
        seed_user("user_erin", "erin@example.com", "Erin", "Law")
        token = client.post("/api/v1/invitations/link",
                            json={"role": "attorney", "can_edit_schedule": False},
                            headers=ALICE).json()["token"]
        response = client.post("/api/v1/invitations/accept", json={"token": token},
                               headers={"X-User-ID": "user_erin"})
        assert response.status_code == 200
        assert response.json() == {"family_id": family["family_id"],
                                   "family_name": "Martin-Dupont", "role": "attorney"}
        again = client.get(f"/api/v1/invitations/token/{token}")
        assert again.status_code == 400
        assert again.json()["detail"] == "This invitation has already been accepted"

    def test_accept_when_already_member(self, family):
        token = client.post("/api/v1/invitations/link", json={"role": "attorney"},
                            headers=ALICE).json()["token"]
        response = client.post("/api/v1/invitations/accept", json={"token": token}, headers=BOB)
        assert response.status_code == 409

    def test_expired_invitation(self, family):
        invitation = client.post("/api/v1/invitations/link", json={"role": "attorney"},
                                 headers=ALICE).json()
        later = datetime(2099, 1, 1, tzinfo=UTC)
        with patch("coparent.services.invitation_service.utcnow", return_value=later):
            response = client.get(f"/api/v1/invitations/token/{invitation['token']}")
        assert response.status_code == 400
        assert response.json()["detail"] == "This invitation has expired"
        repo = InvitationRepository(engine)
        with repo.connection() as conn:
            assert repo.get(conn, invitation["id"])["status"] == "expired"

    def test_list_and_revoke(self, family):
        invitation = client.post("/api/v1/invitations/link", json={"role": "attorney"},
                                 headers=ALICE).json()
        listed = client.get("/api/v1/invitations", headers=BOB).json()
        assert listed[0]["invited_by"] == "Alice Martin"
        assert client.post(f"/api/v1/invitations/{invitation['id']}/revoke",
                           headers=CAROL).status_code == 403
        revoked = client.post(f"/api/v1/invitations/{invitation['id']}/revoke", headers=ALICE)
        assert revoked.json()["status"] == "revoked"
        again = client.post(f"/api/v1/invitations/{invitation['id']}/revoke", headers=ALICE)
        assert again.status_code == 400


# ============================================
# Audit trail
# ============================================
class TestAudit:
    def test_mutations_are_recorded(self, family):
        rotation = client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                               headers=ALICE).json()
        client.delete(f"/api/v1/rotations/{rotation['id']}", headers=BOB)
        entries = client.get("/api/v1/audit", headers=CAROL).json()
        actions = [e["action"] for e in entries]
        assert actions[0] == "rotation.delete"
        assert "rotation.create" in actions
        assert "family.create" in actions

    def test_filter_by_action(self, family):
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                    headers=ALICE)
        entries = client.get("/api/v1/audit", params={"action": "rotation.create"},
                             headers=ALICE).json()
        assert len(entries) == 1
        assert entries[0]["new_data"]["start_date"] == "2024-01-01"
        assert entries[0]["user_id"] == "user_alice"

    def test_limit(self, family):
        entries = client.get("/api/v1/audit", params={"limit": 2}, headers=ALICE).json()
        assert len(entries) == 2


# ============================================
# Identity webhooks
# ============================================
class TestUserWebhook:
    def post_signed(self, event, msg_id="msg_1", ts=None, tamper=False):
        body = json.dumps(event).encode()
        ts = str(ts if ts is not None else int(time.time()))
        key = extract_signing_key(settings.WEBHOOK_SECRET)
        signature = compute_signature(key, msg_id, ts, body)
        return client.post(
            "/api/v1/webhooks/users",
            content=body + (b" " if tamper else b""),
            headers={"webhook-id": msg_id, "webhook-timestamp": ts,
                     "webhook-signature": f"v1,{signature}",
                     "content-type": "application/json"},
        )

    @staticmethod
    def user_event(event_type, user_id="user_zed", email="zed@example.com", first="Zed"):
        return {
            "type": event_type,
            "data": {
                "id": user_id,
                "first_name": first,
                "last_name": "Zimmer",
                "primary_email_address_id": "em_1",
                "email_addresses": [{"id": "em_1", "email_address": email}],
            },
        }

    def test_created_then_updated(self):
        first = self.post_signed(self.user_event("user.created"))
        assert first.status_code == 200
        assert first.json() == {"status": "created", "user_id": "user_zed"}
        second = self.post_signed(self.user_event("user.updated", first="Zeke"), msg_id="msg_2")
        assert second.json()["status"] == "updated"
        repo = UserRepository(engine)
        with repo.connection() as conn:
            assert repo.get(conn, "user_zed")["first_name"] == "Zeke"

    def test_signed_up_user_can_create_family(self):
        self.post_signed(self.user_event("user.created"))
        response = client.post("/api/v1/family", json={"name": "Zimmer"},
                               headers={"X-User-ID": "user_zed"})
        assert response.status_code == 201

    def test_deleted(self):
        self.post_signed(self.user_event("user.created"))
        response = self.post_signed({"type": "user.deleted", "data": {"id": "user_zed"}})
        assert response.json()["status"] == "deleted"
        missing = self.post_signed({"type": "user.deleted", "data": {"id": "user_zed"}})
        assert missing.json()["status"] == "missing"

    def test_delete_blocked_by_schedule_records(self, family):
        client.post("/api/v1/rotations", json=rotation_payload(family["family_id"]),
                    headers=ALICE)
        response = self.post_signed({"type": "user.deleted", "data": {"id": "user_bob"}})
        assert response.status_code == 409

    def test_other_events_ignored(self):
        response = self.post_signed({"type": "session.created", "data": {}})
        assert response.json() == {"status": "ignored", "type": "session.created"}

    def test_missing_primary_email(self):
        event = self.user_event("user.created")
        event["data"]["primary_email_address_id"] = "em_other"
        assert self.post_signed(event).status_code == 400

    def test_bad_signature(self):
        response = self.post_signed(self.user_event("user.created"), tamper=True)
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid webhook signature"

    def test_stale_timestamp(self):
        response = self.post_signed(self.user_event("user.created"),
                                    ts=int(time.time()) - 3600)
        assert response.status_code == 401

    def test_unsigned_request(self):
        response = client.post("/api/v1/webhooks/users", json=self.user_event("user.created"))
        assert response.status_code == 401

    def test_secret_not_configured(self):
        with patch.object(get_user_service(), "_secret", ""):
            response = client.post("/api/v1/webhooks/users", json={})
        assert response.status_code == 503
