# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Visitation schedule — event CRUD and the merged calendar view.
Coordinates the overlap guard, audit trail, metrics, and notifications.
"""

from datetime import date, datetime
from typing import Any, Optional

from coparent.core.config import settings
from coparent.core.errors import ConflictError, NotFoundError, ValidationError
from coparent.core.logging import get_logger
from coparent.metrics.prometheus import SCHEDULE_CONFLICTS, VISITATION_EVENTS
from coparent.repositories.audit_repository import AuditRepository
from coparent.repositories.event_repository import EventRepository
from coparent.repositories.user_repository import UserRepository
from coparent.services.access import FamilyAccess, assert_can_edit, format_user_display_name
from coparent.services.calendar_view import merge_calendar
from coparent.services.constraints import (
    check_event_times,
    check_query_window,
    check_recurrence,
)
from coparent.services.dates import (
    add_days,
    date_range_around_center,
    instant_to_date,
    parse_date,
    to_instant_at_start_of_day,
    to_utc,
    today,
)
from coparent.services.notification_client import NotificationClient
from coparent.services.overlap import find_conflicting_event
from coparent.services.rotation_service import RotationService

logger = get_logger(__name__)

EVENT_FIELDS = (
    "child_id", "parent_id", "start_time", "end_time", "is_recurring",
    "recurrence_rule", "is_holiday_exception", "notes",
)
NULLABLE_FIELDS = frozenset({"recurrence_rule", "notes"})


def _fmt(value: datetime) -> str:
    return to_utc(value).strftime("%Y-%m-%d %H:%M UTC")


def _snapshot(event: dict[str, Any]) -> dict[str, Any]:
    return {field: event[field] for field in EVENT_FIELDS}


def window_instants(start: date, end: date):
    """Half-open instant window covering every day from ``start`` to ``end``."""
    return to_instant_at_start_of_day(start), to_instant_at_start_of_day(add_days(end, 1))


class ScheduleService:
    """Business logic for persisted visitation events."""

    def __init__(
        self,
        event_repo: EventRepository,
        user_repo: UserRepository,
        audit_repo: AuditRepository,
        access: FamilyAccess,
        rotation_service: RotationService,
        notification_client: NotificationClient,
    ) -> None:
        self._events = event_repo
        self._users = user_repo
        self._audit = audit_repo
        self._access = access
        self._rotations = rotation_service
        self._notification = notification_client

    # ── Guard ──

    def assert_no_conflict(self, conn, child_id: str, start_time: datetime,
                            end_time: datetime, exclude_event_id: Optional[str] = None) -> None:
        candidates = self._events.find_overlapping(
            conn, child_id, start_time, end_time, exclude_event_id
        )
        conflict = find_conflicting_event(
            candidates, child_id, start_time, end_time, exclude_event_id
        )
        if conflict is None:
            return
        SCHEDULE_CONFLICTS.labels(kind="visitation").inc()
        logger.warning("Visitation overlap rejected child=%s conflicting_event=%s",
                       child_id, conflict["id"])
        raise ConflictError(
            "Schedule conflict: This child already has a visitation event from "
            f"{_fmt(conflict['start_time'])} to {_fmt(conflict['end_time'])}",
            conflict_start=conflict["start_time"],
            conflict_end=conflict["end_time"],
            details={"conflicting_event_id": conflict["id"]},
        )

    # ── Commands ──

    def create_event(
        self,
        user_id: str,
        child_id: str,
        parent_id: str,
        start_time: datetime,
        end_time: datetime,
        is_recurring: bool = False,
        recurrence_rule: Optional[dict[str, Any]] = None,
        is_holiday_exception: bool = False,
        notes: Optional[str] = None,
    ) -> dict[str, Any]:
        start_time, end_time = to_utc(start_time), to_utc(end_time)
        check_event_times(start_time, end_time)
        check_recurrence(is_recurring, recurrence_rule)

        with self._events.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "modify the schedule")
            family_id = member["family_id"]
            self._access.child_in_family(conn, child_id, family_id, lock=True)
            self._access.parent_in_family(conn, parent_id, family_id)
            self.assert_no_conflict(conn, child_id, start_time, end_time)

            event = self._events.create(
                conn, family_id, child_id, parent_id, start_time, end_time,
                created_by=user_id, is_recurring=is_recurring,
                recurrence_rule=recurrence_rule,
                is_holiday_exception=is_holiday_exception, notes=notes,
            )
            self._audit.record(conn, family_id, user_id, "schedule.create",
                               "visitation_event", event["id"], new_data=_snapshot(event))
            parent = self._users.get(conn, parent_id)

        VISITATION_EVENTS.labels(action="create").inc()
        logger.info("Visitation event created id=%s child=%s parent=%s",
                    event["id"], child_id, parent_id, extra={"family_id": family_id})
        if parent_id != user_id and parent:
            self._notification.schedule_changed(
                parent["email"],
                f"A visitation was scheduled for you from {_fmt(start_time)} to {_fmt(end_time)}.",
                family_id,
            )
        return event

    def update_event(self, user_id: str, event_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update. The guard runs only when child or times change."""
        changes = {k: v for k, v in changes.items() if k in EVENT_FIELDS}
        for key in ("start_time", "end_time"):
            if changes.get(key) is not None:
                changes[key] = to_utc(changes[key])

        with self._events.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "modify the schedule")
            family_id = member["family_id"]
            existing = self._events.get(conn, event_id)
            if existing is None or existing["family_id"] != family_id:
                raise NotFoundError("Visitation event not found")

            merged = _snapshot(existing)
            for key, value in changes.items():
                if value is None and key not in NULLABLE_FIELDS:
                    continue
                merged[key] = value
            check_event_times(merged["start_time"], merged["end_time"])
            check_recurrence(merged["is_recurring"], merged["recurrence_rule"])

            if merged["parent_id"] != existing["parent_id"]:
                self._access.parent_in_family(conn, merged["parent_id"], family_id)

            changing = (
                merged["child_id"] != existing["child_id"]
                or merged["start_time"] != existing["start_time"]
                or merged["end_time"] != existing["end_time"]
            )
            if changing:
                self._access.child_in_family(conn, merged["child_id"], family_id, lock=True)
                self.assert_no_conflict(conn, merged["child_id"], merged["start_time"],
                                         merged["end_time"], exclude_event_id=event_id)

            updated = self._events.update(conn, event_id, **merged)
            self._audit.record(conn, family_id, user_id, "schedule.update",
                               "visitation_event", event_id,
                               old_data=_snapshot(existing), new_data=_snapshot(updated))

        VISITATION_EVENTS.labels(action="update").inc()
        logger.info("Visitation event updated id=%s guard_checked=%s", event_id, changing,
                    extra={"family_id": family_id})
        return updated

    def delete_event(self, user_id: str, event_id: str) -> dict[str, Any]:
        """Hard delete. Swap requests for the event go with it."""
        with self._events.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "modify the schedule")
            event = self._events.get(conn, event_id)
            if event is None or event["family_id"] != member["family_id"]:
                raise NotFoundError("Visitation event not found")
            self._audit.record(conn, member["family_id"], user_id, "schedule.delete",
                               "visitation_event", event_id, old_data=_snapshot(event))
            self._events.delete(conn, event_id)

        VISITATION_EVENTS.labels(action="delete").inc()
        logger.info("Visitation event deleted id=%s", event_id,
                    extra={"family_id": member["family_id"]})
        return {"success": True}

    # ── Queries ──

    def list_events(
        self,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        child_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Events overlapping the inclusive date window, ordered by start."""
        start = parse_date(start_date) if start_date else today()
        end = (parse_date(end_date) if end_date
               else add_days(start, settings.DEFAULT_EVENT_QUERY_DAYS))
        check_query_window(start, end)
        window_start, window_end = window_instants(start, end)
        with self._events.connection() as conn:
            member = self._access.current_membership(conn, user_id)
            events = self._events.list_in_window(
                conn, member["family_id"], window_start, window_end, child_id
            )
        for event in events:
            event["parent_name"] = format_user_display_name(event["parent"])
        return events

    def get_calendar(
        self,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        center: Optional[str] = None,
    ) -> dict[str, Any]:
        """Manual events and rotation days for the caller's family in one ordered list."""
        if (start_date is None) != (end_date is None):
            raise ValidationError("Provide both start and end, or neither")
        if start_date is not None:
            start, end = parse_date(start_date), parse_date(end_date)
            check_query_window(start, end)
        else:
            span = date_range_around_center(parse_date(center) if center else today())
            start, end = instant_to_date(span.start), instant_to_date(span.end)

        window_start, window_end = window_instants(start, end)
        with self._events.connection() as conn:
            member = self._access.current_membership(conn, user_id)
            family_id = member["family_id"]
            events = self._events.list_in_window(conn, family_id, window_start, window_end)
            virtual = self._rotations.virtual_events_for_family(conn, family_id, start, end)

        return {
            "family_id": family_id,
            "start": start,
            "end": end,
            "entries": merge_calendar(events, virtual),
        }
