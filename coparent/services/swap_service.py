# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Swap negotiation — request, approve, reject, cancel.
Approval rewrites the event's times, so it goes through the visitation guard again.
"""

from datetime import datetime
from typing import Any, Optional

from coparent.core.errors import ConstraintError, NotFoundError, PermissionDeniedError, ValidationError
from coparent.core.logging import get_logger
from coparent.metrics.prometheus import SWAP_REQUESTS
from coparent.models.domain import SwapStatus
from coparent.repositories.audit_repository import AuditRepository
from coparent.repositories.event_repository import EventRepository
from coparent.repositories.swap_repository import SwapRepository
from coparent.repositories.user_repository import UserRepository
from coparent.services.access import FamilyAccess, format_user_display_name
from coparent.services.constraints import check_event_times
from coparent.services.dates import to_utc
from coparent.services.notification_client import NotificationClient
from coparent.services.schedule_service import ScheduleService

logger = get_logger(__name__)


def parse_swap_status(value: Optional[str]) -> Optional[SwapStatus]:
    if value is None:
        return None
    try:
        return SwapStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid swap status '{value}'")


class SwapService:
    def __init__(
        self,
        swap_repo: SwapRepository,
        event_repo: EventRepository,
        user_repo: UserRepository,
        audit_repo: AuditRepository,
        access: FamilyAccess,
        schedule_service: ScheduleService,
        notification_client: NotificationClient,
    ) -> None:
        self._swaps = swap_repo
        self._events = event_repo
        self._users = user_repo
        self._audit = audit_repo
        self._access = access
        self._schedule = schedule_service
        self._notification = notification_client

    def create_swap(self, user_id: str, event_id: str, new_start_time: datetime,
                    new_end_time: datetime, reason: str) -> dict[str, Any]:
        new_start_time, new_end_time = to_utc(new_start_time), to_utc(new_end_time)
        check_event_times(new_start_time, new_end_time)

        with self._swaps.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            family_id = member["family_id"]
            event = self._events.get(conn, event_id)
            if event is None or event["family_id"] != family_id:
                raise NotFoundError("Visitation event not found")

            # The event's parent asks the creator; anyone else asks the event's parent.
            requested_to = event["created_by"] if event["parent_id"] == user_id else event["parent_id"]
            if requested_to == user_id:
                raise ConstraintError("You cannot send a swap request to yourself")

            swap = self._swaps.create(conn, family_id, event_id, user_id, requested_to,
                                      new_start_time, new_end_time, reason)
            self._audit.record(conn, family_id, user_id, "swap.create", "swap_request",
                               swap["id"], new_data={
                                   "event_id": event_id, "requested_to": requested_to,
                                   "new_start_time": new_start_time,
                                   "new_end_time": new_end_time, "reason": reason,
                               })
            people = self._users.get_many(conn, [user_id, requested_to])

        SWAP_REQUESTS.labels(status=SwapStatus.PENDING.value).inc()
        logger.info("Swap requested id=%s event=%s to=%s",
                    swap["id"], event_id, requested_to, extra={"family_id": family_id})
        recipient = people.get(requested_to)
        if recipient:
            self._notification.swap_requested(
                recipient["email"], format_user_display_name(people.get(user_id)), family_id
            )
        return swap

    def list_swaps(self, user_id: str, status: Optional[str] = None) -> list[dict[str, Any]]:
        wanted = parse_swap_status(status)
        with self._swaps.connection() as conn:
            member = self._access.current_membership(conn, user_id)
            return self._swaps.list_for_user(
                conn, member["family_id"], user_id, wanted.value if wanted else None
            )

    def _load_pending(self, conn, user_id: str, swap_id: str, actor_field: str,
                      verb: str) -> tuple[dict[str, Any], dict[str, Any]]:
        member = self._access.current_membership(conn, user_id)
        swap = self._swaps.get(conn, swap_id)
        if swap is None or swap["family_id"] != member["family_id"]:
            raise NotFoundError("Swap request not found")
        if swap[actor_field] != user_id:
            who = "recipient" if actor_field == "requested_to" else "requester"
            raise PermissionDeniedError(f"Only the {who} can {verb} this swap request")
        if swap["status"] != SwapStatus.PENDING.value:
            raise ConstraintError(f"Swap request is already {swap['status']}")
        return member, swap

    def approve_swap(self, user_id: str, swap_id: str) -> dict[str, Any]:
        with self._swaps.transaction() as conn:
            member, swap = self._load_pending(conn, user_id, swap_id, "requested_to", "approve")
            event = self._events.get(conn, swap["event_id"])
            self._access.child_in_family(conn, event["child_id"], member["family_id"], lock=True)
            self._schedule.assert_no_conflict(
                conn, event["child_id"], swap["new_start_time"], swap["new_end_time"],
                exclude_event_id=event["id"],
            )
            self._events.update(conn, event["id"], start_time=swap["new_start_time"],
                                end_time=swap["new_end_time"])
            approved = self._swaps.set_status(conn, swap_id, SwapStatus.APPROVED.value,
                                              responded=True)
            self._audit.record(conn, member["family_id"], user_id, "swap.approve",
                               "swap_request", swap_id,
                               old_data={"status": "pending", "start_time": event["start_time"],
                                         "end_time": event["end_time"]},
                               new_data={"status": "approved",
                                         "start_time": swap["new_start_time"],
                                         "end_time": swap["new_end_time"]})
            requester = self._users.get(conn, swap["requested_by"])

        return self._finish(approved, requester, member["family_id"])

    def reject_swap(self, user_id: str, swap_id: str) -> dict[str, Any]:
        with self._swaps.transaction() as conn:
            member, swap = self._load_pending(conn, user_id, swap_id, "requested_to", "reject")
            rejected = self._swaps.set_status(conn, swap_id, SwapStatus.REJECTED.value,
                                              responded=True)
            self._audit.record(conn, member["family_id"], user_id, "swap.reject",
                               "swap_request", swap_id,
                               old_data={"status": "pending"}, new_data={"status": "rejected"})
            requester = self._users.get(conn, swap["requested_by"])

        return self._finish(rejected, requester, member["family_id"])

    def cancel_swap(self, user_id: str, swap_id: str) -> dict[str, Any]:
        with self._swaps.transaction() as conn:
            member, swap = self._load_pending(conn, user_id, swap_id, "requested_by", "cancel")
            cancelled = self._swaps.set_status(conn, swap_id, SwapStatus.CANCELLED.value)
            self._audit.record(conn, member["family_id"], user_id, "swap.cancel",
                               "swap_request", swap_id,
                               old_data={"status": "pending"}, new_data={"status": "cancelled"})

        return self._finish(cancelled, None, member["family_id"])

    def _finish(self, swap: dict[str, Any], notify_user: Optional[dict[str, Any]],
                family_id: str) -> dict[str, Any]:
        SWAP_REQUESTS.labels(status=swap["status"]).inc()
        logger.info("Swap %s id=%s", swap["status"], swap["id"], extra={"family_id": family_id})
        if notify_user:
            self._notification.swap_resolved(notify_user["email"], swap["status"], family_id)
        return swap
