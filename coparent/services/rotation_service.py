# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation management — create, list, project, soft-delete.
Every guarded write runs lock → read → guard → write in one transaction.
"""

from datetime import date
from typing import Any, Optional

from coparent.core.config import settings
from coparent.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coparent.core.logging import get_logger
from coparent.metrics.prometheus import (
    ROTATION_EVENTS_GENERATED,
    ROTATION_PROJECTION_TRUNCATED,
    ROTATIONS_CREATED,
    ROTATIONS_DELETED,
    SCHEDULE_CONFLICTS,
)
from coparent.models.domain import PARENT_ROLES
from coparent.repositories.audit_repository import AuditRepository
from coparent.repositories.family_repository import FamilyRepository
from coparent.repositories.rotation_repository import RotationRepository
from coparent.services.access import FamilyAccess, assert_can_edit
from coparent.services.constraints import check_rotation_input
from coparent.services.dates import parse_date
from coparent.services.overlap import find_overlapping_rotation
from coparent.services.rotation import (
    PATTERN_CONFIGS,
    PatternType,
    generate_calendar_events,
    is_truncated,
)

logger = get_logger(__name__)


def parse_pattern_type(value: str) -> PatternType:
    try:
        return PatternType(value)
    except ValueError:
        allowed = ", ".join(p.value for p in PatternType)
        raise ValidationError(f"Invalid pattern type '{value}'. Allowed: {allowed}")


def describe_span(start_date: date, end_date: Optional[date]) -> str:
    if end_date is None:
        return f"{start_date.isoformat()} onwards (no end date)"
    return f"{start_date.isoformat()} to {end_date.isoformat()}"


class RotationService:
    """Business logic for custody rotation patterns."""

    def __init__(
        self,
        rotation_repo: RotationRepository,
        family_repo: FamilyRepository,
        audit_repo: AuditRepository,
        access: FamilyAccess,
        max_events: int = settings.MAX_ROTATION_EVENTS,
    ) -> None:
        self._rotations = rotation_repo
        self._families = family_repo
        self._audit = audit_repo
        self._access = access
        self._max_events = max_events

    # ── Catalog ──

    @staticmethod
    def list_patterns() -> list[dict[str, Any]]:
        return [
            {
                "pattern_type": pattern.value,
                "display_name": config.display_name,
                "description": config.description,
                "cycle_days": config.cycle_days,
                "sequence": list(config.sequence),
            }
            for pattern, config in PATTERN_CONFIGS.items()
        ]

    # ── Commands ──

    def create_rotation(
        self,
        user_id: str,
        family_id: str,
        name: str,
        pattern_type: str,
        start_date: str,
        end_date: Optional[str],
        primary_parent_id: str,
        secondary_parent_id: str,
    ) -> dict[str, Any]:
        pattern = parse_pattern_type(pattern_type)
        start = parse_date(start_date)
        end = parse_date(end_date) if end_date is not None else None
        check_rotation_input(start, end, primary_parent_id, secondary_parent_id)

        with self._rotations.transaction() as conn:
            if self._families.lock_family(conn, family_id) is None:
                raise NotFoundError("Family not found")
            member = self._access.membership_in(conn, family_id, user_id)
            assert_can_edit(member, "edit schedules")
            for parent_id in (primary_parent_id, secondary_parent_id):
                parent = self._families.find_membership(conn, family_id, parent_id)
                if parent is None or parent["role"] not in PARENT_ROLES:
                    raise NotFoundError("Both parents must be parenting members of the family")

            existing = find_overlapping_rotation(
                self._rotations.list_active(conn, family_id), start, end
            )
            if existing is not None:
                SCHEDULE_CONFLICTS.labels(kind="rotation").inc()
                logger.warning(
                    "Rotation overlap rejected new=%s existing=%s",
                    describe_span(start, end), existing["id"],
                    extra={"family_id": family_id},
                )
                raise ConflictError(
                    f"This rotation ({describe_span(start, end)}) overlaps with an existing "
                    "active rotation. Please adjust the dates or delete the conflicting rotation.",
                    conflict_start=existing["start_date"],
                    conflict_end=existing["end_date"],
                    details={"conflicting_rotation_id": existing["id"]},
                )

            rotation = self._rotations.create(
                conn, family_id, name, pattern.value, start, end,
                primary_parent_id, secondary_parent_id, created_by=user_id,
            )
            self._audit.record(
                conn, family_id, user_id, "rotation.create", "rotation_pattern",
                rotation["id"],
                new_data={
                    "name": name, "pattern_type": pattern.value,
                    "start_date": start, "end_date": end,
                    "primary_parent_id": primary_parent_id,
                    "secondary_parent_id": secondary_parent_id,
                },
            )

        ROTATIONS_CREATED.labels(pattern_type=pattern.value).inc()
        logger.info("Rotation created id=%s pattern=%s span=%s",
                    rotation["id"], pattern.value, describe_span(start, end),
                    extra={"family_id": family_id})
        return rotation

    def delete_rotation(self, user_id: str, rotation_id: str) -> dict[str, Any]:
        """Soft delete: the row stays, only ``is_active`` and ``updated_at`` change."""
        with self._rotations.transaction() as conn:
            rotation = self._rotations.get(conn, rotation_id)
            if rotation is None:
                raise NotFoundError("Rotation pattern not found")
            member = self._access.membership_in(conn, rotation["family_id"], user_id)
            assert_can_edit(member, "edit schedules")
            self._rotations.deactivate(conn, rotation_id)
            self._audit.record(
                conn, rotation["family_id"], user_id, "rotation.delete",
                "rotation_pattern", rotation_id,
                old_data={"is_active": rotation["is_active"]},
                new_data={"is_active": False},
            )

        ROTATIONS_DELETED.inc()
        logger.info("Rotation deactivated id=%s", rotation_id,
                    extra={"family_id": rotation["family_id"]})
        return {"success": True}

    # ── Queries ──

    def list_rotations(self, user_id: str) -> list[dict[str, Any]]:
        """Active rotations across every family the caller belongs to."""
        with self._rotations.connection() as conn:
            family_ids = [m["family_id"] for m in self._families.memberships_for_user(conn, user_id)]
            return self._rotations.list_active_enriched(conn, family_ids)

    def get_calendar_events(
        self, user_id: str, rotation_id: str, start_date: str, end_date: str,
    ) -> list[dict[str, Any]]:
        start = parse_date(start_date)
        end = parse_date(end_date)
        with self._rotations.connection() as conn:
            rotation = self._rotations.get_enriched(conn, rotation_id)
            if rotation is None:
                return []
            if self._families.find_membership(conn, rotation["family_id"], user_id) is None:
                raise PermissionDeniedError("You do not have access to this rotation")
        return self.project(rotation, start, end)

    def virtual_events_for_family(self, conn, family_id: str, start: date,
                                  end: date) -> list[dict[str, Any]]:
        virtual: list[dict[str, Any]] = []
        for rotation in self._rotations.list_active_enriched(conn, [family_id]):
            virtual.extend(self.project(rotation, start, end))
        return virtual

    def project(self, rotation: dict[str, Any], start: date, end: date) -> list[dict[str, Any]]:
        events = generate_calendar_events(rotation, start, end, self._max_events)
        ROTATION_EVENTS_GENERATED.observe(len(events))
        if is_truncated(rotation, start, end, self._max_events):
            ROTATION_PROJECTION_TRUNCATED.inc()
            logger.warning(
                "Rotation projection truncated rotation=%s window=%s..%s cap=%d",
                rotation["id"], start.isoformat(), end.isoformat(), self._max_events,
                extra={"family_id": rotation.get("family_id")},
            )
        return events
