# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Relational schema (SQLAlchemy Core).
Instants are stored as naive UTC and always handed back timezone-aware.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """Persist aware datetimes as naive UTC; return them aware (UTC)."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

families = Table(
    "families",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

family_members = Table(
    "family_members",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("family_id", String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("role", String(32), nullable=False),
    Column("can_edit_schedule", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    UniqueConstraint("family_id", "user_id", name="family_members_family_user_unique"),
    Index("family_members_family_id_idx", "family_id"),
    Index("family_members_user_id_idx", "user_id"),
)

children = Table(
    "children",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("family_id", String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("date_of_birth", Date, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Index("children_family_id_idx", "family_id"),
)

visitation_events = Table(
    "visitation_events",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("family_id", String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
    Column("child_id", String(36), ForeignKey("children.id", ondelete="CASCADE"), nullable=False),
    Column("parent_id", String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("start_time", UTCDateTime, nullable=False),
    Column("end_time", UTCDateTime, nullable=False),
    Column("is_recurring", Boolean, nullable=False, default=False),
    Column("recurrence_rule", JSON),
    Column("is_holiday_exception", Boolean, nullable=False, default=False),
    Column("notes", Text),
    Column("created_by", String(255), ForeignKey("users.id"), nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Index("visitation_events_family_start_time_idx", "family_id", "start_time"),
    Index("visitation_events_child_id_idx", "child_id", "start_time"),
)

swap_requests = Table(
    "swap_requests",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("family_id", String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
    Column(
        "event_id", String(36),
        ForeignKey("visitation_events.id", ondelete="CASCADE"), nullable=False,
    ),
    Column("requested_by", String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("requested_to", String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("new_start_time", UTCDateTime, nullable=False),
    Column("new_end_time", UTCDateTime, nullable=False),
    Column("reason", Text, nullable=False),
    Column("status", String(16), nullable=False, default="pending"),
    Column("responded_at", UTCDateTime),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Index("swap_requests_family_id_idx", "family_id"),
    Index("swap_requests_event_id_idx", "event_id"),
)

rotation_patterns = Table(
    "rotation_patterns",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("family_id", String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("pattern_type", String(32), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date),
    Column("primary_parent_id", String(255), ForeignKey("users.id"), nullable=False),
    Column("secondary_parent_id", String(255), ForeignKey("users.id"), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_by", String(255), ForeignKey("users.id"), nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Index("rotation_patterns_family_active_idx", "family_id", "is_active"),
)

family_invitations = Table(
    "family_invitations",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("family_id", String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
    Column("invited_by", String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("email", String(255)),
    Column("token", String(128), nullable=False, unique=True),
    Column("role", String(32), nullable=False),
    Column("can_edit_schedule", Boolean, nullable=False, default=False),
    Column("status", String(16), nullable=False, default="pending"),
    Column("expires_at", UTCDateTime, nullable=False),
    Column("accepted_by", String(255), ForeignKey("users.id", ondelete="SET NULL")),
    Column("accepted_at", UTCDateTime),
    Column("created_at", UTCDateTime, nullable=False),
    Index("family_invitations_family_id_idx", "family_id"),
)

audit_logs = Table(
    "audit_logs",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("family_id", String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", String(255), nullable=False),
    Column("action", String(100), nullable=False),
    Column("entity_type", String(100), nullable=False),
    Column("entity_id", String(36), nullable=False),
    Column("old_data", JSON),
    Column("new_data", JSON),
    Column("created_at", UTCDateTime, nullable=False),
    Index("audit_logs_family_created_idx", "family_id", "created_at"),
    Index("audit_logs_action_idx", "action"),
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
