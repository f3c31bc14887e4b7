# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Overlap rules — pure computation, no I/O.

Two families of checks live here and they are deliberately different:

* Visitation events are timed. Their intervals are half-open ``[start, end)``,
  so an event ending at 12:00 and another starting at 12:00 do not conflict.
* Rotations are whole-day constructs. Their spans are closed ``[start, end]``
  date ranges, and an open end means the rotation runs forever. Sharing a
  boundary day is a conflict.
"""

from datetime import date
from typing import Any, Iterable, Optional


def ranges_overlap(start_a, end_a, start_b, end_b) -> bool:
    """True iff the half-open ranges intersect. Touching endpoints do not count."""
    return start_a < end_b and start_b < end_a


def range_contains(inner_start, inner_end, outer_start, outer_end) -> bool:
    """True iff the inner range lies within the outer range, bounds inclusive."""
    return inner_start >= outer_start and inner_end <= outer_end


# ── Rotation guard ──

def rotation_spans_conflict(
    new_start: date,
    new_end: Optional[date],
    existing_start: date,
    existing_end: Optional[date],
) -> bool:
    # An open-ended rotation occupies all future time.
    if existing_end is None:
        return True
    if new_end is None:
        return True

    if existing_start <= new_start <= existing_end:
        return True
    if existing_start <= new_end <= existing_end:
        return True
    return range_contains(existing_start, existing_end, new_start, new_end)


def find_overlapping_rotation(
    existing_rotations: Iterable[dict[str, Any]],
    new_start: date,
    new_end: Optional[date],
) -> Optional[dict[str, Any]]:
    """First active rotation whose span conflicts with the candidate span, if any."""
    for existing in existing_rotations:
        if not existing.get("is_active", True):
            continue
        if rotation_spans_conflict(
            new_start, new_end, existing["start_date"], existing.get("end_date")
        ):
            return existing
    return None


def has_rotation_overlap(
    existing_rotations: Iterable[dict[str, Any]],
    new_start: date,
    new_end: Optional[date],
) -> bool:
    return find_overlapping_rotation(existing_rotations, new_start, new_end) is not None


# ── Visitation guard ──

def find_conflicting_event(
    existing_events: Iterable[dict[str, Any]],
    child_id: str,
    start_time,
    end_time,
    exclude_event_id: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    """
    First persisted event for ``child_id`` whose interval overlaps the proposed one.
    Events of other children never conflict. ``exclude_event_id`` skips the event
    being edited.
    """
    for existing in existing_events:
        if existing["child_id"] != child_id:
            continue
        if exclude_event_id is not None and existing["id"] == exclude_event_id:
            continue
        if ranges_overlap(start_time, end_time, existing["start_time"], existing["end_time"]):
            return existing
    return None
