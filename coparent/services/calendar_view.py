# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Calendar merge view — pure computation, no I/O.

Persisted visitation events and rotation-derived days are shown side by side.
Nothing is deduplicated; a rotation day never hides or blocks a manual event.
"""

from typing import Any, Iterable

from coparent.models.domain import EventSource
from coparent.services.dates import to_instant_at_end_of_day, to_instant_at_start_of_day


def _first_name(person: dict[str, Any] | None) -> str:
    if not person:
        return "Unknown"
    return person.get("first_name") or "Unknown"


def manual_entry(event: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": event["id"],
        "source": EventSource.MANUAL.value,
        "title": f"{_first_name(event.get('child'))} - {_first_name(event.get('parent'))}",
        "start": event["start_time"],
        "end": event["end_time"],
        "all_day": False,
        "child_id": event["child_id"],
        "parent_id": event["parent_id"],
        "rotation_id": None,
        "day_of_cycle": None,
        "notes": event.get("notes"),
    }


def rotation_entry(virtual: dict[str, Any]) -> dict[str, Any]:
    day = virtual["date"]
    return {
        "id": f"rotation:{virtual['rotation_id']}:{day.isoformat()}",
        "source": EventSource.ROTATION.value,
        "title": f"{virtual['rotation_name']} - {virtual['parent_name']}",
        "start": to_instant_at_start_of_day(day),
        "end": to_instant_at_end_of_day(day),
        "all_day": True,
        "child_id": None,
        "parent_id": virtual["parent_id"],
        "rotation_id": virtual["rotation_id"],
        "day_of_cycle": virtual["day_of_cycle"],
        "notes": None,
    }


def merge_calendar(
    events: Iterable[dict[str, Any]],
    virtual_events: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Combine both sources into one list ordered by start. Ties keep manual entries first."""
    entries = [manual_entry(e) for e in events]
    entries.extend(rotation_entry(v) for v in virtual_events)
    entries.sort(key=lambda entry: entry["start"])
    return entries
