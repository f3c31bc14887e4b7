# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation logic — pure computation, no side effects.

A rotation pattern is a fixed-length cycle of day assignments over two labels,
``P`` (primary parent) and ``S`` (secondary parent). Day 0 of the cycle is the
rotation's start date.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from coparent.services.dates import days_between, iter_dates

PRIMARY = "P"
SECONDARY = "S"

MAX_EVENTS = 1000


class PatternType(str, Enum):
    TWO_TWO_THREE = "2-2-3"
    TWO_TWO_FIVE_FIVE = "2-2-5-5"
    THREE_FOUR_FOUR_THREE = "3-4-4-3"
    ALTERNATING_WEEKS = "alternating-weeks"
    EVERY_WEEKEND = "every-weekend"


@dataclass(frozen=True)
class PatternConfig:
    cycle_days: int
    sequence: tuple[str, ...]
    display_name: str
    description: str

    def __post_init__(self) -> None:
        if len(self.sequence) != self.cycle_days:
            raise ValueError(
                f"Pattern '{self.display_name}' has {len(self.sequence)} days "
                f"but a {self.cycle_days}-day cycle"
            )
        if set(self.sequence) - {PRIMARY, SECONDARY}:
            raise ValueError(f"Pattern '{self.display_name}' uses unknown labels")

    def label_for(self, day_of_cycle: int) -> str:
        return self.sequence[day_of_cycle]


def _seq(spec: str) -> tuple[str, ...]:
    return tuple(spec.split(","))


PATTERN_CONFIGS: dict[PatternType, PatternConfig] = {
    PatternType.TWO_TWO_THREE: PatternConfig(
        cycle_days=7,
        sequence=_seq("P,P,S,S,P,P,P"),
        display_name="2-2-3 Schedule",
        description="7-day cycle: 2 days / 2 days / 3 days (50/50 split)",
    ),
    PatternType.TWO_TWO_FIVE_FIVE: PatternConfig(
        cycle_days=14,
        sequence=_seq("P,P,S,S,P,P,P,P,P,S,S,S,S,S"),
        display_name="2-2-5-5 Schedule",
        description="14-day cycle: 2 / 2 / 5 / 5 (50/50 split)",
    ),
    PatternType.THREE_FOUR_FOUR_THREE: PatternConfig(
        cycle_days=14,
        sequence=_seq("P,P,P,S,S,S,S,P,P,P,P,S,S,S"),
        display_name="3-4-4-3 Schedule",
        description="14-day cycle: 3 / 4 / 4 / 3 (50/50 split)",
    ),
    PatternType.ALTERNATING_WEEKS: PatternConfig(
        cycle_days=14,
        sequence=(PRIMARY,) * 7 + (SECONDARY,) * 7,
        display_name="Alternating Weeks",
        description="14-day cycle: 1 week / 1 week (50/50 split)",
    ),
    PatternType.EVERY_WEEKEND: PatternConfig(
        cycle_days=14,
        sequence=_seq("P,P,P,P,S,S,S,P,P,P,P,S,S,S"),
        display_name="Every Weekend",
        description="14-day cycle: Weekends to one parent (~70/30 split)",
    ),
}


def get_pattern_config(pattern_type: PatternType | str) -> PatternConfig:
    """Raises ValueError for names outside the catalog."""
    return PATTERN_CONFIGS[PatternType(pattern_type)]


def parent_display_name(parent: Optional[dict[str, Any]]) -> str:
    if not parent:
        return "Unknown"
    first = parent.get("first_name") or ""
    last = parent.get("last_name") or ""
    return f"{first} {last}".strip() or "Unknown"


def effective_window(
    rotation: dict[str, Any],
    range_start: date,
    range_end: date,
) -> Optional[tuple[date, date]]:
    """Intersection of the rotation's active span with the query window, or None."""
    start = max(rotation["start_date"], range_start)
    end = range_end
    if rotation.get("end_date") is not None:
        end = min(rotation["end_date"], range_end)
    if start > end:
        return None
    return start, end


def generate_calendar_events(
    rotation: dict[str, Any],
    range_start: date,
    range_end: date,
    max_events: int = MAX_EVENTS,
) -> list[dict[str, Any]]:
    """
    Expand a rotation into per-day parent assignments inside ``[range_start, range_end]``.

    ``rotation`` needs ``id``, ``name``, ``pattern_type``, ``start_date``, ``end_date``,
    ``primary_parent_id``, ``secondary_parent_id`` and optionally ``primary_parent`` /
    ``secondary_parent`` dicts carrying ``first_name`` / ``last_name``.
    Stops after ``max_events`` entries; callers get a partial result, not an error.
    """
    window = effective_window(rotation, range_start, range_end)
    if window is None:
        return []

    config = get_pattern_config(rotation["pattern_type"])
    primary = (rotation["primary_parent_id"], parent_display_name(rotation.get("primary_parent")))
    secondary = (
        rotation["secondary_parent_id"],
        parent_display_name(rotation.get("secondary_parent")),
    )

    events: list[dict[str, Any]] = []
    for current in iter_dates(*window):
        if len(events) >= max_events:
            break
        day_of_cycle = days_between(rotation["start_date"], current) % config.cycle_days
        parent_id, parent_name = (
            primary if config.label_for(day_of_cycle) == PRIMARY else secondary
        )
        events.append({
            "date": current,
            "parent_id": parent_id,
            "parent_name": parent_name,
            "day_of_cycle": day_of_cycle,
            "rotation_id": rotation["id"],
            "rotation_name": rotation["name"],
        })
    return events


def is_truncated(
    rotation: dict[str, Any],
    range_start: date,
    range_end: date,
    max_events: int = MAX_EVENTS,
) -> bool:
    """True when the window holds more days than the projection will emit."""
    window = effective_window(rotation, range_start, range_end)
    if window is None:
        return False
    return days_between(*window) + 1 > max_events
