"""
Advisory time-overlap detection.

A conflict never blocks a commit; callers use the result for warnings.
"""

from typing import Iterable, List, Optional

from .types import CalendarEvent, TimeInterval


def overlaps(proposed: TimeInterval, existing: CalendarEvent) -> bool:
    """Half-open overlap: sharing only a boundary instant is not a conflict."""
    return proposed.start < existing.end and proposed.end > existing.start


def find_conflicts(
    proposed: TimeInterval,
    existing: Iterable[CalendarEvent],
    exclude_id: Optional[str] = None
) -> List[CalendarEvent]:
    """
    Find existing events overlapping a proposed interval.

    Args:
        proposed: Interval being scheduled
        existing: Events to compare against
        exclude_id: Id of the event being edited, skipped

    Returns:
        Overlapping events in input order; all-day proposals and all-day
        events never conflict
    """
    if proposed.all_day:
        return []

    return [
        event for event in existing
        if not event.all_day
        and event.id != exclude_id
        and overlaps(proposed, event)
    ]


def has_conflicts(
    proposed: TimeInterval,
    existing: Iterable[CalendarEvent],
    exclude_id: Optional[str] = None
) -> bool:
    return bool(find_conflicts(proposed, existing, exclude_id))
