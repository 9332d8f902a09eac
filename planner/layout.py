"""
Geometry for the month/week/day calendar grids.

Week and day views use a fixed height per hour starting at
`GridConfig.grid_start_hour`; month view buckets events per day and caps
the visible count. "Now" is always passed in, never read from a clock.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .types import CalendarEvent, GridConfig, SlotDropTarget


@dataclass(frozen=True)
class EventGeometry:
    top: float
    height: float


@dataclass(frozen=True)
class PositionedEvent:
    event: CalendarEvent
    day: date
    geometry: EventGeometry


@dataclass(frozen=True)
class DayBucket:
    date: date
    visible: Tuple[CalendarEvent, ...]
    overflow: int = 0

    @property
    def overflow_label(self) -> Optional[str]:
        if self.overflow <= 0:
            return None
        return f"+{self.overflow} more"


def fractional_hour(moment: datetime) -> float:
    return moment.hour + moment.minute / 60 + moment.second / 3600


def hours_to_pixels(hours: float, config: GridConfig) -> float:
    return hours * config.hour_height


def pixels_to_hours(pixels: float, config: GridConfig) -> float:
    return pixels / config.hour_height


def event_geometry(
    event: CalendarEvent,
    config: GridConfig,
    preview_end: Optional[datetime] = None
) -> EventGeometry:
    """
    Position a timed event within the hour grid.

    Args:
        event: Timed event
        config: Grid constants
        preview_end: Live end time while the event is being resized

    Returns:
        EventGeometry; the height never drops below `min_event_height`
    """
    end = preview_end if preview_end is not None else event.end
    duration_hours = (end - event.start).total_seconds() / 3600
    top = hours_to_pixels(fractional_hour(event.start) - config.grid_start_hour, config)
    height = max(hours_to_pixels(duration_hours, config), config.min_event_height)
    return EventGeometry(top=top, height=height)


def layout_timed_events(
    events: Iterable[CalendarEvent],
    config: GridConfig,
    previews: Optional[Dict[str, datetime]] = None
) -> List[PositionedEvent]:
    """Position every timed event; all-day events are skipped."""
    previews = previews or {}
    return [
        PositionedEvent(
            event=event,
            day=event.start.date(),
            geometry=event_geometry(event, config, previews.get(event.id)),
        )
        for event in events
        if not event.all_day
    ]


def bucket_by_day(
    events: Iterable[CalendarEvent],
    days: Iterable[date],
    cap: int
) -> List[DayBucket]:
    """
    Group events under the day they start on, keeping at most `cap` visible.

    Events starting outside `days` are dropped.
    """
    grouped: Dict[date, List[CalendarEvent]] = {day: [] for day in days}
    for event in events:
        day_events = grouped.get(event.start.date())
        if day_events is not None:
            day_events.append(event)

    return [
        DayBucket(
            date=day,
            visible=tuple(day_events[:cap]),
            overflow=max(len(day_events) - cap, 0),
        )
        for day, day_events in grouped.items()
    ]


def current_time_offset(now: datetime, config: GridConfig) -> Optional[float]:
    """Top offset of the current-time line, or None outside the visible hours."""
    hour = fractional_hour(now)
    if hour < config.grid_start_hour or hour >= config.grid_end_hour:
        return None
    return hours_to_pixels(hour - config.grid_start_hour, config)


def initial_scroll_offset(now: datetime, config: GridConfig) -> float:
    """Scroll position showing two hours before now, never above the grid."""
    scroll_hour = min(max(now.hour - 2, config.grid_start_hour), config.grid_end_hour - 1)
    return hours_to_pixels(scroll_hour - config.grid_start_hour, config)


def time_slots(config: GridConfig) -> List[Tuple[int, int]]:
    """(hour, minute) of every drop slot in one grid column."""
    return [
        (hour, minute)
        for hour in range(config.grid_start_hour, config.grid_end_hour)
        for minute in range(0, 60, config.slot_minutes)
    ]


def slot_at_offset(day: date, offset: float, config: GridConfig) -> SlotDropTarget:
    """Slot under a y-offset of the grid column for `day`."""
    minutes = math.floor(pixels_to_hours(offset, config) * 60)
    minutes = minutes - minutes % config.slot_minutes
    first = 0
    last = (config.grid_end_hour - config.grid_start_hour) * 60 - config.slot_minutes
    minutes = min(max(minutes, first), last)
    hour, minute = divmod(minutes, 60)
    return SlotDropTarget(date=day, hour=config.grid_start_hour + hour, minute=minute)
