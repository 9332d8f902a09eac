"""
Data types and constants for the planner calendar engine.

This module contains:
- Value objects shared by the engine (events, recurrence rules, drop targets)
- Drafts and commits produced by the drag/resize state machines
- Layout configuration and constants used across the application
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union


INSTANCE_ID_SEPARATOR = '_'
INSTANCE_ID_FORMAT = '%Y%m%dT%H%M%S'

WEEKDAY_ABBREVIATIONS = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']


class EventType(str, Enum):
    SHOWING = 'showing'
    MOVE_IN = 'move_in'
    INSPECTION = 'inspection'
    MAINTENANCE = 'maintenance'
    MEETING = 'meeting'
    OTHER = 'other'


class EventStatus(str, Enum):
    CONFIRMED = 'confirmed'
    PENDING = 'pending'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class Frequency(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    YEARLY = 'yearly'


class ViewMode(str, Enum):
    MONTH = 'month'
    WEEK = 'week'
    DAY = 'day'


@dataclass(frozen=True)
class EventTypeInfo:
    label: str
    color: str
    default_duration_minutes: int


EVENT_TYPE_CONFIG: Dict[EventType, EventTypeInfo] = {
    EventType.SHOWING: EventTypeInfo('Showing', '#3b82f6', 30),
    EventType.MOVE_IN: EventTypeInfo('Move-in', '#10b981', 120),
    EventType.INSPECTION: EventTypeInfo('Inspection', '#f59e0b', 60),
    EventType.MAINTENANCE: EventTypeInfo('Maintenance', '#ef4444', 120),
    EventType.MEETING: EventTypeInfo('Meeting', '#8b5cf6', 60),
    EventType.OTHER: EventTypeInfo('Other', '#6b7280', 60),
}


@dataclass(frozen=True)
class GridConfig:
    """
    Layout and interaction constants.

    Hours are wall-clock hours; `grid_end_hour` is exclusive. Weekday
    indices follow `date.weekday()` (0=Monday, 6=Sunday).
    """
    hour_height: float = 60
    grid_start_hour: int = 6
    grid_end_hour: int = 23
    min_event_height: float = 24
    month_visible_cap: int = 3
    slot_minutes: int = 30
    snap_minutes: int = 15
    min_duration_minutes: int = 15
    month_drag_distance: float = 5
    grid_drag_distance: float = 8
    week_starts_on: int = 6


@dataclass(frozen=True)
class RecurrenceRule:
    """A repeat rule carried by a template event only."""
    frequency: Frequency
    interval: int = 1
    days_of_week: FrozenSet[int] = frozenset()
    until: Optional[date] = None
    count: Optional[int] = None


@dataclass(frozen=True)
class InstanceRef:
    """Identity of one expanded occurrence of a recurring template."""
    template_id: str
    occurrence_start: datetime

    @property
    def instance_id(self) -> str:
        stamp = self.occurrence_start.strftime(INSTANCE_ID_FORMAT)
        return f"{self.template_id}{INSTANCE_ID_SEPARATOR}{stamp}"

    @classmethod
    def parse(cls, instance_id: str) -> Optional['InstanceRef']:
        """Reverse `instance_id`; plain (non-instance) ids give None."""
        template_id, sep, stamp = instance_id.rpartition(INSTANCE_ID_SEPARATOR)
        if not sep or not template_id:
            return None
        try:
            occurrence_start = datetime.strptime(stamp, INSTANCE_ID_FORMAT)
        except ValueError:
            return None
        return cls(template_id=template_id, occurrence_start=occurrence_start)


@dataclass(frozen=True)
class CalendarEvent:
    """
    A booking as seen by the engine.

    Templates carry `recurrence`; expanded instances carry `recurrence_id`
    instead. `metadata` holds contact/property details the engine never reads.
    """
    id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    event_type: EventType = EventType.SHOWING
    status: EventStatus = EventStatus.CONFIRMED
    recurrence: Optional[RecurrenceRule] = None
    recurrence_id: Optional[str] = None
    is_recurring_instance: bool = False
    metadata: Dict[str, object] = field(default_factory=dict, compare=False)

    @property
    def duration(self):
        return self.end - self.start

    @property
    def color(self) -> str:
        return self.metadata.get('color') or EVENT_TYPE_CONFIG[self.event_type].color

    @property
    def instance_ref(self) -> Optional[InstanceRef]:
        if self.recurrence_id is None:
            return None
        return InstanceRef(template_id=self.recurrence_id, occurrence_start=self.start)

    @property
    def persistence_id(self) -> str:
        """Id to hand to the persistence layer (template id for instances)."""
        return self.recurrence_id or self.id


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime
    all_day: bool = False


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class DayDropTarget:
    """Month-view day cell."""
    date: date
    kind: str = field(default='day', init=False)


@dataclass(frozen=True)
class SlotDropTarget:
    """Week/day-view time slot."""
    date: date
    hour: int
    minute: int = 0
    kind: str = field(default='slot', init=False)


DropTarget = Union[DayDropTarget, SlotDropTarget]


@dataclass
class DragDraft:
    """In-progress drag; lives between pointer-down and release/cancel."""
    event_id: str
    pointer_origin: Point
    pointer_delta: Point = Point(0, 0)
    proposed_start: Optional[datetime] = None
    proposed_end: Optional[datetime] = None


@dataclass
class ResizeDraft:
    """In-progress resize of an event's end edge."""
    event_id: str
    pointer_origin: Point
    original_start: datetime
    original_end: datetime
    pointer_delta: Point = Point(0, 0)
    preview_end: Optional[datetime] = None


@dataclass(frozen=True)
class MoveCommit:
    event_id: str
    new_start: datetime
    new_end: datetime


@dataclass(frozen=True)
class ResizeCommit:
    event_id: str
    start: datetime
    new_end: datetime


@dataclass(frozen=True)
class CreateRequest:
    """Partial event handed to `on_create`; the host assigns the id."""
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    event_type: EventType = EventType.SHOWING
    status: EventStatus = EventStatus.CONFIRMED


@dataclass
class EventCreateData:
    """DTO for event creation in the service layer."""
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    event_type: EventType = EventType.SHOWING
    status: EventStatus = EventStatus.CONFIRMED
    recurrence: Optional[RecurrenceRule] = None
    details: Dict[str, str] = field(default_factory=dict)


@dataclass
class EventUpdateData:
    """DTO for event update operations."""
    title: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    all_day: Optional[bool] = None
    event_type: Optional[EventType] = None
    details: Optional[Dict[str, str]] = None
    reason: str = ''
