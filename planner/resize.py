"""
Drag-to-resize state machine for an event's end edge.

States: IDLE -> RESIZING -> {COMMITTING | CANCELLED} -> IDLE.
Releasing always commits, even without movement; CANCELLED is only reached
through `cancel()`, which the calendar view calls when the gesture loses
its context (view change, new event snapshot).
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .layout import pixels_to_hours
from .types import CalendarEvent, GridConfig, Point, ResizeCommit, ResizeDraft


logger = logging.getLogger(__name__)


class ResizeState(str, Enum):
    IDLE = 'idle'
    RESIZING = 'resizing'
    COMMITTING = 'committing'
    CANCELLED = 'cancelled'


class ResizeAxis(str, Enum):
    VERTICAL = 'vertical'
    HORIZONTAL = 'horizontal'


TRANSITIONS = {
    ResizeState.IDLE: {ResizeState.RESIZING},
    ResizeState.RESIZING: {ResizeState.COMMITTING, ResizeState.CANCELLED},
    ResizeState.COMMITTING: {ResizeState.IDLE},
    ResizeState.CANCELLED: {ResizeState.IDLE},
}


@dataclass(frozen=True)
class ResizeOutcome:
    state: ResizeState
    commit: Optional[ResizeCommit] = None
    event: Optional[CalendarEvent] = None


def snap_to_interval(moment: datetime, snap_minutes: int) -> datetime:
    """Round to the nearest multiple of `snap_minutes` past midnight."""
    if snap_minutes <= 0:
        return moment
    midnight = datetime.combine(moment.date(), datetime.min.time())
    minutes = (moment - midnight).total_seconds() / 60
    snapped = math.floor(minutes / snap_minutes + 0.5) * snap_minutes
    return midnight + timedelta(minutes=snapped)


def vertical_resize_end(
    start: datetime,
    original_end: datetime,
    delta_y: float,
    config: GridConfig
) -> datetime:
    """
    End time after dragging the bottom edge by `delta_y` pixels.

    The result is snapped and never earlier than start + min duration.
    """
    new_end = original_end + timedelta(hours=pixels_to_hours(delta_y, config))
    new_end = snap_to_interval(new_end, config.snap_minutes)
    floor = start + timedelta(minutes=config.min_duration_minutes)
    return max(new_end, floor)


def horizontal_resize_end(
    start: datetime,
    original_end: datetime,
    delta_x: float,
    day_width: float
) -> datetime:
    """End after dragging a month-view bar's right edge by whole days."""
    days = math.floor(delta_x / day_width + 0.5) if day_width > 0 else 0
    new_end = original_end + timedelta(days=days)
    if new_end <= start:
        return start + timedelta(days=1)
    return new_end


class ResizeController:
    """Tracks the resize of one event at a time."""

    def __init__(self, config: Optional[GridConfig] = None):
        self.config = config or GridConfig()
        self.state = ResizeState.IDLE
        self.draft: Optional[ResizeDraft] = None
        self.axis = ResizeAxis.VERTICAL
        self.day_width = 0.0
        self._event: Optional[CalendarEvent] = None

    @property
    def is_active(self) -> bool:
        return self.state != ResizeState.IDLE

    @property
    def resizing_event_id(self) -> Optional[str]:
        return self.draft.event_id if self.draft else None

    def begin(
        self,
        event: CalendarEvent,
        origin: Point,
        axis: ResizeAxis = ResizeAxis.VERTICAL,
        day_width: Optional[float] = None
    ) -> bool:
        """
        Start resizing from the event's resize handle.

        Returns:
            False when a resize is already in progress
        """
        if self.state != ResizeState.IDLE:
            return False
        self._event = event
        self.axis = axis
        self.day_width = day_width or 0.0
        self.draft = ResizeDraft(
            event_id=event.id,
            pointer_origin=origin,
            original_start=event.start,
            original_end=event.end,
        )
        self._transition(ResizeState.RESIZING)
        self.draft.preview_end = self._end_for_delta(Point(0, 0))
        return True

    def move(self, point: Point) -> Optional[datetime]:
        """Update the live preview; returns the candidate end."""
        if self.state != ResizeState.RESIZING:
            return None
        origin = self.draft.pointer_origin
        self.draft.pointer_delta = Point(point.x - origin.x, point.y - origin.y)
        self.draft.preview_end = self._end_for_delta(self.draft.pointer_delta)
        return self.draft.preview_end

    def preview_end_for(self, event_id: str) -> Optional[datetime]:
        if self.state != ResizeState.RESIZING or self.draft.event_id != event_id:
            return None
        return self.draft.preview_end

    def release(self, point: Optional[Point] = None) -> Optional[ResizeOutcome]:
        if self.state != ResizeState.RESIZING:
            return None
        if point is not None:
            self.move(point)

        self._transition(ResizeState.COMMITTING)
        commit = ResizeCommit(
            event_id=self._event.persistence_id,
            start=self.draft.original_start,
            new_end=self.draft.preview_end,
        )
        return self._finish(ResizeState.COMMITTING, commit)

    def cancel(self) -> Optional[ResizeOutcome]:
        if self.state != ResizeState.RESIZING:
            return None
        self._transition(ResizeState.CANCELLED)
        return self._finish(ResizeState.CANCELLED)

    def _end_for_delta(self, delta: Point) -> datetime:
        if self.axis == ResizeAxis.HORIZONTAL:
            return horizontal_resize_end(
                self.draft.original_start, self.draft.original_end, delta.x, self.day_width
            )
        return vertical_resize_end(
            self.draft.original_start, self.draft.original_end, delta.y, self.config
        )

    def _finish(self, state: ResizeState, commit: Optional[ResizeCommit] = None) -> ResizeOutcome:
        outcome = ResizeOutcome(state=state, commit=commit, event=self._event)
        self._transition(ResizeState.IDLE)
        self._event = None
        self.draft = None
        return outcome

    def _transition(self, new_state: ResizeState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal resize transition {self.state.value} -> {new_state.value}")
        logger.debug("Resize %s -> %s", self.state.value, new_state.value)
        self.state = new_state
