"""
Drag-to-reschedule state machine.

States: IDLE -> PENDING -> DRAGGING -> {COMMITTING | CANCELLED} -> IDLE.
PENDING covers pointer-down before the activation distance is exceeded,
so a plain click never starts a drag. Pointer events are fed in as plain
method calls; nothing here depends on a UI toolkit.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum
from typing import Optional, Tuple

from .types import (
    CalendarEvent,
    DayDropTarget,
    DragDraft,
    DropTarget,
    MoveCommit,
    Point,
    SlotDropTarget,
)


logger = logging.getLogger(__name__)


class DragState(str, Enum):
    IDLE = 'idle'
    PENDING = 'pending'
    DRAGGING = 'dragging'
    COMMITTING = 'committing'
    CANCELLED = 'cancelled'


TRANSITIONS = {
    DragState.IDLE: {DragState.PENDING},
    DragState.PENDING: {DragState.DRAGGING, DragState.IDLE},
    DragState.DRAGGING: {DragState.COMMITTING, DragState.CANCELLED},
    DragState.COMMITTING: {DragState.IDLE},
    DragState.CANCELLED: {DragState.IDLE},
}


@dataclass(frozen=True)
class DragOutcome:
    """Terminal result of a drag session."""
    state: DragState
    commit: Optional[MoveCommit] = None
    event: Optional[CalendarEvent] = None


def candidate_interval(event: CalendarEvent, target: DropTarget) -> Tuple[datetime, datetime]:
    """
    New start/end for `event` dropped on `target`; duration is preserved.

    A day drop keeps the original time of day, a slot drop snaps to the
    slot's hour and minute.
    """
    if isinstance(target, DayDropTarget):
        new_start = datetime.combine(target.date, event.start.time())
    elif isinstance(target, SlotDropTarget):
        new_start = datetime.combine(target.date, time(target.hour, target.minute))
    else:
        raise TypeError(f"Unsupported drop target: {target!r}")
    return new_start, new_start + event.duration


class DragRescheduleController:
    """Tracks a single pointer session dragging one event."""

    def __init__(self):
        self.state = DragState.IDLE
        self.draft: Optional[DragDraft] = None
        self.activation_distance = 0.0
        self._event: Optional[CalendarEvent] = None
        self._target: Optional[DropTarget] = None

    @property
    def is_active(self) -> bool:
        return self.state != DragState.IDLE

    @property
    def dragged_event(self) -> Optional[CalendarEvent]:
        return self._event if self.state == DragState.DRAGGING else None

    @property
    def hovered_target(self) -> Optional[DropTarget]:
        return self._target

    def press(self, event: CalendarEvent, origin: Point, activation_distance: float) -> bool:
        """
        Capture an event under the pointer.

        Returns:
            False when another session is already active
        """
        if self.state != DragState.IDLE:
            return False
        self._event = event
        self._target = None
        self.activation_distance = activation_distance
        self.draft = DragDraft(event_id=event.id, pointer_origin=origin)
        self._transition(DragState.PENDING)
        return True

    def move(self, point: Point) -> None:
        if self.state not in (DragState.PENDING, DragState.DRAGGING):
            return
        origin = self.draft.pointer_origin
        self.draft.pointer_delta = Point(point.x - origin.x, point.y - origin.y)
        if self.state == DragState.PENDING:
            distance = math.hypot(self.draft.pointer_delta.x, self.draft.pointer_delta.y)
            if distance > self.activation_distance:
                self._transition(DragState.DRAGGING)

    def hover(self, target: Optional[DropTarget]) -> None:
        """Point at a drop target (None when the pointer leaves all targets)."""
        if self.state != DragState.DRAGGING:
            return
        self._target = target
        if target is None:
            self.draft.proposed_start = None
            self.draft.proposed_end = None
            return
        self.draft.proposed_start, self.draft.proposed_end = candidate_interval(self._event, target)

    def release(self, target: Optional[DropTarget] = None) -> Optional[DragOutcome]:
        """
        End the pointer session.

        Args:
            target: Drop target under the pointer; defaults to the last hovered one

        Returns:
            DragOutcome for an activated drag, None for a click or when idle
        """
        if self.state == DragState.PENDING:
            self._transition(DragState.IDLE)
            self._reset()
            return None
        if self.state != DragState.DRAGGING:
            return None

        if target is not None:
            self.hover(target)
        if self._target is None:
            return self._finish(DragState.CANCELLED)

        self._transition(DragState.COMMITTING)
        commit = MoveCommit(
            event_id=self._event.persistence_id,
            new_start=self.draft.proposed_start,
            new_end=self.draft.proposed_end,
        )
        return self._finish(DragState.COMMITTING, commit)

    def cancel(self) -> Optional[DragOutcome]:
        """Abort the session (escape key); no commit is produced."""
        if self.state == DragState.PENDING:
            self._transition(DragState.IDLE)
            self._reset()
            return None
        if self.state != DragState.DRAGGING:
            return None
        return self._finish(DragState.CANCELLED)

    def _finish(self, state: DragState, commit: Optional[MoveCommit] = None) -> DragOutcome:
        if self.state != state:
            self._transition(state)
        outcome = DragOutcome(state=state, commit=commit, event=self._event)
        self._transition(DragState.IDLE)
        self._reset()
        return outcome

    def _reset(self) -> None:
        self._event = None
        self._target = None
        self.draft = None

    def _transition(self, new_state: DragState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal drag transition {self.state.value} -> {new_state.value}")
        logger.debug("Drag %s -> %s", self.state.value, new_state.value)
        self.state = new_state
