"""
Calendar view orchestration.

`CalendarView` owns the active view and date, expands the event snapshot
for the visible window, lays it out, and routes pointer input to one drag
and one resize controller. Committed gestures are handed to the host's
callbacks; nothing is persisted here.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from .conflicts import find_conflicts
from .drag import DragRescheduleController
from .layout import (
    DayBucket,
    PositionedEvent,
    bucket_by_day,
    current_time_offset,
    initial_scroll_offset,
    layout_timed_events,
)
from .recurrence import expand
from .resize import ResizeAxis, ResizeController
from .types import (
    EVENT_TYPE_CONFIG,
    CalendarEvent,
    CreateRequest,
    DropTarget,
    EventType,
    GridConfig,
    InstanceRef,
    MoveCommit,
    Point,
    ResizeCommit,
    TimeInterval,
    ViewMode,
)


logger = logging.getLogger(__name__)


@dataclass
class CalendarCallbacks:
    """Host hooks; each is fire-and-forget from the view's point of view."""
    on_create: Optional[Callable[[CreateRequest], None]] = None
    on_move: Optional[Callable[[str, datetime, datetime], None]] = None
    on_resize: Optional[Callable[[str, datetime, datetime], None]] = None
    on_delete: Optional[Callable[[str], None]] = None


@dataclass(frozen=True)
class CommitResult:
    commit: Union[MoveCommit, ResizeCommit]
    conflicts: Tuple[CalendarEvent, ...] = ()


@dataclass(frozen=True)
class RenderedView:
    view: ViewMode
    current_date: date
    title: str
    window_start: datetime
    window_end: datetime
    days: Tuple[date, ...]
    instances: Tuple[CalendarEvent, ...]
    all_day: Tuple[DayBucket, ...] = ()
    timed: Tuple[PositionedEvent, ...] = ()
    month_cells: Tuple[DayBucket, ...] = ()
    current_time_offset: Optional[float] = None
    scroll_offset: Optional[float] = None

    def is_current_month(self, day: date) -> bool:
        return (day.year, day.month) == (self.current_date.year, self.current_date.month)


def start_of_week(day: date, week_starts_on: int) -> date:
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


def visible_days(view: ViewMode, current_date: date, config: GridConfig) -> List[date]:
    """Days shown by `view` around `current_date`."""
    if view == ViewMode.DAY:
        return [current_date]

    if view == ViewMode.WEEK:
        first = start_of_week(current_date, config.week_starts_on)
        return [first + timedelta(days=offset) for offset in range(7)]

    month_start = current_date.replace(day=1)
    month_end = month_start + relativedelta(months=1) - timedelta(days=1)
    first = start_of_week(month_start, config.week_starts_on)
    last = start_of_week(month_end, config.week_starts_on) + timedelta(days=6)
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def header_title(view: ViewMode, current_date: date, config: GridConfig) -> str:
    if view == ViewMode.MONTH:
        return current_date.strftime('%B %Y')

    if view == ViewMode.DAY:
        return f"{current_date:%A, %B} {current_date.day}, {current_date.year}"

    days = visible_days(ViewMode.WEEK, current_date, config)
    first, last = days[0], days[-1]
    if first.year != last.year:
        return f"{first:%b} {first.day}, {first.year} - {last:%b} {last.day}, {last.year}"
    if first.month != last.month:
        return f"{first:%b} {first.day} - {last:%b} {last.day}, {last.year}"
    return f"{first:%b} {first.day} - {last.day}, {last.year}"


class CalendarView:
    """
    Stateful month/week/day calendar over a read-only event snapshot.

    Args:
        events: Event snapshot supplied by the host
        current_date: Date the view is centred on
        view: Initial view mode
        callbacks: Host persistence hooks
        config: Layout and interaction constants
    """

    def __init__(
        self,
        events: List[CalendarEvent],
        current_date: date,
        view: ViewMode = ViewMode.MONTH,
        callbacks: Optional[CalendarCallbacks] = None,
        config: Optional[GridConfig] = None
    ):
        self.events = list(events)
        self.current_date = current_date
        self.view = view
        self.callbacks = callbacks or CalendarCallbacks()
        self.config = config or GridConfig()
        self.drag = DragRescheduleController()
        self.resize = ResizeController(self.config)

    # Navigation

    def previous(self) -> date:
        return self._step(-1)

    def next(self) -> date:
        return self._step(1)

    def today(self, today: date) -> date:
        self._abort_gestures()
        self.current_date = today
        return self.current_date

    def set_view(self, view: ViewMode) -> None:
        self._abort_gestures()
        self.view = view

    def set_events(self, events: List[CalendarEvent]) -> None:
        """Replace the snapshot, e.g. after the host persisted a change."""
        self._abort_gestures()
        self.events = list(events)

    def _step(self, direction: int) -> date:
        self._abort_gestures()
        if self.view == ViewMode.MONTH:
            self.current_date = self.current_date + relativedelta(months=direction)
        elif self.view == ViewMode.WEEK:
            self.current_date = self.current_date + timedelta(weeks=direction)
        else:
            self.current_date = self.current_date + timedelta(days=direction)
        return self.current_date

    # Rendering

    def visible_window(self) -> Tuple[datetime, datetime]:
        days = visible_days(self.view, self.current_date, self.config)
        return datetime.combine(days[0], time.min), datetime.combine(days[-1], time.max)

    def instances(self) -> List[CalendarEvent]:
        window_start, window_end = self.visible_window()
        return expand(self.events, window_start, window_end)

    def render(self, now: datetime) -> RenderedView:
        """
        Compute everything needed to draw the active view.

        Args:
            now: Injected wall-clock time for the current-time indicator
        """
        days = visible_days(self.view, self.current_date, self.config)
        window_start, window_end = self.visible_window()
        instances = expand(self.events, window_start, window_end)

        rendered = dict(
            view=self.view,
            current_date=self.current_date,
            title=header_title(self.view, self.current_date, self.config),
            window_start=window_start,
            window_end=window_end,
            days=tuple(days),
            instances=tuple(instances),
        )

        if self.view == ViewMode.MONTH:
            cells = bucket_by_day(instances, days, self.config.month_visible_cap)
            return RenderedView(month_cells=tuple(cells), **rendered)

        all_day_events = [event for event in instances if event.all_day]
        timed_events = [event for event in instances if not event.all_day]
        previews = {}
        if self.resize.resizing_event_id is not None:
            event_id = self.resize.resizing_event_id
            previews[event_id] = self.resize.preview_end_for(event_id)

        indicator = None
        if now.date() in days:
            indicator = current_time_offset(now, self.config)

        return RenderedView(
            all_day=tuple(bucket_by_day(all_day_events, days, len(all_day_events))),
            timed=tuple(layout_timed_events(timed_events, self.config, previews)),
            current_time_offset=indicator,
            scroll_offset=initial_scroll_offset(now, self.config),
            **rendered
        )

    # Pointer interaction

    def pointer_down(
        self,
        event_id: str,
        point: Point,
        on_resize_handle: bool = False,
        day_width: Optional[float] = None
    ) -> bool:
        """
        Start a gesture on an event.

        A press on the resize handle starts a resize and never a drag.
        Returns False when a gesture is already active or the event is unknown.
        """
        if self.drag.is_active or self.resize.is_active:
            return False

        event = self.find_instance(event_id)
        if event is None:
            logger.debug("Pointer down on unknown event %s", event_id)
            return False

        if on_resize_handle:
            axis = ResizeAxis.HORIZONTAL if self.view == ViewMode.MONTH else ResizeAxis.VERTICAL
            return self.resize.begin(event, point, axis=axis, day_width=day_width)

        if self.view == ViewMode.MONTH:
            distance = self.config.month_drag_distance
        else:
            distance = self.config.grid_drag_distance
        return self.drag.press(event, point, distance)

    def pointer_move(self, point: Point) -> None:
        if self.resize.is_active:
            self.resize.move(point)
        elif self.drag.is_active:
            self.drag.move(point)

    def hover(self, target: Optional[DropTarget]) -> None:
        self.drag.hover(target)

    def pointer_up(
        self,
        target: Optional[DropTarget] = None,
        point: Optional[Point] = None
    ) -> Optional[CommitResult]:
        """
        Finish the active gesture.

        Returns:
            CommitResult with advisory conflicts, or None when nothing was
            committed (click, drop outside a target, no gesture)
        """
        if self.resize.is_active:
            outcome = self.resize.release(point)
            commit = outcome.commit
            conflicts = self._conflicts_for(outcome.event, commit.start, commit.new_end)
            if self.callbacks.on_resize:
                self.callbacks.on_resize(commit.event_id, commit.start, commit.new_end)
            return CommitResult(commit=commit, conflicts=conflicts)

        if self.drag.is_active:
            if point is not None:
                self.drag.move(point)
            outcome = self.drag.release(target)
            if outcome is None or outcome.commit is None:
                return None
            commit = outcome.commit
            conflicts = self._conflicts_for(outcome.event, commit.new_start, commit.new_end)
            if self.callbacks.on_move:
                self.callbacks.on_move(commit.event_id, commit.new_start, commit.new_end)
            return CommitResult(commit=commit, conflicts=conflicts)

        return None

    def cancel_drag(self) -> None:
        self.drag.cancel()

    # Create / delete

    def create_at(
        self,
        moment: datetime,
        event_type: EventType = EventType.SHOWING,
        title: str = '',
        all_day: bool = False
    ) -> CreateRequest:
        """Request a new event at a clicked date or slot, sized by its type."""
        if all_day:
            start = datetime.combine(moment.date(), time.min)
            end = start + timedelta(days=1)
        else:
            start = moment
            end = start + timedelta(minutes=EVENT_TYPE_CONFIG[event_type].default_duration_minutes)

        request = CreateRequest(
            title=title,
            start=start,
            end=end,
            all_day=all_day,
            event_type=event_type,
        )
        if self.callbacks.on_create:
            self.callbacks.on_create(request)
        return request

    def delete(self, event_id: str) -> str:
        """Request deletion; instance ids resolve to their template."""
        event = self.find_instance(event_id)
        if event is not None:
            target_id = event.persistence_id
        else:
            ref = InstanceRef.parse(event_id)
            target_id = ref.template_id if ref else event_id
        if self.callbacks.on_delete:
            self.callbacks.on_delete(target_id)
        return target_id

    def find_instance(self, event_id: str) -> Optional[CalendarEvent]:
        for event in self.instances():
            if event.id == event_id:
                return event
        return None

    def _conflicts_for(
        self,
        event: CalendarEvent,
        start: datetime,
        end: datetime
    ) -> Tuple[CalendarEvent, ...]:
        proposed = TimeInterval(start=start, end=end, all_day=event.all_day)
        return tuple(find_conflicts(proposed, self.instances(), exclude_id=event.id))

    def _abort_gestures(self) -> None:
        self.drag.cancel()
        self.resize.cancel()
