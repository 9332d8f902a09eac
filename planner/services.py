"""
Service layer for planner business logic.

Services bridge the ORM and the scheduling engine: they load stored bookings
as engine events, and persist the create/move/resize/delete intents the
engine emits.
"""

import logging
from datetime import datetime, time, timedelta
from typing import List, Optional, Tuple

from django.db import transaction

from .calendar_view import CalendarCallbacks, CalendarView, RenderedView, visible_days
from .conf import get_grid_config
from .conflicts import find_conflicts
from .drag import candidate_interval
from .models import CalendarEvent, EventTimeChange, RecurrenceRule
from . import types
from .recurrence import expand, expand_event
from .types import (
    CreateRequest,
    DropTarget,
    EventCreateData,
    EventStatus,
    EventUpdateData,
    Frequency,
    GridConfig,
    InstanceRef,
    TimeInterval,
    ViewMode,
)


logger = logging.getLogger(__name__)

DETAIL_FIELDS = ('color', 'lead_name', 'lead_email', 'lead_phone', 'property_address', 'community', 'notes')


def to_engine_event(event: CalendarEvent) -> types.CalendarEvent:
    """Convert a stored booking to the engine's immutable event."""
    rule = getattr(event, 'recurrence', None)
    return types.CalendarEvent(
        id=str(event.pk),
        title=event.title,
        start=event.start,
        end=event.end,
        all_day=event.all_day,
        event_type=types.EventType(event.event_type),
        status=EventStatus(event.status),
        recurrence=to_engine_rule(rule) if rule is not None else None,
        metadata={name: getattr(event, name) for name in DETAIL_FIELDS if getattr(event, name)},
    )


def to_engine_rule(rule: RecurrenceRule) -> types.RecurrenceRule:
    return types.RecurrenceRule(
        frequency=Frequency(rule.frequency),
        interval=rule.interval,
        days_of_week=frozenset(rule.days_of_week or []),
        until=rule.end_date,
        count=rule.occurrence_count,
    )


def load_events(
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
    status: Optional[str] = None
) -> List[types.CalendarEvent]:
    """
    Load stored bookings as engine events.

    Args:
        window_start: Optional window start; requires window_end
        window_end: Optional window end
        status: Optional status filter

    Returns:
        List of engine CalendarEvent values (templates unexpanded)
    """
    queryset = CalendarEvent.objects.select_related('recurrence')
    if window_start is not None and window_end is not None:
        queryset = CalendarEvent.objects.in_window(window_start, window_end)
    if status:
        queryset = queryset.filter(status=status)
    return [to_engine_event(event) for event in queryset]


def find_instance(event_id: str) -> Optional[types.CalendarEvent]:
    """
    Look up an event by engine id.

    Plain ids return the stored booking; instance ids re-expand the
    template at the referenced occurrence.
    """
    ref = InstanceRef.parse(event_id)
    stored_id = ref.template_id if ref else event_id
    if not stored_id.isdigit():
        return None

    event = CalendarEvent.objects.select_related('recurrence').filter(pk=int(stored_id)).first()
    if event is None:
        return None
    engine_event = to_engine_event(event)
    if ref is None:
        return engine_event

    for instance in expand_event(engine_event, ref.occurrence_start, ref.occurrence_start):
        if instance.id == event_id:
            return instance
    return None


@transaction.atomic
def create_event(data: EventCreateData) -> CalendarEvent:
    """
    Create a booking and, for recurring bookings, its rule.

    Raises:
        ValidationError: If the event or rule fails model validation
    """
    event = CalendarEvent.objects.create(
        title=data.title,
        start=data.start,
        end=data.end,
        all_day=data.all_day,
        event_type=types.EventType(data.event_type).value,
        status=EventStatus(data.status).value,
        **{name: value for name, value in data.details.items() if name in DETAIL_FIELDS}
    )
    if data.recurrence is not None:
        RecurrenceRule.objects.create(
            event=event,
            frequency=Frequency(data.recurrence.frequency).value,
            interval=data.recurrence.interval,
            days_of_week=sorted(data.recurrence.days_of_week),
            end_date=data.recurrence.until,
            occurrence_count=data.recurrence.count,
        )
    logger.info("Created event %s (%s)", event.pk, event.title)
    return event


@transaction.atomic
def update_event(event: CalendarEvent, update_data: EventUpdateData) -> CalendarEvent:
    """Update a booking; time changes are logged with the given reason."""
    new_start = update_data.start or event.start
    new_end = update_data.end or event.end
    if (new_start, new_end) != (event.start, event.end):
        _record_time_change(event, new_start, new_end, 'edit', update_data.reason)
        event.start = new_start
        event.end = new_end

    if update_data.title is not None:
        event.title = update_data.title
    if update_data.all_day is not None:
        event.all_day = update_data.all_day
    if update_data.event_type is not None:
        event.event_type = types.EventType(update_data.event_type).value
    for name, value in (update_data.details or {}).items():
        if name in DETAIL_FIELDS:
            setattr(event, name, value)

    event.save()
    return event


@transaction.atomic
def reschedule_event(
    event_id: str,
    new_start: datetime,
    new_end: datetime,
    reason: str = ''
) -> Tuple[CalendarEvent, bool]:
    """
    Persist a move of a booking.

    Moving a recurring template re-anchors the whole series.

    Returns:
        Tuple of (event, whether anything changed)
    """
    event = CalendarEvent.objects.select_for_update().get(pk=int(event_id))
    if (event.start, event.end) == (new_start, new_end):
        return event, False

    _record_time_change(event, new_start, new_end, 'move', reason)
    event.start = new_start
    event.end = new_end
    event.save()
    logger.info("Moved event %s to %s - %s", event.pk, new_start, new_end)
    return event, True


@transaction.atomic
def resize_event(
    event_id: str,
    start: datetime,
    new_end: datetime,
    reason: str = ''
) -> Tuple[CalendarEvent, bool]:
    """
    Persist a resize of a booking.

    The new duration is `new_end - start`; it is applied from the stored
    start, so resizing one occurrence resizes the whole series without
    moving it.

    Returns:
        Tuple of (event, whether anything changed)
    """
    event = CalendarEvent.objects.select_for_update().get(pk=int(event_id))
    resized_end = event.start + (new_end - start)
    if resized_end == event.end:
        return event, False

    _record_time_change(event, event.start, resized_end, 'resize', reason)
    event.end = resized_end
    event.save()
    logger.info("Resized event %s to end at %s", event.pk, resized_end)
    return event, True


@transaction.atomic
def cancel_event(event: CalendarEvent) -> CalendarEvent:
    """
    Cancel a booking.

    Raises:
        ValueError: If the booking is already cancelled
    """
    if event.status == EventStatus.CANCELLED.value:
        raise ValueError("Event is already cancelled")

    event.status = EventStatus.CANCELLED.value
    event.save()
    return event


@transaction.atomic
def complete_event(event: CalendarEvent) -> CalendarEvent:
    """
    Mark a booking as completed.

    Raises:
        ValueError: If the booking is already completed or cancelled
    """
    if event.status == EventStatus.COMPLETED.value:
        raise ValueError("Event is already completed")

    if event.status == EventStatus.CANCELLED.value:
        raise ValueError("Cannot complete a cancelled event")

    event.status = EventStatus.COMPLETED.value
    event.save()
    return event


def delete_event(event_id: str) -> None:
    deleted, _ = CalendarEvent.objects.filter(pk=int(event_id)).delete()
    if deleted:
        logger.info("Deleted event %s", event_id)


def create_from_request(request: CreateRequest) -> CalendarEvent:
    return create_event(EventCreateData(
        title=request.title or types.EVENT_TYPE_CONFIG[request.event_type].label,
        start=request.start,
        end=request.end,
        all_day=request.all_day,
        event_type=request.event_type,
        status=request.status,
    ))


def build_callbacks(reason: str = '') -> CalendarCallbacks:
    """Callbacks persisting the calendar view's intents through this module."""
    return CalendarCallbacks(
        on_create=create_from_request,
        on_move=lambda event_id, start, end: reschedule_event(event_id, start, end, reason),
        on_resize=lambda event_id, start, end: resize_event(event_id, start, end, reason),
        on_delete=delete_event,
    )


def build_calendar_view(
    view: ViewMode,
    current_date,
    config: Optional[GridConfig] = None
) -> CalendarView:
    """Calendar view over the stored bookings visible around `current_date`."""
    config = config or get_grid_config()
    days = visible_days(view, current_date, config)
    window_start = datetime.combine(days[0], time.min)
    window_end = datetime.combine(days[-1], time.max)
    return CalendarView(
        events=load_events(window_start, window_end),
        current_date=current_date,
        view=view,
        callbacks=build_callbacks(),
        config=config,
    )


def render_calendar(view: ViewMode, current_date, now: datetime) -> RenderedView:
    return build_calendar_view(view, current_date).render(now)


def check_conflicts(
    proposed: TimeInterval,
    exclude_id: Optional[str] = None
) -> List[types.CalendarEvent]:
    """Advisory conflicts of a proposed interval against stored bookings."""
    if proposed.all_day:
        return []
    existing = expand(load_events(proposed.start, proposed.end), proposed.start, proposed.end)
    return find_conflicts(proposed, existing, exclude_id=exclude_id)


def move_event(
    event_id: str,
    target: DropTarget,
    reason: str = ''
) -> Tuple[CalendarEvent, List[types.CalendarEvent]]:
    """
    Drop an event (or one occurrence) on a day cell or time slot.

    Returns:
        Tuple of (updated booking, advisory conflicts)

    Raises:
        CalendarEvent.DoesNotExist: If the id matches no event
    """
    instance = find_instance(event_id)
    if instance is None:
        raise CalendarEvent.DoesNotExist(f"No event with id {event_id}")

    new_start, new_end = candidate_interval(instance, target)
    conflicts = check_conflicts(
        TimeInterval(start=new_start, end=new_end, all_day=instance.all_day),
        exclude_id=instance.id,
    )
    event, _ = reschedule_event(instance.persistence_id, new_start, new_end, reason)
    return event, conflicts


def resize_to(
    event_id: str,
    new_end: datetime,
    reason: str = '',
    config: Optional[GridConfig] = None
) -> Tuple[CalendarEvent, List[types.CalendarEvent]]:
    """
    Set a new end for an event (or one occurrence), clamped to the minimum duration.

    Returns:
        Tuple of (updated booking, advisory conflicts)

    Raises:
        CalendarEvent.DoesNotExist: If the id matches no event
    """
    config = config or get_grid_config()
    instance = find_instance(event_id)
    if instance is None:
        raise CalendarEvent.DoesNotExist(f"No event with id {event_id}")

    floor = instance.start + timedelta(minutes=config.min_duration_minutes)
    new_end = max(new_end, floor)
    conflicts = check_conflicts(
        TimeInterval(start=instance.start, end=new_end, all_day=instance.all_day),
        exclude_id=instance.id,
    )
    event, _ = resize_event(instance.persistence_id, instance.start, new_end, reason)
    return event, conflicts


def _record_time_change(
    event: CalendarEvent,
    new_start: datetime,
    new_end: datetime,
    source: str,
    reason: str
) -> EventTimeChange:
    return EventTimeChange.objects.create(
        event=event,
        source=source,
        previous_start=event.start,
        previous_end=event.end,
        new_start=new_start,
        new_end=new_end,
        reason=reason,
    )
