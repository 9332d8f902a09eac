"""
Expansion of recurring bookings into concrete event instances.

A template event's own start/end is occurrence #1; the rule generates
occurrences #2+. Expansion is pure: identical inputs always give the same
list in the same order.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterator, List

from dateutil.relativedelta import relativedelta

from .types import (
    WEEKDAY_ABBREVIATIONS,
    CalendarEvent,
    Frequency,
    InstanceRef,
    RecurrenceRule,
)


logger = logging.getLogger(__name__)

FREQUENCY_UNITS = {
    Frequency.DAILY: ('day', 'days'),
    Frequency.WEEKLY: ('week', 'weeks'),
    Frequency.MONTHLY: ('month', 'months'),
    Frequency.YEARLY: ('year', 'years'),
}


def validate_rule(rule: RecurrenceRule) -> List[str]:
    """
    Check a recurrence rule for conditions that would never terminate.

    Returns:
        List of problems; empty when the rule is usable
    """
    problems = []

    if rule.frequency not in FREQUENCY_UNITS:
        problems.append(f"Unknown frequency: {rule.frequency!r}")

    if not isinstance(rule.interval, int) or rule.interval < 1:
        problems.append("Interval must be a positive integer")

    if rule.until is None and rule.count is None:
        problems.append("Rule needs an end date or an occurrence count")
    elif rule.until is not None and rule.count is not None:
        problems.append("Rule cannot have both an end date and an occurrence count")
    elif rule.count is not None and rule.count < 1:
        problems.append("Occurrence count must be at least 1")

    if any(day not in range(7) for day in rule.days_of_week):
        problems.append("Days of week must be between 0 (Monday) and 6 (Sunday)")

    return problems


def expand(
    events: List[CalendarEvent],
    window_start: datetime,
    window_end: datetime
) -> List[CalendarEvent]:
    """
    Expand all events (recurring or not) into instances within a window.

    Args:
        events: Event snapshot; never mutated
        window_start: Window start (inclusive)
        window_end: Window end (inclusive)

    Returns:
        Instances intersecting the window, ascending by start; ties keep
        input order
    """
    instances = []
    for event in events:
        instances.extend(expand_event(event, window_start, window_end))

    instances.sort(key=lambda instance: instance.start)
    return instances


def expand_event(
    event: CalendarEvent,
    window_start: datetime,
    window_end: datetime
) -> List[CalendarEvent]:
    """Expand a single event; non-recurring events pass through as-is."""
    if event.recurrence is None:
        if _intersects(event.start, event.end, window_start, window_end):
            return [event]
        return []

    problems = validate_rule(event.recurrence)
    if problems:
        logger.warning(
            "Recurrence rule on event %s rejected: %s",
            event.id, '; '.join(problems)
        )
        if _intersects(event.start, event.end, window_start, window_end):
            return [_make_instance(event, event.start)]
        return []

    instances = []
    for occurrence_start in _occurrence_starts(event, window_end):
        occurrence_end = occurrence_start + event.duration
        if _intersects(occurrence_start, occurrence_end, window_start, window_end):
            instances.append(_make_instance(event, occurrence_start))
    return instances


def describe_rule(rule: RecurrenceRule) -> str:
    """
    Human-readable summary of a rule.

    Example:
        "Repeats every 2 weeks on Mon, Wed, Fri, 10 times"
    """
    singular, plural = FREQUENCY_UNITS.get(rule.frequency, ('time', 'times'))
    if rule.interval == 1:
        description = f"Repeats every {singular}"
    else:
        description = f"Repeats every {rule.interval} {plural}"

    if rule.frequency == Frequency.WEEKLY and rule.days_of_week:
        days = ', '.join(WEEKDAY_ABBREVIATIONS[d] for d in sorted(rule.days_of_week))
        description += f" on {days}"

    if rule.count is not None:
        description += f", {rule.count} times"
    elif rule.until is not None:
        description += f" until {rule.until.isoformat()}"

    return description


def _occurrence_starts(event: CalendarEvent, window_end: datetime) -> Iterator[datetime]:
    """Yield occurrence starts in order, honouring the rule's end condition."""
    rule = event.recurrence
    produced = 0
    for occurrence_start in _candidate_starts(event.start, rule):
        if occurrence_start > window_end:
            return
        if rule.until is not None and occurrence_start.date() > rule.until:
            return
        if rule.count is not None and produced >= rule.count:
            return
        produced += 1
        yield occurrence_start


def _candidate_starts(anchor: datetime, rule: RecurrenceRule) -> Iterator[datetime]:
    """
    Strictly increasing occurrence starts beginning at the anchor.

    The series ends where the next start no longer fits in a datetime.
    """
    yield anchor

    if rule.frequency == Frequency.WEEKLY and rule.days_of_week:
        weekdays = set(rule.days_of_week)
        step = 0
        while True:
            try:
                block = [
                    anchor + timedelta(weeks=step * rule.interval, days=offset)
                    for offset in range(7)
                ]
            except (OverflowError, ValueError):
                return
            for candidate in block:
                if candidate > anchor and candidate.weekday() in weekdays:
                    yield candidate
            step += 1
    else:
        step = 1
        while True:
            try:
                candidate = anchor + _step_delta(rule, step)
            except (OverflowError, ValueError):
                return
            yield candidate
            step += 1


def _step_delta(rule: RecurrenceRule, step: int):
    units = step * rule.interval
    if rule.frequency == Frequency.DAILY:
        return timedelta(days=units)
    if rule.frequency == Frequency.WEEKLY:
        return timedelta(weeks=units)
    if rule.frequency == Frequency.MONTHLY:
        return relativedelta(months=units)
    return relativedelta(years=units)


def _make_instance(template: CalendarEvent, occurrence_start: datetime) -> CalendarEvent:
    ref = InstanceRef(template_id=template.id, occurrence_start=occurrence_start)
    return replace(
        template,
        id=ref.instance_id,
        start=occurrence_start,
        end=occurrence_start + template.duration,
        recurrence=None,
        recurrence_id=template.id,
        is_recurring_instance=occurrence_start != template.start,
    )


def _intersects(
    start: datetime,
    end: datetime,
    window_start: datetime,
    window_end: datetime
) -> bool:
    return start <= window_end and end >= window_start
