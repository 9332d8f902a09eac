"""
Tests for the planner app: engine, models, services, API and commands.
"""

from datetime import date, datetime, timedelta
from io import StringIO

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase

from rest_framework import status
from rest_framework.test import APITestCase

from planner import services
from planner.calendar_view import (
    CalendarCallbacks,
    CalendarView,
    header_title,
    start_of_week,
    visible_days,
)
from planner.conflicts import find_conflicts, has_conflicts, overlaps
from planner.drag import DragRescheduleController, DragState, candidate_interval
from planner.layout import (
    bucket_by_day,
    current_time_offset,
    event_geometry,
    fractional_hour,
    hours_to_pixels,
    initial_scroll_offset,
    layout_timed_events,
    pixels_to_hours,
    slot_at_offset,
    time_slots,
)
from planner.models import CalendarEvent, EventTimeChange, RecurrenceRule
from planner.recurrence import describe_rule, expand, expand_event, validate_rule
from planner.resize import (
    ResizeAxis,
    ResizeController,
    ResizeState,
    horizontal_resize_end,
    snap_to_interval,
    vertical_resize_end,
)
from planner.types import (
    CalendarEvent as EngineEvent,
    CreateRequest,
    DayDropTarget,
    EventCreateData,
    EventType,
    EventUpdateData,
    Frequency,
    GridConfig,
    InstanceRef,
    MoveCommit,
    Point,
    RecurrenceRule as Rule,
    ResizeCommit,
    SlotDropTarget,
    TimeInterval,
    ViewMode,
)


START = datetime(2024, 1, 1, 10, 0)


def make_event(event_id='1', start=START, minutes=60, **kwargs):
    return EngineEvent(
        id=event_id,
        title=kwargs.pop('title', f'Event {event_id}'),
        start=start,
        end=start + timedelta(minutes=minutes),
        **kwargs
    )


class WeeklyExpansionTests(SimpleTestCase):
    """Test weekly rules with and without weekday sets."""

    def test_weekly_monday_wednesday_two_week_window(self):
        """Mon/Wed rule from Monday 2024-01-01 gives Jan 1, 3, 8, 10."""
        template = make_event(recurrence=Rule(
            frequency=Frequency.WEEKLY,
            days_of_week=frozenset({0, 2}),
            count=20,
        ))

        instances = expand([template], datetime(2024, 1, 1), datetime(2024, 1, 14, 23, 59))

        self.assertEqual(
            [instance.start.date() for instance in instances],
            [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 8), date(2024, 1, 10)]
        )
        self.assertTrue(all(instance.start.hour == 10 for instance in instances))

    def test_weekly_without_days_repeats_on_anchor_weekday(self):
        template = make_event(recurrence=Rule(
            frequency=Frequency.WEEKLY, interval=2, count=3
        ))

        instances = expand([template], datetime(2024, 1, 1), datetime(2024, 3, 1))

        self.assertEqual(
            [instance.start for instance in instances],
            [datetime(2024, 1, 1, 10), datetime(2024, 1, 15, 10), datetime(2024, 1, 29, 10)]
        )

    def test_weekly_interval_skips_weeks(self):
        """Every other week on Tuesday and Thursday."""
        template = make_event(recurrence=Rule(
            frequency=Frequency.WEEKLY,
            interval=2,
            days_of_week=frozenset({1, 3}),
            until=date(2024, 1, 31),
        ))

        instances = expand([template], datetime(2024, 1, 1), datetime(2024, 1, 31, 23, 59))

        self.assertEqual(
            [instance.start.day for instance in instances],
            [1, 2, 4, 16, 18, 30]
        )


class EndConditionTests(SimpleTestCase):
    """Test count and until end conditions."""

    def test_count_includes_template_occurrence(self):
        template = make_event(recurrence=Rule(frequency=Frequency.DAILY, count=3))

        instances = expand([template], datetime(2024, 1, 1), datetime(2024, 1, 31))

        self.assertEqual(len(instances), 3)
        self.assertEqual(instances[-1].start, datetime(2024, 1, 3, 10))

    def test_count_counts_occurrences_before_window(self):
        template = make_event(recurrence=Rule(frequency=Frequency.DAILY, count=5))

        instances = expand([template], datetime(2024, 1, 4), datetime(2024, 1, 31))

        self.assertEqual(
            [instance.start.day for instance in instances],
            [4, 5]
        )

    def test_until_is_inclusive(self):
        template = make_event(recurrence=Rule(
            frequency=Frequency.DAILY, until=date(2024, 1, 3)
        ))

        instances = expand([template], datetime(2024, 1, 1), datetime(2024, 1, 31))

        self.assertEqual([instance.start.day for instance in instances], [1, 2, 3])


class MonthlyYearlyTests(SimpleTestCase):

    def test_monthly_clamps_to_month_end(self):
        template = make_event(
            start=datetime(2024, 1, 31, 9, 0),
            recurrence=Rule(frequency=Frequency.MONTHLY, count=3),
        )

        instances = expand([template], datetime(2024, 1, 1), datetime(2024, 4, 30))

        self.assertEqual(
            [instance.start.date() for instance in instances],
            [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]
        )

    def test_yearly_leap_day(self):
        template = make_event(
            start=datetime(2024, 2, 29, 9, 0),
            recurrence=Rule(frequency=Frequency.YEARLY, count=2),
        )

        instances = expand([template], datetime(2024, 1, 1), datetime(2026, 1, 1))

        self.assertEqual(instances[1].start.date(), date(2025, 2, 28))


class InstanceIdentityTests(SimpleTestCase):
    """Test ids and flags carried by expanded instances."""

    def test_instance_ids_reference_template(self):
        template = make_event(event_id='42', recurrence=Rule(
            frequency=Frequency.DAILY, count=2
        ))

        first, second = expand([template], datetime(2024, 1, 1), datetime(2024, 1, 2, 23, 59))

        self.assertEqual(first.id, '42_20240101T100000')
        self.assertEqual(second.id, '42_20240102T100000')
        self.assertEqual(second.recurrence_id, '42')
        self.assertFalse(first.is_recurring_instance)
        self.assertTrue(second.is_recurring_instance)
        self.assertIsNone(second.recurrence)
        self.assertEqual(second.duration, template.duration)

    def test_instance_ref_round_trip(self):
        ref = InstanceRef.parse('42_20240102T100000')

        self.assertEqual(ref.template_id, '42')
        self.assertEqual(ref.occurrence_start, datetime(2024, 1, 2, 10))

    def test_plain_id_is_not_instance_ref(self):
        self.assertIsNone(InstanceRef.parse('42'))
        self.assertIsNone(InstanceRef.parse('lease_signing'))


class ExpansionBehaviourTests(SimpleTestCase):

    def test_expansion_is_deterministic(self):
        events = [
            make_event('1', recurrence=Rule(frequency=Frequency.DAILY, count=10)),
            make_event('2', start=datetime(2024, 1, 2, 10, 0)),
        ]

        first = expand(events, datetime(2024, 1, 1), datetime(2024, 1, 31))
        second = expand(events, datetime(2024, 1, 1), datetime(2024, 1, 31))

        self.assertEqual(first, second)

    def test_results_sorted_and_ties_keep_input_order(self):
        events = [
            make_event('b', start=datetime(2024, 1, 2, 9, 0)),
            make_event('a', start=datetime(2024, 1, 1, 9, 0)),
            make_event('c', start=datetime(2024, 1, 2, 9, 0)),
        ]

        instances = expand(events, datetime(2024, 1, 1), datetime(2024, 1, 31))

        self.assertEqual([instance.id for instance in instances], ['a', 'b', 'c'])

    def test_non_recurring_outside_window_dropped(self):
        event = make_event(start=datetime(2024, 2, 1, 9, 0))

        self.assertEqual(expand_event(event, datetime(2024, 1, 1), datetime(2024, 1, 31)), [])

    def test_event_touching_window_start_included(self):
        event = make_event(start=datetime(2023, 12, 31, 23, 0), minutes=60)

        self.assertEqual(len(expand_event(event, datetime(2024, 1, 1), datetime(2024, 1, 2))), 1)

    def test_input_not_mutated(self):
        template = make_event(recurrence=Rule(frequency=Frequency.DAILY, count=3))
        events = [template]

        expand(events, datetime(2024, 1, 1), datetime(2024, 1, 31))

        self.assertEqual(events, [template])
        self.assertIsNotNone(template.recurrence)


class InvalidRuleTests(SimpleTestCase):
    """Invalid rules fall back to the template occurrence."""

    def test_rule_without_end_condition_yields_template_only(self):
        template = make_event(recurrence=Rule(frequency=Frequency.DAILY))

        with self.assertLogs('planner.recurrence', level='WARNING'):
            instances = expand([template], datetime(2024, 1, 1), datetime(2024, 12, 31))

        self.assertEqual(len(instances), 1)
        self.assertEqual(instances[0].start, template.start)
        self.assertEqual(instances[0].recurrence_id, template.id)

    def test_zero_interval_rejected(self):
        problems = validate_rule(Rule(frequency=Frequency.DAILY, interval=0, count=3))

        self.assertEqual(problems, ["Interval must be a positive integer"])

    def test_both_end_conditions_rejected(self):
        rule = Rule(frequency=Frequency.DAILY, count=3, until=date(2024, 2, 1))

        self.assertEqual(len(validate_rule(rule)), 1)

    def test_weekday_out_of_range_rejected(self):
        rule = Rule(frequency=Frequency.WEEKLY, days_of_week=frozenset({7}), count=3)

        self.assertEqual(len(validate_rule(rule)), 1)

    def test_valid_rule_has_no_problems(self):
        rule = Rule(frequency=Frequency.WEEKLY, days_of_week=frozenset({0, 6}), count=3)

        self.assertEqual(validate_rule(rule), [])


class DescribeRuleTests(SimpleTestCase):

    def test_describe_weekly_with_days_and_count(self):
        rule = Rule(
            frequency=Frequency.WEEKLY,
            interval=2,
            days_of_week=frozenset({4, 0, 2}),
            count=10,
        )

        self.assertEqual(describe_rule(rule), "Repeats every 2 weeks on Mon, Wed, Fri, 10 times")

    def test_describe_daily_until(self):
        rule = Rule(frequency=Frequency.DAILY, until=date(2024, 3, 1))

        self.assertEqual(describe_rule(rule), "Repeats every day until 2024-03-01")


class LongIntervalTests(SimpleTestCase):
    """Series end where the next step no longer fits in a datetime."""

    def test_yearly_interval_beyond_datetime_range(self):
        template = make_event(recurrence=Rule(frequency=Frequency.YEARLY, interval=8000, count=5))

        instances = expand([template], datetime(2024, 1, 1), datetime(2024, 1, 31))

        self.assertEqual([instance.start for instance in instances], [template.start])

    def test_weekly_days_interval_beyond_timedelta_range(self):
        template = make_event(recurrence=Rule(
            frequency=Frequency.WEEKLY,
            interval=10 ** 9,
            days_of_week=frozenset({0}),
            count=5,
        ))

        instances = expand([template], datetime(2024, 1, 1), datetime(2024, 1, 31))

        self.assertEqual([instance.start for instance in instances], [template.start])

    def test_daily_interval_beyond_date_range_renders(self):
        template = make_event(recurrence=Rule(
            frequency=Frequency.DAILY, interval=4000000, until=date(9999, 12, 31)
        ))
        view = CalendarView([template], date(2024, 1, 10), view=ViewMode.MONTH)

        rendered = view.render(datetime(2024, 1, 10, 9, 0))

        self.assertEqual([instance.start for instance in rendered.instances], [template.start])


class ConflictDetectionTests(SimpleTestCase):
    """Test the half-open overlap rule and exclusions."""

    def setUp(self):
        self.showing = make_event('1', datetime(2024, 1, 1, 10, 0))

    def test_back_to_back_is_not_a_conflict(self):
        proposed = TimeInterval(datetime(2024, 1, 1, 11, 0), datetime(2024, 1, 1, 12, 0))

        self.assertEqual(find_conflicts(proposed, [self.showing]), [])

    def test_ending_at_start_is_not_a_conflict(self):
        proposed = TimeInterval(datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 1, 10, 0))

        self.assertFalse(has_conflicts(proposed, [self.showing]))

    def test_partial_overlap_conflicts(self):
        proposed = TimeInterval(datetime(2024, 1, 1, 10, 30), datetime(2024, 1, 1, 11, 30))

        self.assertEqual(find_conflicts(proposed, [self.showing]), [self.showing])

    def test_overlap_is_symmetric(self):
        other = make_event('2', datetime(2024, 1, 1, 10, 45), minutes=30)

        forward = overlaps(TimeInterval(self.showing.start, self.showing.end), other)
        backward = overlaps(TimeInterval(other.start, other.end), self.showing)

        self.assertTrue(forward)
        self.assertEqual(forward, backward)

    def test_all_day_proposal_never_conflicts(self):
        proposed = TimeInterval(datetime(2024, 1, 1), datetime(2024, 1, 2), all_day=True)

        self.assertEqual(find_conflicts(proposed, [self.showing]), [])

    def test_all_day_events_ignored(self):
        holiday = make_event('2', datetime(2024, 1, 1), minutes=24 * 60, all_day=True)
        proposed = TimeInterval(datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 11, 0))

        self.assertEqual(find_conflicts(proposed, [holiday, self.showing]), [self.showing])

    def test_excluded_event_skipped(self):
        proposed = TimeInterval(datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 11, 0))

        self.assertEqual(find_conflicts(proposed, [self.showing], exclude_id='1'), [])

    def test_results_keep_input_order(self):
        later = make_event('2', datetime(2024, 1, 1, 10, 30))
        proposed = TimeInterval(datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 12, 0))

        conflicts = find_conflicts(proposed, [later, self.showing])

        self.assertEqual([event.id for event in conflicts], ['2', '1'])


class EventGeometryTests(SimpleTestCase):
    """Test top/height computation on the hour grid."""

    def setUp(self):
        self.config = GridConfig()

    def test_geometry_from_grid_start(self):
        event = make_event('1', datetime(2024, 1, 1, 9, 30), minutes=90)

        geometry = event_geometry(event, self.config)

        self.assertEqual(geometry.top, 210)
        self.assertEqual(geometry.height, 90)

    def test_short_event_gets_minimum_height(self):
        event = make_event('1', datetime(2024, 1, 1, 9, 0), minutes=10)

        self.assertEqual(event_geometry(event, self.config).height, 24)

    def test_preview_end_overrides_stored_end(self):
        event = make_event('1', datetime(2024, 1, 1, 9, 0), minutes=60)

        geometry = event_geometry(event, self.config, preview_end=datetime(2024, 1, 1, 11, 0))

        self.assertEqual(geometry.height, 120)

    def test_pixels_and_hours_are_inverse(self):
        for hours in (0, 0.25, 1.5, 7, 16.75):
            self.assertAlmostEqual(pixels_to_hours(hours_to_pixels(hours, self.config), self.config), hours)

    def test_layout_skips_all_day_events(self):
        events = [
            make_event('1', datetime(2024, 1, 1), minutes=24 * 60, all_day=True),
            make_event('2', datetime(2024, 1, 1, 8, 0)),
        ]

        positioned = layout_timed_events(events, self.config)

        self.assertEqual([item.event.id for item in positioned], ['2'])
        self.assertEqual(positioned[0].day, date(2024, 1, 1))

    def test_fractional_hour(self):
        self.assertEqual(fractional_hour(datetime(2024, 1, 1, 13, 45)), 13.75)


class DayBucketTests(SimpleTestCase):

    def test_month_cell_caps_visible_events(self):
        day = date(2024, 1, 15)
        events = [make_event(str(n), datetime(2024, 1, 15, 8 + n, 0)) for n in range(5)]

        buckets = bucket_by_day(events, [day], cap=3)

        self.assertEqual(len(buckets[0].visible), 3)
        self.assertEqual(buckets[0].overflow, 2)
        self.assertEqual(buckets[0].overflow_label, "+2 more")

    def test_no_overflow_label_under_cap(self):
        day = date(2024, 1, 15)
        buckets = bucket_by_day([make_event('1', datetime(2024, 1, 15, 9, 0))], [day], cap=3)

        self.assertIsNone(buckets[0].overflow_label)

    def test_events_outside_days_dropped(self):
        buckets = bucket_by_day(
            [make_event('1', datetime(2024, 2, 1, 9, 0))],
            [date(2024, 1, 15), date(2024, 1, 16)],
            cap=3
        )

        self.assertEqual([bucket.visible for bucket in buckets], [(), ()])


class CurrentTimeTests(SimpleTestCase):

    def setUp(self):
        self.config = GridConfig()

    def test_indicator_offset_inside_grid(self):
        self.assertEqual(current_time_offset(datetime(2024, 1, 1, 9, 30), self.config), 210)

    def test_indicator_hidden_before_grid_start(self):
        self.assertIsNone(current_time_offset(datetime(2024, 1, 1, 5, 59), self.config))

    def test_indicator_hidden_at_grid_end(self):
        self.assertIsNone(current_time_offset(datetime(2024, 1, 1, 23, 0), self.config))

    def test_initial_scroll_two_hours_before_now(self):
        self.assertEqual(initial_scroll_offset(datetime(2024, 1, 1, 12, 10), self.config), 240)

    def test_initial_scroll_never_above_grid(self):
        self.assertEqual(initial_scroll_offset(datetime(2024, 1, 1, 7, 0), self.config), 0)


class SlotTests(SimpleTestCase):

    def setUp(self):
        self.config = GridConfig()

    def test_time_slots_cover_grid(self):
        slots = time_slots(self.config)

        self.assertEqual(slots[0], (6, 0))
        self.assertEqual(slots[-1], (22, 30))
        self.assertEqual(len(slots), 34)

    def test_slot_at_offset_floors_to_slot(self):
        slot = slot_at_offset(date(2024, 1, 1), 100, self.config)

        self.assertEqual((slot.hour, slot.minute), (7, 30))
        self.assertEqual(slot.kind, 'slot')

    def test_slot_at_offset_clamps_to_grid(self):
        below = slot_at_offset(date(2024, 1, 1), 5000, self.config)
        above = slot_at_offset(date(2024, 1, 1), -40, self.config)

        self.assertEqual((below.hour, below.minute), (22, 30))
        self.assertEqual((above.hour, above.minute), (6, 0))


class GridEdgeGeometryTests(SimpleTestCase):
    """Geometry follows the hour formula and is not clipped to the grid."""

    def setUp(self):
        self.config = GridConfig()

    def test_event_before_grid_start_has_negative_top(self):
        event = make_event('1', datetime(2024, 1, 1, 5, 0), minutes=120)

        geometry = event_geometry(event, self.config)

        self.assertEqual(geometry.top, -60)
        self.assertEqual(geometry.height, 120)

    def test_event_past_grid_end_keeps_full_height(self):
        event = make_event('1', datetime(2024, 1, 1, 22, 0), minutes=180)

        geometry = event_geometry(event, self.config)

        self.assertEqual(geometry.top, 960)
        self.assertEqual(geometry.height, 180)


class CandidateIntervalTests(SimpleTestCase):
    """Test where a dropped event lands."""

    def test_day_drop_keeps_time_of_day(self):
        event = make_event(minutes=90)

        start, end = candidate_interval(event, DayDropTarget(date=date(2024, 1, 5)))

        self.assertEqual(start, datetime(2024, 1, 5, 10, 0))
        self.assertEqual(end - start, event.duration)

    def test_slot_drop_uses_slot_time(self):
        event = make_event(minutes=90)

        start, end = candidate_interval(event, SlotDropTarget(date=date(2024, 1, 2), hour=14, minute=30))

        self.assertEqual(start, datetime(2024, 1, 2, 14, 30))
        self.assertEqual(end, datetime(2024, 1, 2, 16, 0))

    def test_unknown_target_raises(self):
        with self.assertRaises(TypeError):
            candidate_interval(make_event(minutes=90), {'type': 'day', 'date': '2024-01-05'})


class DragControllerTests(SimpleTestCase):
    """Test activation, commit and cancellation."""

    def setUp(self):
        self.controller = DragRescheduleController()
        self.event = make_event(minutes=90)

    def test_press_enters_pending(self):
        self.assertTrue(self.controller.press(self.event, Point(0, 0), 5))

        self.assertEqual(self.controller.state, DragState.PENDING)
        self.assertIsNone(self.controller.dragged_event)

    def test_small_movement_does_not_activate(self):
        self.controller.press(self.event, Point(0, 0), 5)
        self.controller.move(Point(3, 4))

        self.assertEqual(self.controller.state, DragState.PENDING)

    def test_movement_past_threshold_activates(self):
        self.controller.press(self.event, Point(0, 0), 5)
        self.controller.move(Point(4, 4))

        self.assertEqual(self.controller.state, DragState.DRAGGING)
        self.assertEqual(self.controller.dragged_event, self.event)

    def test_click_produces_no_commit(self):
        self.controller.press(self.event, Point(0, 0), 5)

        outcome = self.controller.release(DayDropTarget(date=date(2024, 1, 5)))

        self.assertIsNone(outcome)
        self.assertEqual(self.controller.state, DragState.IDLE)

    def test_drop_on_slot_commits_and_preserves_duration(self):
        self.controller.press(self.event, Point(0, 0), 5)
        self.controller.move(Point(50, 0))

        outcome = self.controller.release(SlotDropTarget(date=date(2024, 1, 3), hour=8, minute=0))

        self.assertEqual(outcome.state, DragState.COMMITTING)
        self.assertEqual(outcome.commit.event_id, '1')
        self.assertEqual(outcome.commit.new_start, datetime(2024, 1, 3, 8, 0))
        self.assertEqual(outcome.commit.new_end - outcome.commit.new_start, self.event.duration)
        self.assertEqual(self.controller.state, DragState.IDLE)

    def test_release_uses_last_hovered_target(self):
        self.controller.press(self.event, Point(0, 0), 5)
        self.controller.move(Point(50, 0))
        self.controller.hover(DayDropTarget(date=date(2024, 1, 4)))

        outcome = self.controller.release()

        self.assertEqual(outcome.commit.new_start, datetime(2024, 1, 4, 10, 0))

    def test_instance_commit_targets_template(self):
        instance = make_event('7_20240108T100000', minutes=90, start=datetime(2024, 1, 8, 10, 0), recurrence_id='7')
        self.controller.press(instance, Point(0, 0), 5)
        self.controller.move(Point(0, 20))

        outcome = self.controller.release(DayDropTarget(date=date(2024, 1, 9)))

        self.assertEqual(outcome.commit.event_id, '7')

    def test_release_without_target_cancels(self):
        self.controller.press(self.event, Point(0, 0), 5)
        self.controller.move(Point(50, 0))
        self.controller.hover(None)

        outcome = self.controller.release()

        self.assertEqual(outcome.state, DragState.CANCELLED)
        self.assertIsNone(outcome.commit)
        self.assertFalse(self.controller.is_active)

    def test_cancel_during_drag(self):
        self.controller.press(self.event, Point(0, 0), 5)
        self.controller.move(Point(50, 0))

        outcome = self.controller.cancel()

        self.assertEqual(outcome.state, DragState.CANCELLED)
        self.assertEqual(self.controller.state, DragState.IDLE)

    def test_second_press_rejected_while_active(self):
        self.controller.press(self.event, Point(0, 0), 5)

        self.assertFalse(self.controller.press(make_event('2', minutes=90), Point(0, 0), 5))

    def test_hover_ignored_before_activation(self):
        self.controller.press(self.event, Point(0, 0), 5)
        self.controller.hover(DayDropTarget(date=date(2024, 1, 4)))

        self.assertIsNone(self.controller.hovered_target)


class ResizeArithmeticTests(SimpleTestCase):

    def setUp(self):
        self.config = GridConfig()

    def test_snap_rounds_to_quarter_hour(self):
        self.assertEqual(snap_to_interval(datetime(2024, 1, 1, 10, 7), 15), datetime(2024, 1, 1, 10, 0))
        self.assertEqual(snap_to_interval(datetime(2024, 1, 1, 10, 8), 15), datetime(2024, 1, 1, 10, 15))

    def test_vertical_drag_extends_end(self):
        new_end = vertical_resize_end(START, START + timedelta(hours=1), 30, self.config)

        self.assertEqual(new_end, datetime(2024, 1, 1, 11, 30))

    def test_vertical_drag_snaps(self):
        new_end = vertical_resize_end(START, START + timedelta(hours=1), 22, self.config)

        self.assertEqual(new_end, datetime(2024, 1, 1, 11, 15))

    def test_end_never_before_minimum_duration(self):
        new_end = vertical_resize_end(START, START + timedelta(hours=1), -500, self.config)

        self.assertEqual(new_end, START + timedelta(minutes=15))

    def test_horizontal_resize_whole_days(self):
        new_end = horizontal_resize_end(START, START + timedelta(hours=1), 260, 100)

        self.assertEqual(new_end, START + timedelta(days=3, hours=1))

    def test_horizontal_resize_floor_is_one_day(self):
        new_end = horizontal_resize_end(START, START + timedelta(hours=1), -300, 100)

        self.assertEqual(new_end, START + timedelta(days=1))


class ResizeControllerTests(SimpleTestCase):
    """Test the resize session lifecycle."""

    def setUp(self):
        self.controller = ResizeController(GridConfig())
        self.event = make_event()

    def test_begin_sets_preview_immediately(self):
        self.controller.begin(self.event, Point(0, 0))

        self.assertEqual(self.controller.state, ResizeState.RESIZING)
        self.assertEqual(self.controller.preview_end_for('1'), self.event.end)

    def test_move_updates_preview(self):
        self.controller.begin(self.event, Point(0, 0))

        preview = self.controller.move(Point(0, 60))

        self.assertEqual(preview, datetime(2024, 1, 1, 12, 0))
        self.assertEqual(self.controller.preview_end_for('1'), preview)
        self.assertIsNone(self.controller.preview_end_for('2'))

    def test_release_commits_with_start_unchanged(self):
        self.controller.begin(self.event, Point(0, 0))

        outcome = self.controller.release(Point(0, 45))

        self.assertEqual(outcome.state, ResizeState.COMMITTING)
        self.assertEqual(outcome.commit.start, START)
        self.assertEqual(outcome.commit.new_end, datetime(2024, 1, 1, 11, 45))
        self.assertEqual(self.controller.state, ResizeState.IDLE)

    def test_release_without_movement_still_commits(self):
        self.controller.begin(self.event, Point(0, 0))

        outcome = self.controller.release()

        self.assertEqual(outcome.commit.new_end, self.event.end)

    def test_instance_resize_targets_template(self):
        instance = make_event('3_20240101T100000', recurrence_id='3')
        self.controller.begin(instance, Point(0, 0))

        outcome = self.controller.release(Point(0, 30))

        self.assertEqual(outcome.commit.event_id, '3')

    def test_cancel_discards_preview(self):
        self.controller.begin(self.event, Point(0, 0))
        self.controller.move(Point(0, 60))

        outcome = self.controller.cancel()

        self.assertEqual(outcome.state, ResizeState.CANCELLED)
        self.assertIsNone(outcome.commit)
        self.assertIsNone(self.controller.resizing_event_id)

    def test_horizontal_axis(self):
        self.controller.begin(self.event, Point(0, 0), axis=ResizeAxis.HORIZONTAL, day_width=120)

        preview = self.controller.move(Point(130, 0))

        self.assertEqual(preview, self.event.end + timedelta(days=1))

    def test_second_begin_rejected(self):
        self.controller.begin(self.event, Point(0, 0))

        self.assertFalse(self.controller.begin(make_event('2'), Point(0, 0)))


class RecordingCallbacks:
    """Collects every callback invocation."""

    def __init__(self):
        self.calls = []

    def build(self):
        return CalendarCallbacks(
            on_create=lambda request: self.calls.append(('create', request)),
            on_move=lambda *args: self.calls.append(('move',) + args),
            on_resize=lambda *args: self.calls.append(('resize',) + args),
            on_delete=lambda event_id: self.calls.append(('delete', event_id)),
        )


class VisibleDaysTests(SimpleTestCase):
    """Test windows and titles for each view mode."""

    def setUp(self):
        self.config = GridConfig()

    def test_week_starts_on_sunday_by_default(self):
        self.assertEqual(start_of_week(date(2024, 1, 10), 6), date(2024, 1, 7))

    def test_week_starting_monday(self):
        self.assertEqual(start_of_week(date(2024, 1, 10), 0), date(2024, 1, 8))

    def test_month_covers_full_weeks(self):
        days = visible_days(ViewMode.MONTH, date(2024, 1, 10), self.config)

        self.assertEqual(days[0], date(2023, 12, 31))
        self.assertEqual(days[-1], date(2024, 2, 3))
        self.assertEqual(len(days), 35)

    def test_day_view_is_single_day(self):
        self.assertEqual(visible_days(ViewMode.DAY, date(2024, 1, 10), self.config), [date(2024, 1, 10)])

    def test_titles(self):
        self.assertEqual(header_title(ViewMode.MONTH, date(2024, 1, 10), self.config), "January 2024")
        self.assertEqual(header_title(ViewMode.WEEK, date(2024, 1, 10), self.config), "Jan 7 - 13, 2024")
        self.assertEqual(
            header_title(ViewMode.DAY, date(2024, 1, 10), self.config),
            "Wednesday, January 10, 2024"
        )

    def test_week_title_across_years(self):
        self.assertEqual(
            header_title(ViewMode.WEEK, date(2024, 1, 3), self.config),
            "Dec 31, 2023 - Jan 6, 2024"
        )


class NavigationTests(SimpleTestCase):

    def test_next_month_clamps_day(self):
        view = CalendarView([], date(2024, 1, 31), view=ViewMode.MONTH)

        self.assertEqual(view.next(), date(2024, 2, 29))

    def test_previous_week(self):
        view = CalendarView([], date(2024, 1, 10), view=ViewMode.WEEK)

        self.assertEqual(view.previous(), date(2024, 1, 3))

    def test_next_day(self):
        view = CalendarView([], date(2024, 1, 31), view=ViewMode.DAY)

        self.assertEqual(view.next(), date(2024, 2, 1))

    def test_today_jumps(self):
        view = CalendarView([], date(2024, 1, 10))

        self.assertEqual(view.today(date(2024, 6, 1)), date(2024, 6, 1))

    def test_navigation_aborts_active_drag(self):
        view = CalendarView([make_event('1', datetime(2024, 1, 10, 10, 0))], date(2024, 1, 10), view=ViewMode.WEEK)
        view.pointer_down('1', Point(0, 0))
        view.pointer_move(Point(0, 30))

        view.next()

        self.assertFalse(view.drag.is_active)

    def test_set_view_aborts_active_resize(self):
        view = CalendarView([make_event('1', datetime(2024, 1, 10, 10, 0))], date(2024, 1, 10), view=ViewMode.WEEK)
        view.pointer_down('1', Point(0, 0), on_resize_handle=True)

        view.set_view(ViewMode.DAY)

        self.assertFalse(view.resize.is_active)


class RenderTests(SimpleTestCase):
    """Test rendered output for month and week views."""

    def test_month_view_buckets_with_overflow(self):
        events = [make_event(str(n), datetime(2024, 1, 15, 8 + n, 0)) for n in range(5)]
        view = CalendarView(events, date(2024, 1, 10), view=ViewMode.MONTH)

        rendered = view.render(datetime(2024, 1, 10, 9, 0))

        cell = next(cell for cell in rendered.month_cells if cell.date == date(2024, 1, 15))
        self.assertEqual(len(cell.visible), 3)
        self.assertEqual(cell.overflow_label, "+2 more")
        self.assertEqual(rendered.timed, ())
        self.assertIsNone(rendered.current_time_offset)

    def test_month_view_marks_current_month(self):
        view = CalendarView([], date(2024, 1, 10), view=ViewMode.MONTH)

        rendered = view.render(datetime(2024, 1, 10, 9, 0))

        self.assertFalse(rendered.is_current_month(rendered.days[0]))
        self.assertTrue(rendered.is_current_month(date(2024, 1, 31)))

    def test_week_view_expands_recurring_events(self):
        template = make_event(
            '5', datetime(2024, 1, 1, 9, 0),
            recurrence=Rule(frequency=Frequency.WEEKLY, days_of_week=frozenset({0, 2}), count=10),
        )
        view = CalendarView([template], date(2024, 1, 10), view=ViewMode.WEEK)

        rendered = view.render(datetime(2024, 1, 10, 9, 30))

        self.assertEqual(
            [item.event.id for item in rendered.timed],
            ['5_20240108T090000', '5_20240110T090000']
        )
        self.assertEqual(rendered.current_time_offset, 210)
        self.assertEqual(rendered.scroll_offset, 60)

    def test_week_view_separates_all_day_events(self):
        events = [
            make_event('1', datetime(2024, 1, 9), minutes=24 * 60, all_day=True),
            make_event('2', datetime(2024, 1, 9, 10, 0)),
        ]
        view = CalendarView(events, date(2024, 1, 10), view=ViewMode.WEEK)

        rendered = view.render(datetime(2024, 1, 10, 9, 0))

        all_day_cell = next(cell for cell in rendered.all_day if cell.date == date(2024, 1, 9))
        self.assertEqual([event.id for event in all_day_cell.visible], ['1'])
        self.assertEqual([item.event.id for item in rendered.timed], ['2'])

    def test_indicator_hidden_when_today_not_visible(self):
        view = CalendarView([], date(2024, 1, 10), view=ViewMode.WEEK)

        rendered = view.render(datetime(2024, 1, 20, 9, 30))

        self.assertIsNone(rendered.current_time_offset)


class GestureTests(SimpleTestCase):
    """Test pointer routing and host callbacks."""

    def setUp(self):
        self.recorder = RecordingCallbacks()
        self.showing = make_event('1', datetime(2024, 1, 10, 10, 0))
        self.view = CalendarView(
            [self.showing],
            date(2024, 1, 10),
            view=ViewMode.WEEK,
            callbacks=self.recorder.build(),
        )

    def test_drag_to_slot_calls_on_move(self):
        self.view.pointer_down('1', Point(0, 0))
        self.view.pointer_move(Point(0, 20))

        result = self.view.pointer_up(SlotDropTarget(date=date(2024, 1, 11), hour=14, minute=0))

        self.assertIsInstance(result.commit, MoveCommit)
        self.assertEqual(
            self.recorder.calls,
            [('move', '1', datetime(2024, 1, 11, 14, 0), datetime(2024, 1, 11, 15, 0))]
        )

    def test_drag_reports_advisory_conflicts(self):
        other = make_event('2', datetime(2024, 1, 11, 14, 30))
        self.view.set_events([self.showing, other])
        self.view.pointer_down('1', Point(0, 0))
        self.view.pointer_move(Point(0, 20))

        result = self.view.pointer_up(SlotDropTarget(date=date(2024, 1, 11), hour=14, minute=0))

        self.assertEqual([event.id for event in result.conflicts], ['2'])
        self.assertEqual(len(self.recorder.calls), 1)

    def test_click_does_not_move(self):
        self.view.pointer_down('1', Point(0, 0))
        self.view.pointer_move(Point(3, 3))

        result = self.view.pointer_up(SlotDropTarget(date=date(2024, 1, 11), hour=14, minute=0))

        self.assertIsNone(result)
        self.assertEqual(self.recorder.calls, [])

    def test_drop_outside_target_does_not_move(self):
        self.view.pointer_down('1', Point(0, 0))
        self.view.pointer_move(Point(0, 40))

        self.assertIsNone(self.view.pointer_up())
        self.assertEqual(self.recorder.calls, [])

    def test_cancel_drag(self):
        self.view.pointer_down('1', Point(0, 0))
        self.view.pointer_move(Point(0, 40))
        self.view.hover(DayDropTarget(date=date(2024, 1, 12)))

        self.view.cancel_drag()

        self.assertIsNone(self.view.pointer_up())
        self.assertEqual(self.recorder.calls, [])

    def test_resize_handle_takes_precedence_over_drag(self):
        self.view.pointer_down('1', Point(0, 0), on_resize_handle=True)
        self.view.pointer_move(Point(0, 60))

        self.assertTrue(self.view.resize.is_active)
        self.assertFalse(self.view.drag.is_active)

        rendered = self.view.render(datetime(2024, 1, 10, 9, 0))
        self.assertEqual(rendered.timed[0].geometry.height, 120)

        result = self.view.pointer_up()

        self.assertIsInstance(result.commit, ResizeCommit)
        self.assertEqual(
            self.recorder.calls,
            [('resize', '1', datetime(2024, 1, 10, 10, 0), datetime(2024, 1, 10, 12, 0))]
        )

    def test_month_resize_is_horizontal(self):
        self.view.set_view(ViewMode.MONTH)

        self.view.pointer_down('1', Point(0, 0), on_resize_handle=True, day_width=100)

        self.assertEqual(self.view.resize.axis, ResizeAxis.HORIZONTAL)

    def test_only_one_gesture_at_a_time(self):
        self.view.pointer_down('1', Point(0, 0), on_resize_handle=True)

        self.assertFalse(self.view.pointer_down('1', Point(0, 0)))

    def test_unknown_event_ignored(self):
        self.assertFalse(self.view.pointer_down('99', Point(0, 0)))

    def test_drag_recurring_instance_moves_template(self):
        template = make_event(
            '5', datetime(2024, 1, 3, 9, 0),
            recurrence=Rule(frequency=Frequency.WEEKLY, count=4),
        )
        self.view.set_events([template])
        self.view.pointer_down('5_20240110T090000', Point(0, 0))
        self.view.pointer_move(Point(0, 20))

        self.view.pointer_up(SlotDropTarget(date=date(2024, 1, 10), hour=11, minute=0))

        self.assertEqual(self.recorder.calls[0][:2], ('move', '5'))


class CreateDeleteTests(SimpleTestCase):

    def setUp(self):
        self.recorder = RecordingCallbacks()
        self.view = CalendarView([], date(2024, 1, 10), view=ViewMode.WEEK, callbacks=self.recorder.build())

    def test_create_uses_type_default_duration(self):
        request = self.view.create_at(datetime(2024, 1, 10, 9, 0), EventType.MOVE_IN)

        self.assertEqual(request.end, datetime(2024, 1, 10, 11, 0))
        self.assertEqual(self.recorder.calls, [('create', request)])

    def test_create_all_day_spans_one_day(self):
        request = self.view.create_at(datetime(2024, 1, 10, 15, 0), all_day=True)

        self.assertEqual(request.start, datetime(2024, 1, 10))
        self.assertEqual(request.end, datetime(2024, 1, 11))
        self.assertTrue(request.all_day)

    def test_delete_instance_resolves_template(self):
        template = make_event(
            '5', datetime(2024, 1, 3, 9, 0),
            recurrence=Rule(frequency=Frequency.WEEKLY, count=4),
        )
        self.view.set_events([template])

        self.assertEqual(self.view.delete('5_20240110T090000'), '5')
        self.assertEqual(self.view.delete('5_20240131T090000'), '5')
        self.assertEqual(self.recorder.calls, [('delete', '5'), ('delete', '5')])

    def test_delete_plain_event(self):
        self.assertEqual(self.view.delete('12'), '12')


class CalendarEventModelTests(TestCase):
    """Test CalendarEvent model and validation."""

    def test_create_event(self):
        """Test creating a one-time booking."""
        event = CalendarEvent.objects.create(
            title="Showing - Unit 4B",
            start=datetime(2024, 11, 4, 10, 0),
            end=datetime(2024, 11, 4, 10, 30),
            lead_name="Dana Reyes",
            property_address="12 Elm St, Unit 4B",
        )

        self.assertEqual(event.event_type, 'showing')
        self.assertEqual(event.status, 'confirmed')
        self.assertFalse(event.is_recurring)
        self.assertEqual(str(event), "Showing - Unit 4B - 2024-11-04 10:00")

    def test_end_before_start_rejected(self):
        """Test that a timed booking cannot end before it starts."""
        with self.assertRaises(ValidationError):
            CalendarEvent.objects.create(
                title="Invalid",
                start=datetime(2024, 11, 4, 10, 0),
                end=datetime(2024, 11, 4, 9, 0),
            )

    def test_unknown_event_type_rejected(self):
        with self.assertRaises(ValidationError):
            CalendarEvent.objects.create(
                title="Invalid",
                start=datetime(2024, 11, 4, 10, 0),
                end=datetime(2024, 11, 4, 11, 0),
                event_type='party',
            )


class RecurrenceRuleModelTests(TestCase):
    """Test RecurrenceRule model validation."""

    def setUp(self):
        self.event = CalendarEvent.objects.create(
            title="Weekly Inspection",
            start=datetime(2024, 1, 1, 9, 0),
            end=datetime(2024, 1, 1, 10, 0),
            event_type='inspection',
        )

    def test_create_rule(self):
        rule = RecurrenceRule.objects.create(
            event=self.event,
            frequency='weekly',
            days_of_week=[0, 2],
            occurrence_count=10,
        )

        self.event.refresh_from_db()
        self.assertTrue(self.event.is_recurring)
        self.assertEqual(self.event.recurrence, rule)
        self.assertEqual(str(rule), "Weekly rule for Weekly Inspection")

    def test_rule_needs_an_end_condition(self):
        with self.assertRaises(ValidationError):
            RecurrenceRule.objects.create(event=self.event, frequency='daily')

    def test_rule_cannot_have_both_end_conditions(self):
        with self.assertRaises(ValidationError):
            RecurrenceRule.objects.create(
                event=self.event,
                frequency='daily',
                end_date=date(2024, 2, 1),
                occurrence_count=5,
            )

    def test_rule_rejects_invalid_weekday(self):
        with self.assertRaises(ValidationError):
            RecurrenceRule.objects.create(
                event=self.event,
                frequency='weekly',
                days_of_week=[7],
                occurrence_count=5,
            )

    def test_rule_rejects_zero_interval(self):
        with self.assertRaises(ValidationError):
            RecurrenceRule.objects.create(
                event=self.event,
                frequency='weekly',
                interval=0,
                occurrence_count=5,
            )

    def test_deleting_event_deletes_rule(self):
        RecurrenceRule.objects.create(event=self.event, frequency='daily', occurrence_count=3)

        self.event.delete()

        self.assertEqual(RecurrenceRule.objects.count(), 0)


class CalendarEventManagerTests(TestCase):
    """Test custom manager methods."""

    def setUp(self):
        self.one_time = CalendarEvent.objects.create(
            title="Move-in",
            start=datetime(2024, 1, 10, 9, 0),
            end=datetime(2024, 1, 10, 11, 0),
            event_type='move_in',
        )
        self.cancelled = CalendarEvent.objects.create(
            title="Cancelled showing",
            start=datetime(2024, 1, 11, 9, 0),
            end=datetime(2024, 1, 11, 9, 30),
            status='cancelled',
        )
        self.template = CalendarEvent.objects.create(
            title="Team meeting",
            start=datetime(2023, 12, 4, 8, 0),
            end=datetime(2023, 12, 4, 9, 0),
            event_type='meeting',
        )
        RecurrenceRule.objects.create(event=self.template, frequency='weekly', occurrence_count=20)

    def test_active_excludes_cancelled(self):
        self.assertNotIn(self.cancelled, CalendarEvent.objects.active())
        self.assertEqual(CalendarEvent.objects.active().count(), 2)

    def test_templates_and_one_time(self):
        self.assertEqual(list(CalendarEvent.objects.templates()), [self.template])
        self.assertNotIn(self.template, CalendarEvent.objects.one_time())

    def test_in_window_includes_earlier_templates(self):
        events = CalendarEvent.objects.in_window(datetime(2024, 1, 10), datetime(2024, 1, 10, 23, 59))

        self.assertIn(self.template, events)
        self.assertIn(self.one_time, events)
        self.assertNotIn(self.cancelled, events)

    def test_with_status(self):
        self.assertEqual(list(CalendarEvent.objects.with_status('cancelled')), [self.cancelled])


class EventTimeChangeModelTests(TestCase):

    def test_history_newest_first(self):
        event = CalendarEvent.objects.create(
            title="Showing",
            start=datetime(2024, 1, 10, 9, 0),
            end=datetime(2024, 1, 10, 9, 30),
        )
        first = EventTimeChange.objects.create(
            event=event,
            source='move',
            previous_start=datetime(2024, 1, 10, 9, 0),
            previous_end=datetime(2024, 1, 10, 9, 30),
            new_start=datetime(2024, 1, 11, 9, 0),
            new_end=datetime(2024, 1, 11, 9, 30),
        )
        second = EventTimeChange.objects.create(
            event=event,
            source='resize',
            previous_start=datetime(2024, 1, 11, 9, 0),
            previous_end=datetime(2024, 1, 11, 9, 30),
            new_start=datetime(2024, 1, 11, 9, 0),
            new_end=datetime(2024, 1, 11, 10, 0),
            reason="Applicant bringing a co-signer",
        )

        self.assertEqual(list(event.time_changes.all()), [second, first])


class EventServiceTests(TestCase):
    """Test create/update/cancel/complete."""

    def test_create_one_time_event(self):
        event = services.create_event(EventCreateData(
            title="Showing - Unit 2A",
            start=datetime(2024, 1, 10, 10, 0),
            end=datetime(2024, 1, 10, 10, 30),
            details={'lead_name': 'Sam Ortiz', 'unknown': 'ignored'},
        ))

        self.assertEqual(event.lead_name, 'Sam Ortiz')
        self.assertFalse(CalendarEvent.objects.get(pk=event.pk).is_recurring)

    def test_create_recurring_event(self):
        event = services.create_event(EventCreateData(
            title="Maintenance walk",
            start=datetime(2024, 1, 1, 8, 0),
            end=datetime(2024, 1, 1, 10, 0),
            event_type=EventType.MAINTENANCE,
            recurrence=Rule(frequency=Frequency.WEEKLY, days_of_week=frozenset({2, 0}), count=6),
        ))

        rule = RecurrenceRule.objects.get(event=event)
        self.assertEqual(rule.days_of_week, [0, 2])
        self.assertEqual(rule.occurrence_count, 6)

    def test_create_from_request_uses_type_label_for_blank_title(self):
        event = services.create_from_request(CreateRequest(
            title='',
            start=datetime(2024, 1, 10, 9, 0),
            end=datetime(2024, 1, 10, 10, 0),
            event_type=EventType.INSPECTION,
        ))

        self.assertEqual(event.title, 'Inspection')
        self.assertEqual(event.event_type, 'inspection')

    def test_update_event_records_time_change(self):
        event = services.create_event(EventCreateData(
            title="Showing",
            start=datetime(2024, 1, 10, 10, 0),
            end=datetime(2024, 1, 10, 10, 30),
        ))

        services.update_event(event, EventUpdateData(
            title="Showing (rescheduled)",
            start=datetime(2024, 1, 12, 10, 0),
            end=datetime(2024, 1, 12, 10, 30),
            reason="Lead asked for Friday",
        ))

        event.refresh_from_db()
        self.assertEqual(event.title, "Showing (rescheduled)")
        change = event.time_changes.get()
        self.assertEqual(change.source, 'edit')
        self.assertEqual(change.reason, "Lead asked for Friday")
        self.assertEqual(change.previous_start, datetime(2024, 1, 10, 10, 0))

    def test_update_without_time_change_records_nothing(self):
        event = services.create_event(EventCreateData(
            title="Showing",
            start=datetime(2024, 1, 10, 10, 0),
            end=datetime(2024, 1, 10, 10, 30),
        ))

        services.update_event(event, EventUpdateData(details={'notes': 'Bring keys'}))

        self.assertEqual(EventTimeChange.objects.count(), 0)
        self.assertEqual(CalendarEvent.objects.get(pk=event.pk).notes, 'Bring keys')

    def test_cancel_and_complete_rules(self):
        event = services.create_event(EventCreateData(
            title="Showing",
            start=datetime(2024, 1, 10, 10, 0),
            end=datetime(2024, 1, 10, 10, 30),
        ))

        services.cancel_event(event)

        with self.assertRaises(ValueError):
            services.cancel_event(event)
        with self.assertRaises(ValueError):
            services.complete_event(event)

    def test_complete_twice_rejected(self):
        event = services.create_event(EventCreateData(
            title="Move-in",
            start=datetime(2024, 1, 10, 10, 0),
            end=datetime(2024, 1, 10, 12, 0),
        ))

        services.complete_event(event)

        with self.assertRaises(ValueError):
            services.complete_event(event)

    def test_delete_event(self):
        event = services.create_event(EventCreateData(
            title="Showing",
            start=datetime(2024, 1, 10, 10, 0),
            end=datetime(2024, 1, 10, 10, 30),
        ))

        services.delete_event(str(event.pk))

        self.assertFalse(CalendarEvent.objects.filter(pk=event.pk).exists())


class CalendarServiceTests(TestCase):
    """Test rendering, conflicts and gesture persistence against the database."""

    def setUp(self):
        self.template = services.create_event(EventCreateData(
            title="Weekly inspection",
            start=datetime(2024, 1, 3, 9, 0),
            end=datetime(2024, 1, 3, 10, 0),
            event_type=EventType.INSPECTION,
            recurrence=Rule(frequency=Frequency.WEEKLY, count=4),
        ))
        self.showing = services.create_event(EventCreateData(
            title="Showing",
            start=datetime(2024, 1, 11, 14, 0),
            end=datetime(2024, 1, 11, 14, 30),
        ))
        self.instance_id = f"{self.template.pk}_20240110T090000"

    def test_load_events_converts_to_engine_events(self):
        events = services.load_events()

        template = next(event for event in events if event.id == str(self.template.pk))
        self.assertEqual(template.recurrence.frequency, Frequency.WEEKLY)
        self.assertEqual(template.recurrence.count, 4)

    def test_find_instance(self):
        instance = services.find_instance(self.instance_id)

        self.assertEqual(instance.start, datetime(2024, 1, 10, 9, 0))
        self.assertEqual(instance.recurrence_id, str(self.template.pk))

    def test_find_instance_unknown_ids(self):
        self.assertIsNone(services.find_instance('9999'))
        self.assertIsNone(services.find_instance('not-an-id'))
        self.assertIsNone(services.find_instance(f"{self.template.pk}_20240111T090000"))

    def test_render_week_expands_template(self):
        rendered = services.render_calendar(ViewMode.WEEK, date(2024, 1, 10), datetime(2024, 1, 10, 9, 0))

        self.assertEqual(
            [item.event.id for item in rendered.timed],
            [self.instance_id, str(self.showing.pk)]
        )

    def test_check_conflicts_against_occurrences(self):
        conflicts = services.check_conflicts(
            TimeInterval(datetime(2024, 1, 17, 9, 30), datetime(2024, 1, 17, 10, 30))
        )

        self.assertEqual([event.recurrence_id for event in conflicts], [str(self.template.pk)])

    def test_check_conflicts_excludes_edited_event(self):
        conflicts = services.check_conflicts(
            TimeInterval(datetime(2024, 1, 11, 14, 0), datetime(2024, 1, 11, 14, 30)),
            exclude_id=str(self.showing.pk),
        )

        self.assertEqual(conflicts, [])

    def test_move_instance_reanchors_series(self):
        event, conflicts = services.move_event(
            self.instance_id,
            SlotDropTarget(date=date(2024, 1, 11), hour=14, minute=0),
            reason="Inspector running late",
        )

        self.assertEqual(event.pk, self.template.pk)
        self.assertEqual(event.start, datetime(2024, 1, 11, 14, 0))
        self.assertEqual(event.end, datetime(2024, 1, 11, 15, 0))
        self.assertEqual([conflict.id for conflict in conflicts], [str(self.showing.pk)])
        self.assertEqual(event.time_changes.get().source, 'move')

    def test_move_one_time_event_to_day_keeps_time(self):
        event, conflicts = services.move_event(
            str(self.showing.pk),
            DayDropTarget(date=date(2024, 1, 15)),
        )

        self.assertEqual(event.start, datetime(2024, 1, 15, 14, 0))
        self.assertEqual(conflicts, [])

    def test_move_to_same_time_records_nothing(self):
        services.move_event(str(self.showing.pk), DayDropTarget(date=date(2024, 1, 11)))

        self.assertEqual(EventTimeChange.objects.count(), 0)

    def test_move_unknown_event(self):
        with self.assertRaises(CalendarEvent.DoesNotExist):
            services.move_event('9999', DayDropTarget(date=date(2024, 1, 15)))

    def test_resize_applies_floor(self):
        event, _ = services.resize_to(str(self.showing.pk), datetime(2024, 1, 11, 14, 5))

        self.assertEqual(event.start, datetime(2024, 1, 11, 14, 0))
        self.assertEqual(event.end, datetime(2024, 1, 11, 14, 15))

    def test_resize_instance_changes_series_duration(self):
        event, _ = services.resize_to(self.instance_id, datetime(2024, 1, 10, 10, 30))

        self.assertEqual(event.start, datetime(2024, 1, 3, 9, 0))
        self.assertEqual(event.end, datetime(2024, 1, 3, 10, 30))
        self.assertEqual(event.time_changes.get().source, 'resize')

    def test_calendar_view_callbacks_persist(self):
        calendar = services.build_calendar_view(ViewMode.WEEK, date(2024, 1, 10))

        calendar.create_at(datetime(2024, 1, 12, 9, 0), EventType.MEETING, title="Owner call")

        created = CalendarEvent.objects.get(title="Owner call")
        self.assertEqual(created.end, datetime(2024, 1, 12, 10, 0))

        calendar.delete(self.instance_id)

        self.assertFalse(CalendarEvent.objects.filter(pk=self.template.pk).exists())


class EventAPITests(APITestCase):
    """Test event CRUD endpoints."""

    def setUp(self):
        self.event = services.create_event(EventCreateData(
            title="Showing - Unit 1C",
            start=datetime(2024, 1, 10, 10, 0),
            end=datetime(2024, 1, 10, 10, 30),
            details={'lead_email': 'lead@example.com'},
        ))

    def test_list_events(self):
        response = self.client.get('/api/events/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertIsNone(response.data[0]['recurrence'])
        self.assertFalse(response.data[0]['is_recurring'])

    def test_list_events_filtered_by_status(self):
        response = self.client.get('/api/events/', {'status': 'cancelled'})

        self.assertEqual(response.data, [])

    def test_create_recurring_event(self):
        data = {
            'title': 'Weekly open house',
            'start': '2024-01-06T11:00:00',
            'end': '2024-01-06T13:00:00',
            'event_type': 'showing',
            'community': 'Maple Court',
            'recurrence': {
                'frequency': 'weekly',
                'days_of_week': [5],
                'occurrence_count': 8,
            },
        }

        response = self.client.post('/api/events/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_recurring'])
        self.assertEqual(response.data['community'], 'Maple Court')
        self.assertEqual(
            response.data['recurrence']['description'],
            "Repeats every week on Sat, 8 times"
        )

    def test_create_rejects_rule_without_end(self):
        data = {
            'title': 'Endless',
            'start': '2024-01-06T11:00:00',
            'end': '2024-01-06T12:00:00',
            'recurrence': {'frequency': 'daily'},
        }

        response = self.client.post('/api/events/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(CalendarEvent.objects.count(), 1)

    def test_create_rejects_end_before_start(self):
        data = {
            'title': 'Backwards',
            'start': '2024-01-06T11:00:00',
            'end': '2024-01-06T10:00:00',
        }

        response = self.client.post('/api/events/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end', response.data)

    def test_retrieve_event(self):
        response = self.client.get(f'/api/events/{self.event.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['lead_email'], 'lead@example.com')

    def test_retrieve_missing_event(self):
        response = self.client.get('/api/events/9999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_event_with_reason(self):
        data = {
            'start': '2024-01-10T15:00:00',
            'end': '2024-01-10T15:30:00',
            'reason': 'Lead stuck at work',
        }

        response = self.client.patch(f'/api/events/{self.event.pk}/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['start'], '2024-01-10T15:00:00')
        self.assertEqual(EventTimeChange.objects.get().reason, 'Lead stuck at work')

    def test_update_rejects_end_before_stored_start(self):
        response = self.client.patch(
            f'/api/events/{self.event.pk}/', {'end': '2024-01-10T09:00:00'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end', response.data)
        self.event.refresh_from_db()
        self.assertEqual(self.event.end, datetime(2024, 1, 10, 10, 30))

    def test_cancel_event(self):
        response = self.client.delete(f'/api/events/{self.event.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('cancelled', response.data['message'])

        self.event.refresh_from_db()
        self.assertEqual(self.event.status, 'cancelled')

    def test_cancel_twice_rejected(self):
        self.client.delete(f'/api/events/{self.event.pk}/')

        response = self.client.delete(f'/api/events/{self.event.pk}/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_complete_event(self):
        response = self.client.post(f'/api/events/{self.event.pk}/complete/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.event.refresh_from_db()
        self.assertEqual(self.event.status, 'completed')


class CalendarAPITests(APITestCase):
    """Test rendering and gesture endpoints."""

    def setUp(self):
        self.template = services.create_event(EventCreateData(
            title="Weekly inspection",
            start=datetime(2024, 1, 1, 9, 0),
            end=datetime(2024, 1, 1, 10, 0),
            event_type=EventType.INSPECTION,
            recurrence=Rule(
                frequency=Frequency.WEEKLY, days_of_week=frozenset({0, 2}), count=10
            ),
        ))
        self.showing = services.create_event(EventCreateData(
            title="Showing",
            start=datetime(2024, 1, 11, 14, 0),
            end=datetime(2024, 1, 11, 14, 30),
        ))

    def test_render_week(self):
        response = self.client.get('/api/calendar/', {
            'view': 'week',
            'date': '2024-01-10',
            'now': '2024-01-10T09:30:00',
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'Jan 7 - 13, 2024')
        self.assertEqual(response.data['current_time_offset'], 210)
        self.assertEqual(
            [item['event']['id'] for item in response.data['timed']],
            [
                f'{self.template.pk}_20240108T090000',
                f'{self.template.pk}_20240110T090000',
                str(self.showing.pk),
            ]
        )
        self.assertEqual(response.data['timed'][0]['event']['event_type'], 'inspection')
        self.assertEqual(response.data['timed'][0]['height'], 60)

    def test_render_month(self):
        response = self.client.get('/api/calendar/', {'view': 'month', 'date': '2024-01-10'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'January 2024')
        self.assertEqual(len(response.data['month_cells']), 35)
        self.assertEqual(response.data['timed'], [])

    def test_render_requires_date(self):
        response = self.client.get('/api/calendar/', {'view': 'week'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_conflict_check(self):
        data = {'start': '2024-01-11T14:15:00', 'end': '2024-01-11T15:00:00'}

        response = self.client.post('/api/calendar/conflicts/', data, format='json')

        self.assertTrue(response.data['has_conflicts'])
        self.assertEqual(response.data['conflicts'][0]['id'], str(self.showing.pk))

    def test_back_to_back_is_not_a_conflict(self):
        data = {'start': '2024-01-11T14:30:00', 'end': '2024-01-11T15:00:00'}

        response = self.client.post('/api/calendar/conflicts/', data, format='json')

        self.assertFalse(response.data['has_conflicts'])

    def test_move_to_slot(self):
        data = {
            'event_id': str(self.showing.pk),
            'target': {'type': 'slot', 'date': '2024-01-12', 'hour': 16, 'minute': 30},
            'reason': 'Applicant request',
        }

        response = self.client.post('/api/calendar/move/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['event']['start'], '2024-01-12T16:30:00')
        self.assertEqual(response.data['event']['end'], '2024-01-12T17:00:00')
        self.assertEqual(response.data['conflicts'], [])

    def test_move_requires_slot_time(self):
        data = {
            'event_id': str(self.showing.pk),
            'target': {'type': 'slot', 'date': '2024-01-12'},
        }

        response = self.client.post('/api/calendar/move/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_move_unknown_event(self):
        data = {'event_id': '9999', 'target': {'type': 'day', 'date': '2024-01-12'}}

        response = self.client.post('/api/calendar/move/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_resize_instance(self):
        data = {
            'event_id': f'{self.template.pk}_20240110T090000',
            'new_end': '2024-01-10T09:05:00',
        }

        response = self.client.post('/api/calendar/resize/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['event']['start'], '2024-01-01T09:00:00')
        self.assertEqual(response.data['event']['end'], '2024-01-01T09:15:00')


class ExpandRecurrencesCommandTests(TestCase):
    """Test the expand_recurrences management command."""

    def setUp(self):
        self.template = services.create_event(EventCreateData(
            title="Pool inspection",
            start=datetime(2024, 1, 1, 9, 0),
            end=datetime(2024, 1, 1, 10, 0),
            recurrence=Rule(frequency=Frequency.DAILY, count=3),
        ))

    def test_lists_occurrences_in_window(self):
        out = StringIO()

        call_command('expand_recurrences', '--start', '2024-01-02', '--end', '2024-01-10', stdout=out)

        output = out.getvalue()
        self.assertIn(f'2024-01-02 09:00 Pool inspection ({self.template.pk}_20240102T090000)', output)
        self.assertIn(f'({self.template.pk}_20240103T090000)', output)
        self.assertNotIn('20240101T090000', output)
        self.assertIn('Found 2 occurrence(s)', output)

    def test_end_before_start_rejected(self):
        with self.assertRaises(CommandError):
            call_command('expand_recurrences', '--start', '2024-01-10', '--end', '2024-01-01', stdout=StringIO())
