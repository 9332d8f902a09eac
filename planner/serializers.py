"""
Serializers for the planner API.
"""

from rest_framework import serializers

from .models import CalendarEvent, RecurrenceRule
from .recurrence import describe_rule
from .services import DETAIL_FIELDS, to_engine_rule
from .types import (
    EVENT_TYPE_CONFIG,
    DayDropTarget,
    EventStatus,
    EventType,
    Frequency,
    RecurrenceRule as Rule,
    SlotDropTarget,
    ViewMode,
)


EVENT_TYPE_VALUES = [event_type.value for event_type in EVENT_TYPE_CONFIG]
STATUS_VALUES = [status.value for status in EventStatus]
FREQUENCY_VALUES = [frequency.value for frequency in Frequency]
VIEW_VALUES = [view.value for view in ViewMode]


class RecurrenceRuleReadSerializer(serializers.ModelSerializer):
    """Serializer for reading a stored RecurrenceRule (output)."""

    description = serializers.SerializerMethodField()

    class Meta:
        model = RecurrenceRule
        fields = [
            'frequency',
            'interval',
            'days_of_week',
            'end_date',
            'occurrence_count',
            'description',
        ]

    def get_description(self, obj):
        return describe_rule(to_engine_rule(obj))


class RecurrenceRuleWriteSerializer(serializers.Serializer):
    """Serializer for a recurrence rule submitted with a new event (input)."""

    frequency = serializers.ChoiceField(choices=FREQUENCY_VALUES)
    interval = serializers.IntegerField(min_value=1, default=1)
    days_of_week = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=6),
        required=False,
        default=list
    )
    end_date = serializers.DateField(required=False, allow_null=True)
    occurrence_count = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate(self, data):
        """Exactly one end condition must be given."""
        has_end_date = data.get('end_date') is not None
        has_count = data.get('occurrence_count') is not None
        if has_end_date == has_count:
            raise serializers.ValidationError(
                "Provide exactly one of end_date or occurrence_count."
            )
        return data

    @staticmethod
    def to_rule(data) -> Rule:
        return Rule(
            frequency=Frequency(data['frequency']),
            interval=data.get('interval', 1),
            days_of_week=frozenset(data.get('days_of_week') or []),
            until=data.get('end_date'),
            count=data.get('occurrence_count'),
        )


class CalendarEventReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying a stored CalendarEvent (output)."""

    recurrence = RecurrenceRuleReadSerializer(read_only=True, allow_null=True)
    is_recurring = serializers.BooleanField(read_only=True)

    class Meta:
        model = CalendarEvent
        fields = [
            'id',
            'title',
            'start',
            'end',
            'all_day',
            'event_type',
            'status',
            'color',
            'lead_name',
            'lead_email',
            'lead_phone',
            'property_address',
            'community',
            'notes',
            'recurrence',
            'is_recurring',
            'created_at',
            'updated_at',
        ]


class EventDetailsMixin(serializers.Serializer):
    color = serializers.CharField(max_length=20, required=False, allow_blank=True)
    lead_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    lead_email = serializers.EmailField(required=False, allow_blank=True)
    lead_phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    property_address = serializers.CharField(max_length=300, required=False, allow_blank=True)
    community = serializers.CharField(max_length=200, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def details(self):
        return {
            name: self.validated_data[name]
            for name in DETAIL_FIELDS
            if name in self.validated_data
        }


class CalendarEventCreateSerializer(EventDetailsMixin):
    """Serializer for creating a booking, optionally recurring."""

    title = serializers.CharField(max_length=200)
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    all_day = serializers.BooleanField(default=False)
    event_type = serializers.ChoiceField(choices=EVENT_TYPE_VALUES, default=EventType.SHOWING.value)
    status = serializers.ChoiceField(choices=STATUS_VALUES, default=EventStatus.CONFIRMED.value)
    recurrence = RecurrenceRuleWriteSerializer(required=False, allow_null=True)

    def validate(self, data):
        """End must not precede start for timed events."""
        if not data.get('all_day') and data['end'] < data['start']:
            raise serializers.ValidationError({
                'end': 'End must not be before start.'
            })
        return data


class CalendarEventUpdateSerializer(EventDetailsMixin):
    """Serializer for updating a booking."""

    title = serializers.CharField(max_length=200, required=False)
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
    all_day = serializers.BooleanField(required=False)
    event_type = serializers.ChoiceField(choices=EVENT_TYPE_VALUES, required=False)
    reason = serializers.CharField(max_length=300, required=False, allow_blank=True, default='')

    def validate(self, data):
        """End must not precede start once merged with the stored booking."""
        event = self.instance
        start = data.get('start', event.start if event else None)
        end = data.get('end', event.end if event else None)
        all_day = data.get('all_day', event.all_day if event else False)
        if start and end and not all_day and end < start:
            raise serializers.ValidationError({
                'end': 'End must not be before start.'
            })
        return data


class EngineEventSerializer(serializers.Serializer):
    """Serializer for an expanded engine event (output only)."""

    id = serializers.CharField()
    title = serializers.CharField()
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    all_day = serializers.BooleanField()
    event_type = serializers.CharField(source='event_type.value')
    status = serializers.CharField(source='status.value')
    color = serializers.CharField()
    recurrence_id = serializers.CharField(allow_null=True)
    is_recurring_instance = serializers.BooleanField()
    metadata = serializers.DictField()


class PositionedEventSerializer(serializers.Serializer):
    event = EngineEventSerializer()
    day = serializers.DateField()
    top = serializers.FloatField(source='geometry.top')
    height = serializers.FloatField(source='geometry.height')


class DayBucketSerializer(serializers.Serializer):
    date = serializers.DateField()
    events = EngineEventSerializer(source='visible', many=True)
    overflow = serializers.IntegerField()
    overflow_label = serializers.CharField(allow_null=True)


class RenderedViewSerializer(serializers.Serializer):
    """Serializer for a rendered calendar view (output only)."""

    view = serializers.CharField(source='view.value')
    current_date = serializers.DateField()
    title = serializers.CharField()
    window_start = serializers.DateTimeField()
    window_end = serializers.DateTimeField()
    days = serializers.ListField(child=serializers.DateField())
    all_day = DayBucketSerializer(many=True)
    timed = PositionedEventSerializer(many=True)
    month_cells = DayBucketSerializer(many=True)
    current_time_offset = serializers.FloatField(allow_null=True)
    scroll_offset = serializers.FloatField(allow_null=True)


class CalendarQuerySerializer(serializers.Serializer):
    """Serializer for calendar render query parameters."""

    view = serializers.ChoiceField(choices=VIEW_VALUES, default=ViewMode.MONTH.value)
    date = serializers.DateField()
    now = serializers.DateTimeField(required=False)


class DropTargetSerializer(serializers.Serializer):
    """Drop target payload: a month day cell or a week/day time slot."""

    type = serializers.ChoiceField(choices=['day', 'slot'])
    date = serializers.DateField()
    hour = serializers.IntegerField(min_value=0, max_value=23, required=False)
    minute = serializers.IntegerField(min_value=0, max_value=59, required=False)

    def validate(self, data):
        """Slot targets need an hour and a minute."""
        if data['type'] == 'slot' and ('hour' not in data or 'minute' not in data):
            raise serializers.ValidationError(
                "Slot targets require hour and minute."
            )
        return data

    @staticmethod
    def to_target(data):
        if data['type'] == 'day':
            return DayDropTarget(date=data['date'])
        return SlotDropTarget(date=data['date'], hour=data['hour'], minute=data['minute'])


class MoveSerializer(serializers.Serializer):
    event_id = serializers.CharField()
    target = DropTargetSerializer()
    reason = serializers.CharField(max_length=300, required=False, allow_blank=True, default='')


class ResizeSerializer(serializers.Serializer):
    event_id = serializers.CharField()
    new_end = serializers.DateTimeField()
    reason = serializers.CharField(max_length=300, required=False, allow_blank=True, default='')


class ConflictCheckSerializer(serializers.Serializer):
    """Serializer for an advisory conflict check."""

    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    all_day = serializers.BooleanField(default=False)
    exclude_id = serializers.CharField(required=False, allow_blank=True)

    def validate(self, data):
        """Ensure start is not after end."""
        if data['start'] > data['end']:
            raise serializers.ValidationError(
                "Start datetime must not be after end datetime."
            )
        return data
