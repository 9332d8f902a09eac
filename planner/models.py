"""
Models for the planner calendar.

This implementation stores bookings as templates, not materialized occurrences:
- CalendarEvent stores every booking (one-time bookings and recurring templates)
- RecurrenceRule holds the repeat rule of a recurring template
- EventTimeChange records each reschedule or resize with an optional reason
Occurrences of a recurring template are expanded on read by the engine.
"""

from django.db import models
from django.core.exceptions import ValidationError

from .managers import CalendarEventManager
from .types import EVENT_TYPE_CONFIG, EventStatus, EventType, Frequency


class CalendarEvent(models.Model):
    """
    A booking (showing, move-in, inspection, ...).

    One-time bookings: no recurrence rule
    Recurring bookings: own a RecurrenceRule; this row is occurrence #1
    """

    EVENT_TYPE_CHOICES = [
        (event_type.value, info.label) for event_type, info in EVENT_TYPE_CONFIG.items()
    ]

    STATUS_CHOICES = [
        (EventStatus.CONFIRMED.value, 'Confirmed'),
        (EventStatus.PENDING.value, 'Pending'),
        (EventStatus.COMPLETED.value, 'Completed'),
        (EventStatus.CANCELLED.value, 'Cancelled'),
    ]

    title = models.CharField(max_length=200)

    start = models.DateTimeField()
    end = models.DateTimeField()
    all_day = models.BooleanField(default=False)

    event_type = models.CharField(
        max_length=20,
        choices=EVENT_TYPE_CHOICES,
        default=EventType.SHOWING.value
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=EventStatus.CONFIRMED.value
    )
    color = models.CharField(max_length=20, blank=True, default='')

    lead_name = models.CharField(max_length=200, blank=True, default='')
    lead_email = models.EmailField(blank=True, default='')
    lead_phone = models.CharField(max_length=50, blank=True, default='')
    property_address = models.CharField(max_length=300, blank=True, default='')
    community = models.CharField(max_length=200, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CalendarEventManager()

    class Meta:
        ordering = ['start']
        indexes = [
            models.Index(fields=['start', 'status'], name='planner_event_start_status_idx'),
            models.Index(fields=['status'], name='planner_event_status_idx'),
        ]

    def __str__(self):
        status_str = f" [{self.status}]" if self.status != EventStatus.CONFIRMED.value else ""
        return f"{self.title} - {self.start.strftime('%Y-%m-%d %H:%M')}{status_str}"

    @property
    def is_recurring(self):
        """Check if this booking is a recurring template."""
        return hasattr(self, 'recurrence')

    def clean(self):
        """Validate event data."""
        super().clean()

        if self.start and self.end and not self.all_day and self.end < self.start:
            raise ValidationError({
                'end': 'End must not be before start.'
            })

    def save(self, *args, **kwargs):
        """Save with validation."""
        self.full_clean()
        super().save(*args, **kwargs)


class RecurrenceRule(models.Model):
    """
    Repeat rule of a recurring booking.

    Exactly one end condition applies: an inclusive end date or a total
    occurrence count (which includes the template's own slot).
    """

    FREQUENCY_CHOICES = [
        (Frequency.DAILY.value, 'Daily'),
        (Frequency.WEEKLY.value, 'Weekly'),
        (Frequency.MONTHLY.value, 'Monthly'),
        (Frequency.YEARLY.value, 'Yearly'),
    ]

    event = models.OneToOneField(
        CalendarEvent,
        on_delete=models.CASCADE,
        related_name='recurrence'
    )
    frequency = models.CharField(
        max_length=20,
        choices=FREQUENCY_CHOICES,
        default=Frequency.WEEKLY.value
    )
    interval = models.PositiveIntegerField(default=1)
    days_of_week = models.JSONField(
        default=list,
        blank=True,
        help_text="Weekday indices for weekly rules (0=Monday, 6=Sunday)"
    )
    end_date = models.DateField(
        null=True,
        blank=True,
        help_text="Last date an occurrence may start on"
    )
    occurrence_count = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Total number of occurrences, including the first"
    )

    def __str__(self):
        return f"{self.get_frequency_display()} rule for {self.event.title}"

    def clean(self):
        """Validate rule data."""
        super().clean()

        if self.interval is not None and self.interval < 1:
            raise ValidationError({'interval': 'Interval must be at least 1.'})

        if (self.end_date is None) == (self.occurrence_count is None):
            raise ValidationError(
                'Provide exactly one of end date or occurrence count.'
            )

        if self.occurrence_count is not None and self.occurrence_count < 1:
            raise ValidationError({'occurrence_count': 'Count must be at least 1.'})

        if not isinstance(self.days_of_week, list) or any(
            not isinstance(day, int) or not 0 <= day <= 6 for day in self.days_of_week
        ):
            raise ValidationError({
                'days_of_week': 'Days must be integers between 0 (Monday) and 6 (Sunday).'
            })

    def save(self, *args, **kwargs):
        """Save with validation."""
        self.full_clean()
        super().save(*args, **kwargs)


class EventTimeChange(models.Model):
    """History of time changes made by moving or resizing a booking."""

    SOURCE_CHOICES = [
        ('move', 'Move'),
        ('resize', 'Resize'),
        ('edit', 'Edit'),
    ]

    event = models.ForeignKey(
        CalendarEvent,
        on_delete=models.CASCADE,
        related_name='time_changes'
    )
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES)
    previous_start = models.DateTimeField()
    previous_end = models.DateTimeField()
    new_start = models.DateTimeField()
    new_end = models.DateTimeField()
    reason = models.CharField(max_length=300, blank=True, default='')
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-changed_at', '-id']

    def __str__(self):
        return f"{self.event.title}: {self.previous_start} -> {self.new_start}"
