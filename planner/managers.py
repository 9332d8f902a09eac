"""
Custom managers and querysets for planner models.

QuerySets define chainable query methods.
Managers use QuerySets to enable method chaining.
No business logic should be here - only query operations.
"""

from django.db import models


class CalendarEventQuerySet(models.QuerySet):
    """Custom queryset for CalendarEvent model with chainable methods."""

    def active(self):
        """Get all events that are not cancelled."""
        return self.exclude(status='cancelled')

    def with_status(self, status):
        return self.filter(status=status)

    def one_time(self):
        """Get one-time (non-recurring) events."""
        return self.filter(recurrence__isnull=True)

    def templates(self):
        """Get recurring templates."""
        return self.filter(recurrence__isnull=False)

    def in_window(self, start, end):
        """
        Get events that may produce an instance within a window.

        One-time events must intersect the window; recurring templates only
        need to start before its end, expansion decides the rest.

        Args:
            start: datetime object
            end: datetime object
        """
        one_time = models.Q(recurrence__isnull=True, start__lte=end, end__gte=start)
        recurring = models.Q(recurrence__isnull=False, start__lte=end)
        return self.filter(one_time | recurring).select_related('recurrence')


class CalendarEventManager(models.Manager):
    """Custom manager for CalendarEvent model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return CalendarEventQuerySet(self.model, using=self._db)

    def active(self):
        return self.get_queryset().active()

    def with_status(self, status):
        return self.get_queryset().with_status(status)

    def one_time(self):
        return self.get_queryset().one_time()

    def templates(self):
        return self.get_queryset().templates()

    def in_window(self, start, end):
        """
        Get events that may produce an instance within a window.

        Args:
            start: datetime object
            end: datetime object
        """
        return self.get_queryset().in_window(start, end)
