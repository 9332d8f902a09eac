"""
Admin configuration for the planner app.
"""

from django.contrib import admin
from .models import CalendarEvent, EventTimeChange, RecurrenceRule


class RecurrenceRuleInline(admin.StackedInline):
    model = RecurrenceRule
    extra = 0
    max_num = 1


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    """Admin interface for CalendarEvent model."""

    list_display = ['title', 'event_type', 'start', 'end', 'all_day', 'status', 'is_recurring']
    list_filter = ['event_type', 'status', 'all_day', 'created_at']
    search_fields = ['title', 'lead_name', 'lead_email', 'property_address', 'community']
    date_hierarchy = 'start'
    inlines = [RecurrenceRuleInline]

    fieldsets = (
        ('Booking', {
            'fields': ('title', 'event_type', 'status', 'color')
        }),
        ('Schedule', {
            'fields': ('start', 'end', 'all_day')
        }),
        ('Lead & Property', {
            'fields': ('lead_name', 'lead_email', 'lead_phone', 'property_address', 'community', 'notes')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ['created_at', 'updated_at']

    @admin.display(boolean=True, description='Recurring')
    def is_recurring(self, obj):
        return obj.is_recurring


@admin.register(EventTimeChange)
class EventTimeChangeAdmin(admin.ModelAdmin):
    """Admin interface for EventTimeChange model."""

    list_display = ['event', 'source', 'previous_start', 'new_start', 'changed_at']
    list_filter = ['source', 'changed_at']
    search_fields = ['event__title', 'reason']
    readonly_fields = ['changed_at']
