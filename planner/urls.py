"""
URL routing for the planner API.
"""

from django.urls import path
from .views import (
    CalendarRenderView,
    ConflictCheckView,
    EventCompleteView,
    EventDetailView,
    EventListCreateView,
    EventMoveView,
    EventResizeView,
)

urlpatterns = [
    path('events/', EventListCreateView.as_view(), name='event-list-create'),
    path('events/<int:pk>/', EventDetailView.as_view(), name='event-detail'),
    path('events/<int:pk>/complete/', EventCompleteView.as_view(), name='event-complete'),
    path('calendar/', CalendarRenderView.as_view(), name='calendar-render'),
    path('calendar/conflicts/', ConflictCheckView.as_view(), name='calendar-conflicts'),
    path('calendar/move/', EventMoveView.as_view(), name='calendar-move'),
    path('calendar/resize/', EventResizeView.as_view(), name='calendar-resize'),
]
