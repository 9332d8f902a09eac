"""Views for the planner API."""

from datetime import datetime

from django.shortcuts import get_object_or_404

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import CalendarEvent
from .serializers import (
    CalendarEventReadSerializer,
    CalendarEventCreateSerializer,
    CalendarEventUpdateSerializer,
    CalendarQuerySerializer,
    ConflictCheckSerializer,
    DropTargetSerializer,
    EngineEventSerializer,
    MoveSerializer,
    RecurrenceRuleWriteSerializer,
    RenderedViewSerializer,
    ResizeSerializer,
)
from . import services
from .types import EventCreateData, EventStatus, EventType, EventUpdateData, TimeInterval, ViewMode


class EventListCreateView(APIView):
    """
    List stored bookings or create a new one.

    GET /api/events/?status=X - List bookings
    POST /api/events/ - Create a booking (optionally recurring)
    """

    def get(self, request):
        """List stored bookings."""
        events = CalendarEvent.objects.select_related('recurrence')
        status_filter = request.query_params.get('status')
        if status_filter:
            events = events.filter(status=status_filter)
        serializer = CalendarEventReadSerializer(events, many=True)
        return Response(serializer.data)

    def post(self, request):
        """Create a booking."""
        serializer = CalendarEventCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        recurrence = data.get('recurrence')
        event = services.create_event(EventCreateData(
            title=data['title'],
            start=data['start'],
            end=data['end'],
            all_day=data.get('all_day', False),
            event_type=EventType(data.get('event_type', EventType.SHOWING.value)),
            status=EventStatus(data.get('status', EventStatus.CONFIRMED.value)),
            recurrence=RecurrenceRuleWriteSerializer.to_rule(recurrence) if recurrence else None,
            details=serializer.details(),
        ))

        response_serializer = CalendarEventReadSerializer(event)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


class EventDetailView(APIView):
    """
    Retrieve, update, or cancel a booking.

    GET /api/events/{id}/ - Retrieve booking
    PATCH /api/events/{id}/ - Update booking
    DELETE /api/events/{id}/ - Cancel booking
    """

    def get(self, request, pk):
        """Retrieve a booking."""
        event = get_object_or_404(CalendarEvent, pk=pk)
        serializer = CalendarEventReadSerializer(event)
        return Response(serializer.data)

    def patch(self, request, pk):
        """Update a booking."""
        event = get_object_or_404(CalendarEvent, pk=pk)
        serializer = CalendarEventUpdateSerializer(event, data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        update_data = EventUpdateData(
            title=data.get('title'),
            start=data.get('start'),
            end=data.get('end'),
            all_day=data.get('all_day'),
            event_type=data.get('event_type'),
            details=serializer.details(),
            reason=data.get('reason', ''),
        )
        updated_event = services.update_event(event, update_data)

        response_serializer = CalendarEventReadSerializer(updated_event)
        return Response(response_serializer.data)

    def delete(self, request, pk):
        """Cancel a booking."""
        event = get_object_or_404(CalendarEvent, pk=pk)

        try:
            services.cancel_event(event)
        except ValueError as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'message': f'Event "{event.title}" on {event.start.date()} has been cancelled.'
        }, status=status.HTTP_200_OK)


class EventCompleteView(APIView):
    """
    Mark a booking as completed.

    POST /api/events/{id}/complete/
    """

    def post(self, request, pk):
        """Mark booking as completed."""
        event = get_object_or_404(CalendarEvent, pk=pk)

        try:
            services.complete_event(event)
        except ValueError as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'message': f'Event "{event.title}" has been marked as completed.'
        }, status=status.HTTP_200_OK)


class CalendarRenderView(APIView):
    """
    Render a month, week or day view with recurring bookings expanded.

    GET /api/calendar/?view=week&date=2024-01-03&now=2024-01-03T09:30:00
    """

    def get(self, request):
        query_serializer = CalendarQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        data = query_serializer.validated_data
        now = data.get('now') or datetime.now()
        rendered = services.render_calendar(ViewMode(data['view']), data['date'], now)
        return Response(RenderedViewSerializer(rendered).data)


class ConflictCheckView(APIView):
    """
    Advisory conflict check for a proposed interval.

    POST /api/calendar/conflicts/
    """

    def post(self, request):
        serializer = ConflictCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        conflicts = services.check_conflicts(
            TimeInterval(start=data['start'], end=data['end'], all_day=data['all_day']),
            exclude_id=data.get('exclude_id') or None,
        )
        return Response({
            'has_conflicts': bool(conflicts),
            'conflicts': EngineEventSerializer(conflicts, many=True).data,
        })


class EventMoveView(APIView):
    """
    Drop a booking (or one occurrence) on a day cell or time slot.

    POST /api/calendar/move/
    """

    def post(self, request):
        serializer = MoveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        try:
            event, conflicts = services.move_event(
                data['event_id'],
                DropTargetSerializer.to_target(data['target']),
                reason=data.get('reason', ''),
            )
        except CalendarEvent.DoesNotExist as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response({
            'event': CalendarEventReadSerializer(event).data,
            'conflicts': EngineEventSerializer(conflicts, many=True).data,
        })


class EventResizeView(APIView):
    """
    Change the end of a booking (or one occurrence's series).

    POST /api/calendar/resize/
    """

    def post(self, request):
        serializer = ResizeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        try:
            event, conflicts = services.resize_to(
                data['event_id'],
                data['new_end'],
                reason=data.get('reason', ''),
            )
        except CalendarEvent.DoesNotExist as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response({
            'event': CalendarEventReadSerializer(event).data,
            'conflicts': EngineEventSerializer(conflicts, many=True).data,
        })
