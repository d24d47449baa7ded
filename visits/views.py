"""
Farm Visit Views

Customers check a day's availability, book and cancel visits.
Operators list bookings and confirm, complete or cancel them.
"""

import logging

from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated

from accounts.permissions import IsShopAdmin
from .models import Visit
from .serializers import (
    AvailabilitySerializer,
    VisitSerializer,
    VisitCreateSerializer,
    VisitStatusUpdateSerializer,
)
from .services import VisitAdmissionService

logger = logging.getLogger(__name__)


class VisitAvailabilityView(APIView):
    """
    GET /api/visits/availability/<date>/

    Response:
    {
        "date": "2025-06-01",
        "available": true,
        "spots_left": 5,
        "total_visitors": 15,
        "max_visitors_per_day": 20
    }
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, date):
        service = VisitAdmissionService()
        day = service.to_date(date)
        availability = service.check_availability(day)

        return Response(AvailabilitySerializer({
            'date': day,
            'max_visitors_per_day': service.max_visitors_per_day,
            **availability,
        }).data)


class VisitListCreateView(generics.ListCreateAPIView):
    """
    GET  /api/visits/   - the signed-in customer's visits
    POST /api/visits/   - book a visit
    {
        "visit_date": "2025-06-01",
        "visit_time": "10:00",
        "number_of_visitors": 4,
        "purpose": "tour",
        "notes": ""
    }
    """
    permission_classes = [IsAuthenticated]
    serializer_class = VisitSerializer

    def get_queryset(self):
        return Visit.objects.filter(user=self.request.user).order_by('-visit_date')

    def create(self, request, *args, **kwargs):
        serializer = VisitCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        visit = VisitAdmissionService().schedule_visit(request.user, **serializer.validated_data)

        return Response({
            'message': 'Visit scheduled successfully',
            'visit': VisitSerializer(visit).data,
        }, status=status.HTTP_201_CREATED)


class CancelVisitView(APIView):
    """PUT /api/visits/<id>/cancel/"""
    permission_classes = [IsAuthenticated]

    def put(self, request, pk):
        visit = VisitAdmissionService().cancel_visit(pk, request.user)
        return Response({
            'message': 'Visit cancelled successfully',
            'visit': VisitSerializer(visit).data,
        })


# =============================================================================
# OPERATOR VISIT VIEWS
# =============================================================================

class AdminVisitListView(generics.ListAPIView):
    """
    GET /api/admin/visits/
    GET /api/admin/visits/?status=pending&date=2025-06-01
    """
    permission_classes = [IsShopAdmin]
    serializer_class = VisitSerializer

    def get_queryset(self):
        queryset = Visit.objects.select_related('user')

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        date_filter = self.request.query_params.get('date')
        if date_filter:
            queryset = queryset.filter(visit_date=VisitAdmissionService.to_date(date_filter))

        return queryset.order_by('visit_date', 'visit_time')


class AdminVisitStatusUpdateView(APIView):
    """
    PUT /api/admin/visits/<id>/status/
    {
        "status": "confirmed"
    }
    """
    permission_classes = [IsShopAdmin]

    def put(self, request, pk):
        serializer = VisitStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        visit = VisitAdmissionService().update_status(pk, serializer.validated_data['status'])

        logger.info(f"Visit {visit.id} set to {visit.status} by {request.user.username}")
        return Response(VisitSerializer(visit).data)
