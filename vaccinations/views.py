"""
Vaccination Guide Views (public, read-only)
"""

from rest_framework import serializers
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny

from .schedule import CHICK_TYPES, VACCINATION_TIPS, get_schedule, get_upcoming


class ScheduleQuerySerializer(serializers.Serializer):
    chick_type = serializers.ChoiceField(choices=CHICK_TYPES, default='layer')


class UpcomingQuerySerializer(ScheduleQuerySerializer):
    chick_age = serializers.IntegerField(
        min_value=0,
        error_messages={'required': 'Please provide chick age in days.'}
    )


class PublicView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []


class VaccinationScheduleView(PublicView):
    """GET /api/vaccinations/schedule/?chick_type=broiler"""

    def get(self, request):
        query = ScheduleQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        chick_type = query.validated_data['chick_type']

        return Response({
            'chick_type': chick_type,
            'schedule': get_schedule(chick_type),
        })


class UpcomingVaccinationsView(PublicView):
    """GET /api/vaccinations/upcoming/?chick_age=10&chick_type=layer"""

    def get(self, request):
        query = UpcomingQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        age = query.validated_data['chick_age']
        chick_type = query.validated_data['chick_type']

        result = get_upcoming(age, chick_type)
        return Response({
            'current_age': age,
            'chick_type': chick_type,
            'upcoming_vaccinations': result['upcoming'],
            'recent_vaccinations': result['recent'],
        })


class VaccinationTipsView(PublicView):
    """GET /api/vaccinations/tips/"""

    def get(self, request):
        return Response({'tips': VACCINATION_TIPS})
