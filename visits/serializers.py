from django.utils import timezone
from rest_framework import serializers

from .models import Visit


class VisitSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.get_full_name', read_only=True)
    purpose_display = serializers.CharField(source='get_purpose_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Visit
        fields = [
            'id', 'user', 'user_name', 'visit_date', 'visit_time', 'number_of_visitors',
            'purpose', 'purpose_display', 'status', 'status_display', 'notes',
            'confirmation_sent', 'reminder_sent', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class VisitCreateSerializer(serializers.Serializer):
    visit_date = serializers.DateField()
    visit_time = serializers.CharField(max_length=20)
    number_of_visitors = serializers.IntegerField(
        min_value=Visit.MIN_VISITORS,
        max_value=Visit.MAX_VISITORS
    )
    purpose = serializers.ChoiceField(choices=Visit.PURPOSE_CHOICES, default='tour')
    notes = serializers.CharField(allow_blank=True, default='')

    def validate_visit_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Visit date cannot be in the past.")
        return value


class VisitStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Visit.STATUS_CHOICES)


class AvailabilitySerializer(serializers.Serializer):
    date = serializers.DateField()
    available = serializers.BooleanField()
    spots_left = serializers.IntegerField()
    total_visitors = serializers.IntegerField()
    max_visitors_per_day = serializers.IntegerField()
