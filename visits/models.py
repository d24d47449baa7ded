"""
Farm Visit Models

A Visit is a booking for a group of people to come to the farm on a given
day. Pending and confirmed visits count toward the daily visitor cap;
cancelled and completed ones do not. Visits are never deleted.
"""

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
import uuid


class Visit(models.Model):

    MIN_VISITORS = 1
    MAX_VISITORS = 10

    PURPOSE_CHOICES = [
        ('tour', 'Farm Tour'),
        ('purchase', 'Purchase'),
        ('consultation', 'Consultation'),
        ('inspection', 'Inspection'),
        ('other', 'Other'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    # Statuses that hold capacity on their date
    ACTIVE_STATUSES = ('pending', 'confirmed')

    VISIT_STATUS_TRANSITIONS = {
        'pending': ['confirmed', 'cancelled'],
        'confirmed': ['completed', 'cancelled'],
        'completed': [],  # Terminal state
        'cancelled': [],  # Terminal state
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='visits'
    )

    visit_date = models.DateField(db_index=True)
    visit_time = models.CharField(max_length=20, help_text="Time slot, e.g. 10:00")
    number_of_visitors = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_VISITORS), MaxValueValidator(MAX_VISITORS)]
    )
    purpose = models.CharField(max_length=20, choices=PURPOSE_CHOICES, default='tour')
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
        db_index=True
    )
    notes = models.TextField(blank=True)

    # Notification bookkeeping
    confirmation_sent = models.BooleanField(default=False)
    reminder_sent = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'visits'
        ordering = ['-visit_date', 'visit_time']
        indexes = [
            models.Index(fields=['visit_date', 'status'], name='visits_visit_d_7b2c9e_idx'),
            models.Index(fields=['user', '-visit_date'], name='visits_user_id_4d8a1f_idx'),
        ]

    def __str__(self):
        return f"{self.user} - {self.visit_date} {self.visit_time} ({self.number_of_visitors})"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES
