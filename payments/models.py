"""
Payment Models

A PaymentAttempt is one STK push sent to a customer's phone. It is created
when Daraja accepts the push and resolved when the callback for its
CheckoutRequestID arrives.
"""

from django.db import models
from django.utils import timezone
import uuid


class PaymentAttempt(models.Model):

    STATUS_CHOICES = [
        ('pending', 'Awaiting Callback'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.CASCADE,
        related_name='payment_attempts'
    )

    # Daraja correlation identifiers
    checkout_request_id = models.CharField(max_length=100, unique=True)
    merchant_request_id = models.CharField(max_length=100, blank=True)

    phone_number = models.CharField(max_length=20)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
        db_index=True
    )

    # Filled from the callback
    result_code = models.IntegerField(null=True, blank=True)
    result_desc = models.CharField(max_length=255, blank=True)
    receipt_number = models.CharField(max_length=50, blank=True)
    callback_payload = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'payment_attempts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['order', '-created_at'], name='payment_att_order_i_3e8f1b_idx'),
        ]

    def __str__(self):
        return f"{self.checkout_request_id} ({self.status})"

    def mark_as_completed(self, receipt_number='', payload=None):
        self.status = 'completed'
        self.result_code = 0
        self.receipt_number = receipt_number or ''
        self.callback_payload = payload
        self.resolved_at = timezone.now()
        self.save()

    def mark_as_failed(self, result_code, result_desc='', payload=None):
        self.status = 'failed'
        self.result_code = result_code
        self.result_desc = (result_desc or '')[:255]
        self.callback_payload = payload
        self.resolved_at = timezone.now()
        self.save()
