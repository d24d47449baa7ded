"""
Product catalog for day-old chicks, point-of-lay layers and broilers.
"""

from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import models
import uuid


class Product(models.Model):
    """
    A batch of birds offered for sale.

    ``quantity`` is the stock still available and ``sold`` the running total
    sold. Both move only when a payment is finalized.
    """

    CATEGORY_CHOICES = [
        ('chick', 'Day-old Chick'),
        ('layer', 'Layer'),
        ('broiler', 'Broiler'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, db_index=True)
    breed = models.CharField(max_length=100, blank=True)

    # Age as shown to customers ("1 day", "18 weeks") and in days for sorting
    age = models.CharField(max_length=50)
    age_in_days = models.PositiveIntegerField(default=0)

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text='Price per bird (KES)'
    )
    quantity = models.IntegerField(
        default=0,
        help_text='Birds available in stock'
    )
    sold = models.PositiveIntegerField(default=0)

    weight = models.CharField(max_length=50, blank=True)
    features = models.JSONField(default=list, blank=True)
    images = models.JSONField(
        default=list,
        blank=True,
        help_text='List of {"url": ..., "alt": ...}'
    )

    is_available = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category', 'is_available'], name='products_categor_5f1d2a_idx'),
            models.Index(fields=['quantity'], name='products_quantit_8b3e4c_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_category_display()})"

    @property
    def in_stock(self):
        return self.is_available and self.quantity > 0
