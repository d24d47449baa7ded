"""
Order Models

Order Flow:
1. pending / pending      - Placed at checkout, awaiting M-Pesa payment
2. completed / processing - Payment callback received, being prepared
3. completed / shipped    - Dispatched to the customer
4. completed / delivered  - Customer received the birds
Orders can be cancelled before shipping; customers can only cancel unpaid orders.

Payment status and fulfillment status are tracked separately. Payment status
is owned by payments.services.coordinator; fulfillment status is moved by
operators.
"""

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.crypto import get_random_string
import uuid


class Order(models.Model):

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    ORDER_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    # Operator-driven fulfillment transitions
    ORDER_STATUS_TRANSITIONS = {
        'pending': ['processing', 'cancelled'],
        'processing': ['shipped', 'cancelled'],
        'shipped': ['delivered'],
        'delivered': [],  # Terminal state
        'cancelled': [],  # Terminal state
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=20, unique=True, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='orders'
    )

    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    payment_status = models.CharField(
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default='pending',
        db_index=True
    )
    order_status = models.CharField(
        max_length=20,
        choices=ORDER_STATUS_CHOICES,
        default='pending',
        db_index=True
    )

    # Delivery address
    delivery_street = models.CharField(max_length=255, blank=True)
    delivery_city = models.CharField(max_length=100, blank=True)
    delivery_county = models.CharField(max_length=100, blank=True)
    delivery_postal_code = models.CharField(max_length=20, blank=True)

    # M-Pesa phone, normalized to 254XXXXXXXXX once a payment is initiated
    phone_number = models.CharField(max_length=20, blank=True, db_index=True)

    # M-Pesa references, set when the payment callback succeeds
    mpesa_receipt_number = models.CharField(max_length=50, blank=True)
    mpesa_transaction_id = models.CharField(
        max_length=100,
        blank=True,
        help_text='CheckoutRequestID of the push that paid this order'
    )
    paid_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='orders_user_id_1a7c3e_idx'),
            models.Index(fields=['phone_number', 'payment_status'], name='orders_phone_n_9d2b4f_idx'),
        ]

    def __str__(self):
        return f"Order {self.order_number}"

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = self._generate_order_number()
        super().save(*args, **kwargs)

    def _generate_order_number(self):
        """Generate unique order number: GM-YYYYMMDD-XXXXX"""
        date_part = timezone.now().strftime('%Y%m%d')
        random_part = get_random_string(5, allowed_chars='0123456789ABCDEFGHJKLMNPQRSTUVWXYZ')
        return f"GM-{date_part}-{random_part}"

    @property
    def is_paid(self):
        return self.payment_status == 'completed'

    @property
    def delivery_address(self):
        return {
            'street': self.delivery_street,
            'city': self.delivery_city,
            'county': self.delivery_county,
            'postal_code': self.delivery_postal_code,
        }

    def calculate_totals(self):
        """Recalculate order total from items."""
        self.total_amount = sum(item.line_total for item in self.items.all())
        self.save(update_fields=['total_amount', 'updated_at'])

    def add_status_history(self, status, note=''):
        return OrderStatusHistory.objects.create(order=self, status=status, note=note)

    def cancel(self, note=''):
        """Cancel the order. Stock is untouched since it only moves on payment."""
        self.order_status = 'cancelled'
        self.cancelled_at = timezone.now()
        self.save(update_fields=['order_status', 'cancelled_at', 'updated_at'])
        self.add_status_history('cancelled', note)


class OrderItem(models.Model):
    """Line items for orders."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items'
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='order_items'
    )

    # Snapshot of product at time of order
    product_name = models.CharField(max_length=200)
    category = models.CharField(max_length=20)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_items'

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    def save(self, *args, **kwargs):
        # Snapshot product details if not set
        if not self.product_name:
            self.product_name = self.product.name
            self.category = self.product.category
            self.price = self.product.price

        self.line_total = self.price * self.quantity
        super().save(*args, **kwargs)


class OrderStatusHistory(models.Model):
    """Append-only log of fulfillment status changes."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='status_history'
    )
    status = models.CharField(max_length=20, choices=Order.ORDER_STATUS_CHOICES)
    note = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_status_history'
        ordering = ['created_at']
        verbose_name_plural = 'Order status history'

    def __str__(self):
        return f"{self.order.order_number}: {self.status}"
