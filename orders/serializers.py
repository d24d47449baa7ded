from django.db import transaction
from rest_framework import serializers

from catalog.models import Product
from core.mpesa_service import MpesaService
from .models import Order, OrderItem, OrderStatusHistory


class OrderItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source='product.id', read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product_id', 'product_name', 'category', 'price', 'quantity', 'line_total']
        read_only_fields = fields


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = ['status', 'note', 'created_at']
        read_only_fields = fields


class DeliveryAddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255, allow_blank=True, default='')
    city = serializers.CharField(max_length=100, allow_blank=True, default='')
    county = serializers.CharField(max_length=100, allow_blank=True, default='')
    postal_code = serializers.CharField(max_length=20, allow_blank=True, default='')


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = OrderStatusHistorySerializer(many=True, read_only=True)
    delivery_address = DeliveryAddressSerializer(read_only=True)
    customer = serializers.CharField(source='user.get_full_name', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer', 'items', 'total_amount',
            'payment_status', 'order_status', 'status_history',
            'delivery_address', 'phone_number',
            'mpesa_receipt_number', 'mpesa_transaction_id', 'paid_at',
            'created_at', 'updated_at', 'cancelled_at',
        ]
        read_only_fields = fields


class OrderItemCreateSerializer(serializers.Serializer):
    """Serializer for creating order items."""
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)

    def validate_product_id(self, value):
        try:
            return Product.objects.get(id=value, is_available=True)
        except Product.DoesNotExist:
            raise serializers.ValidationError("Product not found or unavailable.")

    def validate(self, data):
        product = data['product_id']
        if product.quantity < data['quantity']:
            raise serializers.ValidationError({
                'quantity': f"Only {product.quantity} available in stock."
            })
        return data


class OrderCreateSerializer(serializers.Serializer):
    """
    Checkout.

    Prices and categories are snapshotted onto the order items. Stock is
    checked here but only decremented when the payment callback succeeds.
    """
    items = OrderItemCreateSerializer(many=True)
    delivery_address = DeliveryAddressSerializer(required=False)
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate_items(self, items):
        if not items:
            raise serializers.ValidationError("At least one item is required.")

        product_ids = [item['product_id'].id for item in items]
        if len(product_ids) != len(set(product_ids)):
            raise serializers.ValidationError("Each product may only appear once per order.")

        return items

    def validate_phone_number(self, value):
        if not value:
            return ''
        phone = MpesaService.format_phone_number(value)
        if not phone.isdigit() or len(phone) != 12:
            raise serializers.ValidationError("Enter a valid Safaricom number, e.g. 0712345678.")
        return phone

    @transaction.atomic
    def create(self, validated_data):
        user = self.context['request'].user
        items_data = validated_data['items']
        address = validated_data.get('delivery_address') or {}

        phone = validated_data.get('phone_number')
        if not phone and user.phone:
            phone = MpesaService.format_phone_number(str(user.phone))

        order = Order.objects.create(
            user=user,
            delivery_street=address.get('street', ''),
            delivery_city=address.get('city', ''),
            delivery_county=address.get('county', ''),
            delivery_postal_code=address.get('postal_code', ''),
            phone_number=phone or '',
        )

        for item_data in items_data:
            OrderItem.objects.create(
                order=order,
                product=item_data['product_id'],
                quantity=item_data['quantity'],
            )

        order.calculate_totals()
        order.add_status_history('pending', 'Order placed')

        return order


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.ORDER_STATUS_CHOICES)
    note = serializers.CharField(max_length=255, required=False, allow_blank=True)
