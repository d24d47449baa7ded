from rest_framework import serializers

from .models import PaymentAttempt


class InitiatePaymentSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    phone_number = serializers.CharField(max_length=20)

    def validate_phone_number(self, value):
        digits = ''.join(value.split()).lstrip('+')
        if not digits.isdigit() or not 9 <= len(digits) <= 12:
            raise serializers.ValidationError("Enter a valid Safaricom number, e.g. 0712345678.")
        return value


class QueryPaymentSerializer(serializers.Serializer):
    checkout_request_id = serializers.CharField(max_length=100)


class PaymentAttemptSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='order.order_number', read_only=True)

    class Meta:
        model = PaymentAttempt
        fields = [
            'id', 'order_number', 'checkout_request_id', 'merchant_request_id',
            'phone_number', 'amount', 'status', 'result_code', 'result_desc',
            'receipt_number', 'created_at', 'resolved_at',
        ]
        read_only_fields = fields
