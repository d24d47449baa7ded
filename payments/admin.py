from django.contrib import admin

from .models import PaymentAttempt


@admin.register(PaymentAttempt)
class PaymentAttemptAdmin(admin.ModelAdmin):
    list_display = (
        'checkout_request_id', 'order', 'phone_number', 'amount', 'status',
        'result_code', 'receipt_number', 'created_at'
    )
    list_filter = ('status', 'created_at')
    search_fields = ('checkout_request_id', 'merchant_request_id', 'receipt_number', 'order__order_number')
    readonly_fields = [field.name for field in PaymentAttempt._meta.fields]
