from django.contrib import admin

from .models import Order, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('product', 'product_name', 'category', 'price', 'quantity', 'line_total')
    can_delete = False


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    readonly_fields = ('status', 'note', 'created_at')
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        'order_number', 'user', 'total_amount', 'payment_status', 'order_status',
        'mpesa_receipt_number', 'created_at'
    )
    list_filter = ('payment_status', 'order_status', 'created_at')
    search_fields = ('order_number', 'phone_number', 'mpesa_receipt_number', 'user__username')
    readonly_fields = (
        'order_number', 'total_amount', 'payment_status', 'mpesa_receipt_number',
        'mpesa_transaction_id', 'paid_at', 'created_at', 'updated_at'
    )
    inlines = [OrderItemInline, OrderStatusHistoryInline]
