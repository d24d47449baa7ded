"""
Order Views

Customer checkout, order history and cancellation, plus operator
fulfillment updates. Payment is handled by the payments app.
"""

import logging

from django.db import transaction
from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsShopAdmin
from core.exceptions import ConflictError, ForbiddenError, NotFoundError
from core.locking import validate_status_transition
from .models import Order
from .serializers import (
    OrderSerializer,
    OrderCreateSerializer,
    OrderStatusUpdateSerializer,
)

logger = logging.getLogger(__name__)


def get_order_for_user(order_id, user, lock=False):
    """Fetch an order the user may act on. Admins may act on any order."""
    queryset = Order.objects.all()
    if lock:
        queryset = queryset.select_for_update()

    try:
        order = queryset.get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFoundError('Order not found.')

    if order.user_id != user.id and not user.is_shop_admin:
        raise ForbiddenError('You do not have access to this order.')

    return order


# =============================================================================
# CUSTOMER ORDER VIEWS
# =============================================================================

class OrderListCreateView(generics.ListCreateAPIView):
    """
    GET  /api/orders/   - the signed-in customer's orders
    POST /api/orders/   - checkout
    {
        "items": [{"product_id": "uuid", "quantity": 50}],
        "delivery_address": {"street": "...", "city": "Nakuru", "county": "Nakuru", "postal_code": "20100"},
        "phone_number": "0712345678"
    }
    """
    permission_classes = [IsAuthenticated]

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return OrderCreateSerializer
        return OrderSerializer

    def get_queryset(self):
        return Order.objects.filter(
            user=self.request.user
        ).prefetch_related('items', 'status_history').order_by('-created_at')

    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        order = serializer.save()

        logger.info(f"Order {order.order_number} placed by {request.user.username}", extra={
            'order_id': str(order.id),
            'total_amount': str(order.total_amount),
        })

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    """GET /api/orders/<id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        order = get_order_for_user(pk, request.user)
        return Response(OrderSerializer(order).data)


class CancelOrderView(APIView):
    """
    POST /api/orders/<id>/cancel/

    Only unpaid orders that have not started processing can be cancelled.
    """
    permission_classes = [IsAuthenticated]

    @transaction.atomic
    def post(self, request, pk):
        order = get_order_for_user(pk, request.user, lock=True)

        if order.payment_status != 'pending' or order.order_status != 'pending':
            raise ConflictError(
                'Cannot cancel this order. Payment may have been received already.',
                code='ORDER_NOT_CANCELLABLE'
            )

        order.cancel('Cancelled by customer')
        logger.info(f"Order {order.order_number} cancelled by customer")

        return Response({
            'message': 'Order cancelled successfully.',
            'order': OrderSerializer(order).data
        })


# =============================================================================
# OPERATOR ORDER VIEWS
# =============================================================================

class AdminOrderListView(generics.ListAPIView):
    """
    GET /api/admin/orders/
    GET /api/admin/orders/?status=processing&payment_status=completed
    """
    permission_classes = [IsShopAdmin]
    serializer_class = OrderSerializer

    def get_queryset(self):
        queryset = Order.objects.select_related('user').prefetch_related('items', 'status_history')

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(order_status=status_filter)

        payment_filter = self.request.query_params.get('payment_status')
        if payment_filter:
            queryset = queryset.filter(payment_status=payment_filter)

        return queryset.order_by('-created_at')


class AdminOrderStatusUpdateView(APIView):
    """
    PUT /api/admin/orders/<id>/status/
    {
        "status": "shipped",
        "note": "Collected by courier"   // optional
    }
    """
    permission_classes = [IsShopAdmin]

    @transaction.atomic
    def put(self, request, pk):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status']

        order = get_order_for_user(pk, request.user, lock=True)

        validate_status_transition(
            order.order_status, new_status, Order.ORDER_STATUS_TRANSITIONS, 'order'
        )

        if new_status != order.order_status:
            note = serializer.validated_data.get('note') or f"Status updated to {new_status} by admin"
            if new_status == 'cancelled':
                order.cancel(note)
            else:
                order.order_status = new_status
                order.save(update_fields=['order_status', 'updated_at'])
                order.add_status_history(new_status, note)

            logger.info(f"Order {order.order_number} moved to {new_status} by {request.user.username}")

        return Response(OrderSerializer(order).data)
