"""
Payment notification tasks.
"""
from celery import shared_task
import logging

from core.sms_service import get_sms_service

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def send_payment_confirmation(self, order_id):
    """
    SMS the customer their M-Pesa receipt after a successful callback.

    Args:
        order_id: UUID of the paid Order
    """
    from orders.models import Order

    try:
        order = Order.objects.select_related('user').get(id=order_id)
    except Order.DoesNotExist:
        return f"Order {order_id} not found"

    phone = order.phone_number or (str(order.user.phone) if order.user.phone else '')
    if not phone:
        logger.info(f"No phone number for order {order.order_number}, skipping payment SMS")
        return f"No phone number for order {order.order_number}"

    message = (
        f"Payment of KES {order.total_amount:,.0f} received for order {order.order_number}. "
        f"M-Pesa receipt: {order.mpesa_receipt_number}. We are now preparing your order. Thank you!"
    )

    result = get_sms_service().send_sms(phone, message, reference=order.order_number)
    if not result.get('success'):
        raise self.retry(exc=Exception(result.get('error', 'SMS failed')), countdown=60)

    return f"Payment confirmation sent for {order.order_number}"
