"""
Payment Coordinator

Drives the M-Pesa STK Push protocol for shop orders:

1. initiate_payment  - validate the order, send the push, remember the
                       CheckoutRequestID on a PaymentAttempt
2. handle_callback   - Daraja posts the result; a successful result
                       finalizes the order exactly once
3. query_payment_status - ask Daraja about a push that has not called back

Order payment states:
    pending/pending  --[callback ResultCode == 0]--> completed/processing
    pending/pending  --[callback ResultCode != 0]--> pending/pending
    completed/*      --[initiate]-----------------> rejected

Callbacks are always acknowledged. Anything that goes wrong while handling
one is logged and answered with the failure acknowledgement.
"""

import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from catalog.models import Product
from core.exceptions import (
    ConflictError,
    ForbiddenError,
    MalformedCallbackError,
    NotFoundError,
)
from core.mpesa_service import MpesaError, MpesaService
from orders.models import Order
from payments.models import PaymentAttempt

logger = logging.getLogger(__name__)


CALLBACK_ACCEPTED = {'ResultCode': 0, 'ResultDesc': 'Success'}
CALLBACK_REJECTED = {'ResultCode': 1, 'ResultDesc': 'Failed'}


class PaymentCoordinator:
    """
    Usage:
        coordinator = PaymentCoordinator()
        result = coordinator.initiate_payment(order_id, request.user, "0712345678")
        if result['success']:
            checkout_request_id = result['checkout_request_id']

        ack = coordinator.handle_callback(request.data)
    """

    def __init__(self, gateway: Optional[MpesaService] = None):
        self.gateway = gateway or MpesaService()

    # =========================================================================
    # INITIATION
    # =========================================================================

    def initiate_payment(self, order_id, requester, phone_number: str) -> Dict[str, Any]:
        """
        Send an STK push for an unpaid order.

        Returns:
            {'success': True, 'checkout_request_id', 'merchant_request_id', 'customer_message'}
            or {'success': False, 'message', 'code'} when the gateway refuses

        Raises:
            NotFoundError: Order does not exist
            ForbiddenError: Order belongs to someone else
            ConflictError: Order is already paid or was cancelled
        """
        try:
            order = Order.objects.get(pk=order_id)
        except Order.DoesNotExist:
            raise NotFoundError('Order not found.')

        if order.user_id != requester.id:
            raise ForbiddenError('You do not have access to this order.')

        if order.payment_status == 'completed':
            raise ConflictError('This order has already been paid.', code='ALREADY_PAID')

        if order.order_status == 'cancelled':
            raise ConflictError('This order was cancelled.', code='ORDER_CANCELLED')

        phone = MpesaService.format_phone_number(phone_number)

        try:
            result = self.gateway.initiate_stk_push(
                phone_number=phone,
                amount=order.total_amount,
                account_reference=order.order_number,
                transaction_desc=f"Payment for order {order.order_number}",
            )
        except MpesaError as e:
            logger.warning(f"STK push failed for order {order.order_number}: {e.message}", extra={
                'order_id': str(order.id),
                'code': e.code,
            })
            return {
                'success': False,
                'message': e.message,
                'code': e.code,
            }

        checkout_request_id = result.get('CheckoutRequestID')
        merchant_request_id = result.get('MerchantRequestID', '')

        if not checkout_request_id:
            logger.error(f"STK push for order {order.order_number} returned no CheckoutRequestID", extra={
                'response': result
            })
            return {
                'success': False,
                'message': 'Payment gateway returned an incomplete response. Please try again.',
                'code': 'API_ERROR',
            }

        with transaction.atomic():
            Order.objects.filter(pk=order.pk).update(phone_number=phone, updated_at=timezone.now())
            PaymentAttempt.objects.create(
                order=order,
                checkout_request_id=checkout_request_id,
                merchant_request_id=merchant_request_id,
                phone_number=phone,
                amount=order.total_amount,
            )

        logger.info(f"Awaiting M-Pesa callback for order {order.order_number}", extra={
            'checkout_request_id': checkout_request_id,
        })

        return {
            'success': True,
            'checkout_request_id': checkout_request_id,
            'merchant_request_id': merchant_request_id,
            'customer_message': result.get('CustomerMessage', ''),
        }

    # =========================================================================
    # CALLBACK
    # =========================================================================

    def handle_callback(self, payload) -> Dict[str, Any]:
        """
        Process a Daraja STK callback and return the acknowledgement body.

        Never raises.
        """
        try:
            callback = self.parse_callback(payload)
        except MalformedCallbackError as e:
            logger.warning(f"Rejected M-Pesa callback: {e.message}")
            return dict(CALLBACK_REJECTED)

        logger.info(
            f"M-Pesa callback received: ResultCode={callback['result_code']}",
            extra={'checkout_request_id': callback['checkout_request_id']}
        )

        try:
            if callback['result_code'] == 0:
                self._finalize_payment(callback, payload)
            else:
                self._record_failure(callback, payload)
        except Exception as e:
            logger.exception(f"Error processing M-Pesa callback: {e}", extra={
                'checkout_request_id': callback['checkout_request_id'],
            })
            return dict(CALLBACK_REJECTED)

        return dict(CALLBACK_ACCEPTED)

    @staticmethod
    def parse_callback(payload) -> Dict[str, Any]:
        """
        Flatten the Body.stkCallback envelope.

        Metadata tags (Amount, MpesaReceiptNumber, TransactionDate,
        PhoneNumber) are read by name; missing ones come back as None.

        Raises:
            MalformedCallbackError: Envelope or ResultCode missing
        """
        if not isinstance(payload, dict):
            raise MalformedCallbackError('Callback body is not a JSON object.')

        body = payload.get('Body')
        stk_callback = body.get('stkCallback') if isinstance(body, dict) else None
        if not isinstance(stk_callback, dict):
            raise MalformedCallbackError('Callback is missing Body.stkCallback.')

        try:
            result_code = int(stk_callback.get('ResultCode'))
        except (TypeError, ValueError):
            raise MalformedCallbackError('Callback is missing a numeric ResultCode.')

        metadata = {}
        callback_metadata = stk_callback.get('CallbackMetadata')
        items = callback_metadata.get('Item') if isinstance(callback_metadata, dict) else None
        for item in items or []:
            if isinstance(item, dict) and item.get('Name'):
                metadata[item['Name']] = item.get('Value')

        return {
            'merchant_request_id': stk_callback.get('MerchantRequestID') or '',
            'checkout_request_id': stk_callback.get('CheckoutRequestID') or '',
            'result_code': result_code,
            'result_desc': stk_callback.get('ResultDesc') or '',
            'amount': metadata.get('Amount'),
            'receipt_number': metadata.get('MpesaReceiptNumber'),
            'transaction_date': metadata.get('TransactionDate'),
            'phone_number': metadata.get('PhoneNumber'),
        }

    def _finalize_payment(self, callback: Dict[str, Any], payload) -> Optional[Order]:
        """
        Mark the matched order paid and move stock, once.

        The order row stays locked for the whole transaction so duplicate
        callbacks queue up and then see payment_status == 'completed'.
        """
        checkout_request_id = callback['checkout_request_id']
        receipt_number = callback['receipt_number'] or ''

        with transaction.atomic():
            attempt = None
            if checkout_request_id:
                attempt = PaymentAttempt.objects.select_for_update().filter(
                    checkout_request_id=checkout_request_id
                ).first()

            if attempt:
                order = Order.objects.select_for_update().get(pk=attempt.order_id)
            else:
                order = self._match_order_by_phone(callback['phone_number'])

            if order is None:
                logger.warning(
                    "M-Pesa callback did not match any pending order",
                    extra={'checkout_request_id': checkout_request_id, 'receipt': receipt_number}
                )
                return None

            if order.payment_status == 'completed':
                logger.info(f"Order {order.order_number} already paid, ignoring repeated callback")
                if attempt and attempt.status == 'pending':
                    # Second push paid for the same order; keep the receipt for a refund
                    logger.warning(
                        f"Order {order.order_number} received a second payment: {receipt_number}"
                    )
                    attempt.mark_as_completed(receipt_number, payload)
                return order

            order.payment_status = 'completed'
            order.mpesa_receipt_number = receipt_number
            order.mpesa_transaction_id = checkout_request_id
            order.paid_at = timezone.now()

            if order.order_status == 'cancelled':
                # Paid after the customer cancelled: record the money, leave stock alone
                logger.warning(
                    f"Payment {receipt_number} received for cancelled order {order.order_number}"
                )
                order.save(update_fields=[
                    'payment_status', 'mpesa_receipt_number', 'mpesa_transaction_id',
                    'paid_at', 'updated_at',
                ])
            else:
                order.order_status = 'processing'
                order.save(update_fields=[
                    'payment_status', 'order_status', 'mpesa_receipt_number',
                    'mpesa_transaction_id', 'paid_at', 'updated_at',
                ])
                order.add_status_history('processing', 'Payment received successfully')
                self._apply_stock_movement(order)

            if attempt:
                attempt.mark_as_completed(receipt_number, payload)

            order_id = str(order.id)
            transaction.on_commit(lambda: self._queue_confirmation(order_id))

        logger.info(f"Payment completed for order {order.order_number}", extra={
            'receipt': receipt_number,
            'amount': callback['amount'],
        })
        return order

    @staticmethod
    def _match_order_by_phone(phone_number) -> Optional[Order]:
        """Fallback for callbacks without a known CheckoutRequestID."""
        if not phone_number:
            return None

        phone = MpesaService.format_phone_number(str(phone_number))
        return Order.objects.select_for_update().filter(
            phone_number=phone,
            payment_status='pending',
        ).exclude(
            order_status='cancelled'
        ).order_by('-created_at').first()

    @staticmethod
    def _apply_stock_movement(order: Order):
        for item in order.items.all():
            Product.objects.filter(pk=item.product_id).update(
                quantity=F('quantity') - item.quantity,
                sold=F('sold') + item.quantity,
            )

        oversold = Product.objects.filter(
            pk__in=order.items.values_list('product_id', flat=True),
            quantity__lt=0,
        ).values_list('name', flat=True)
        for name in oversold:
            logger.warning(f"Product '{name}' oversold by order {order.order_number}")

    @staticmethod
    def _queue_confirmation(order_id: str):
        from payments.tasks import send_payment_confirmation
        try:
            send_payment_confirmation.delay(order_id)
        except Exception as exc:
            # The payment is already committed
            logger.error(f"Failed to queue payment confirmation for order {order_id}: {exc}")

    def _record_failure(self, callback: Dict[str, Any], payload):
        """Non-zero ResultCode: the customer cancelled, timed out or had no funds."""
        checkout_request_id = callback['checkout_request_id']

        logger.info(
            f"M-Pesa payment not completed: {callback['result_desc']} "
            f"(ResultCode={callback['result_code']})",
            extra={'checkout_request_id': checkout_request_id}
        )

        if not checkout_request_id:
            return

        with transaction.atomic():
            attempt = PaymentAttempt.objects.select_for_update().filter(
                checkout_request_id=checkout_request_id
            ).first()
            if attempt and attempt.status == 'pending':
                attempt.mark_as_failed(callback['result_code'], callback['result_desc'], payload)

    # =========================================================================
    # STATUS QUERY
    # =========================================================================

    def query_payment_status(self, checkout_request_id: str) -> Dict[str, Any]:
        """
        Ask Daraja about a push. No local state changes.

        Returns:
            {'success': True, 'data': <Daraja response>}
            or {'success': False, 'message', 'code'}
        """
        try:
            data = self.gateway.query_stk_status(checkout_request_id)
        except MpesaError as e:
            logger.warning(f"STK status query failed for {checkout_request_id}: {e.message}")
            return {
                'success': False,
                'message': e.message,
                'code': e.code,
            }

        return {'success': True, 'data': data}
