"""
Payment Coordinator: STK push initiation and callback finalization.

The gateway is a mock; these tests cover the order/stock state machine.

Run with: pytest tests/test_payment_coordinator.py -v
"""

import uuid
from unittest.mock import Mock, patch

import pytest
from kombu.exceptions import OperationalError

from core.exceptions import ConflictError, ForbiddenError, NotFoundError
from core.mpesa_service import MpesaError
from orders.models import Order
from payments.models import PaymentAttempt
from payments.services.coordinator import PaymentCoordinator

CHECKOUT_ID = 'ws_CO_01062025101500123456'
ACCEPTED = {'ResultCode': 0, 'ResultDesc': 'Success'}
REJECTED = {'ResultCode': 1, 'ResultDesc': 'Failed'}


@pytest.fixture
def gateway():
    gateway = Mock()
    gateway.initiate_stk_push.return_value = {
        'MerchantRequestID': '29115-34620561-1',
        'CheckoutRequestID': CHECKOUT_ID,
        'ResponseCode': '0',
        'CustomerMessage': 'Success. Request accepted for processing',
    }
    return gateway


@pytest.fixture
def coordinator(gateway):
    return PaymentCoordinator(gateway=gateway)


# =============================================================================
# INITIATION
# =============================================================================

@pytest.mark.django_db
class TestInitiatePayment:

    def test_successful_push_records_attempt(self, coordinator, gateway, order, customer):
        result = coordinator.initiate_payment(order.id, customer, '0712 345 678')

        assert result == {
            'success': True,
            'checkout_request_id': CHECKOUT_ID,
            'merchant_request_id': '29115-34620561-1',
            'customer_message': 'Success. Request accepted for processing',
        }

        gateway.initiate_stk_push.assert_called_once()
        kwargs = gateway.initiate_stk_push.call_args.kwargs
        assert kwargs['phone_number'] == '254712345678'
        assert kwargs['amount'] == order.total_amount
        assert kwargs['account_reference'] == order.order_number

        attempt = PaymentAttempt.objects.get(checkout_request_id=CHECKOUT_ID)
        assert attempt.order_id == order.id
        assert attempt.status == 'pending'
        assert attempt.amount == order.total_amount

        order.refresh_from_db()
        assert order.phone_number == '254712345678'
        assert order.payment_status == 'pending'

    def test_paid_order_is_rejected_without_calling_gateway(self, coordinator, gateway, order, customer):
        order.payment_status = 'completed'
        order.save()

        with pytest.raises(ConflictError) as exc_info:
            coordinator.initiate_payment(order.id, customer, '0712345678')

        assert exc_info.value.code == 'ALREADY_PAID'
        gateway.initiate_stk_push.assert_not_called()

    def test_cancelled_order_is_rejected(self, coordinator, gateway, order, customer):
        order.cancel('Changed my mind')

        with pytest.raises(ConflictError) as exc_info:
            coordinator.initiate_payment(order.id, customer, '0712345678')

        assert exc_info.value.code == 'ORDER_CANCELLED'
        gateway.initiate_stk_push.assert_not_called()

    def test_other_customers_order(self, coordinator, gateway, order, other_customer):
        with pytest.raises(ForbiddenError):
            coordinator.initiate_payment(order.id, other_customer, '0722000111')

        gateway.initiate_stk_push.assert_not_called()

    def test_unknown_order(self, coordinator, customer):
        with pytest.raises(NotFoundError):
            coordinator.initiate_payment(uuid.uuid4(), customer, '0712345678')

    def test_gateway_failure_is_reported(self, coordinator, gateway, order, customer):
        gateway.initiate_stk_push.side_effect = MpesaError('Invalid Access Token', code='API_ERROR')

        result = coordinator.initiate_payment(order.id, customer, '0712345678')

        assert result == {'success': False, 'message': 'Invalid Access Token', 'code': 'API_ERROR'}
        assert not PaymentAttempt.objects.exists()

    def test_response_without_checkout_id(self, coordinator, gateway, order, customer):
        gateway.initiate_stk_push.return_value = {'ResponseCode': '0'}

        result = coordinator.initiate_payment(order.id, customer, '0712345678')

        assert result['success'] is False
        assert not PaymentAttempt.objects.exists()


# =============================================================================
# CALLBACK PARSING
# =============================================================================

class TestParseCallback:

    def test_metadata_is_read_by_name(self, stk_callback):
        payload = stk_callback(CHECKOUT_ID)
        payload['Body']['stkCallback']['CallbackMetadata']['Item'].reverse()

        parsed = PaymentCoordinator.parse_callback(payload)

        assert parsed['checkout_request_id'] == CHECKOUT_ID
        assert parsed['result_code'] == 0
        assert parsed['amount'] == 2300
        assert parsed['receipt_number'] == 'QK6123ABCD'
        assert parsed['phone_number'] == 254712345678
        assert parsed['transaction_date'] == 20250601101530

    def test_missing_metadata_gives_none(self, stk_callback):
        parsed = PaymentCoordinator.parse_callback(stk_callback(CHECKOUT_ID, include_metadata=False))

        assert parsed['receipt_number'] is None
        assert parsed['amount'] is None
        assert parsed['phone_number'] is None

    def test_string_result_code(self, stk_callback):
        payload = stk_callback(CHECKOUT_ID, result_code=1032)
        payload['Body']['stkCallback']['ResultCode'] = '1032'

        assert PaymentCoordinator.parse_callback(payload)['result_code'] == 1032


# =============================================================================
# CALLBACK HANDLING
# =============================================================================

@pytest.mark.django_db
class TestHandleCallback:

    def test_success_finalizes_order_and_moves_stock(
        self, coordinator, payment_attempt, order, layer_chicks, broilers, stk_callback
    ):
        ack = coordinator.handle_callback(stk_callback(CHECKOUT_ID))

        assert ack == ACCEPTED

        order.refresh_from_db()
        assert order.payment_status == 'completed'
        assert order.order_status == 'processing'
        assert order.mpesa_receipt_number == 'QK6123ABCD'
        assert order.mpesa_transaction_id == CHECKOUT_ID
        assert order.paid_at is not None
        assert sorted(order.status_history.values_list('status', flat=True)) == ['pending', 'processing']

        layer_chicks.refresh_from_db()
        broilers.refresh_from_db()
        assert (layer_chicks.quantity, layer_chicks.sold) == (490, 10)
        assert (broilers.quantity, broilers.sold) == (38, 2)

        payment_attempt.refresh_from_db()
        assert payment_attempt.status == 'completed'
        assert payment_attempt.receipt_number == 'QK6123ABCD'
        assert payment_attempt.resolved_at is not None

    def test_duplicate_callback_applies_once(
        self, coordinator, payment_attempt, order, layer_chicks, stk_callback
    ):
        payload = stk_callback(CHECKOUT_ID)

        assert coordinator.handle_callback(payload) == ACCEPTED
        assert coordinator.handle_callback(payload) == ACCEPTED

        layer_chicks.refresh_from_db()
        assert (layer_chicks.quantity, layer_chicks.sold) == (490, 10)
        assert order.status_history.filter(status='processing').count() == 1

    @pytest.mark.parametrize('payload', [
        {},
        'not json',
        None,
        {'Body': {}},
        {'Body': {'stkCallback': {'CheckoutRequestID': CHECKOUT_ID}}},
        {'Body': {'stkCallback': {'CheckoutRequestID': CHECKOUT_ID, 'ResultCode': 'abc'}}},
    ])
    def test_malformed_callback_is_rejected(self, coordinator, payment_attempt, order, payload):
        assert coordinator.handle_callback(payload) == REJECTED

        order.refresh_from_db()
        assert order.payment_status == 'pending'
        payment_attempt.refresh_from_db()
        assert payment_attempt.status == 'pending'

    def test_cancelled_push_leaves_order_pending(
        self, coordinator, payment_attempt, order, layer_chicks, stk_callback
    ):
        ack = coordinator.handle_callback(stk_callback(CHECKOUT_ID, result_code=1032))

        assert ack == ACCEPTED

        order.refresh_from_db()
        assert (order.payment_status, order.order_status) == ('pending', 'pending')

        payment_attempt.refresh_from_db()
        assert payment_attempt.status == 'failed'
        assert payment_attempt.result_code == 1032
        assert payment_attempt.result_desc == 'Request cancelled by user'

        layer_chicks.refresh_from_db()
        assert layer_chicks.quantity == 500

    def test_success_without_metadata(self, coordinator, payment_attempt, order, stk_callback):
        ack = coordinator.handle_callback(stk_callback(CHECKOUT_ID, include_metadata=False))

        assert ack == ACCEPTED
        order.refresh_from_db()
        assert order.payment_status == 'completed'
        assert order.mpesa_receipt_number == ''

    def test_unknown_checkout_id_falls_back_to_phone(self, coordinator, order, stk_callback):
        order.phone_number = '254712345678'
        order.save()

        ack = coordinator.handle_callback(stk_callback('ws_CO_unknown', phone=254712345678))

        assert ack == ACCEPTED
        order.refresh_from_db()
        assert order.payment_status == 'completed'
        assert order.order_status == 'processing'

    def test_phone_fallback_skips_cancelled_orders(self, coordinator, order, stk_callback):
        order.phone_number = '254712345678'
        order.save()
        order.cancel('Cancelled by customer')

        ack = coordinator.handle_callback(stk_callback('ws_CO_unknown'))

        assert ack == ACCEPTED
        order.refresh_from_db()
        assert order.payment_status == 'pending'

    def test_unmatched_callback_is_acknowledged(self, coordinator, order, stk_callback):
        ack = coordinator.handle_callback(stk_callback('ws_CO_unknown', phone=254799999999))

        assert ack == ACCEPTED
        order.refresh_from_db()
        assert order.payment_status == 'pending'

    def test_payment_for_cancelled_order_is_recorded_without_stock_movement(
        self, coordinator, payment_attempt, order, layer_chicks, stk_callback
    ):
        order.cancel('Cancelled by customer')

        assert coordinator.handle_callback(stk_callback(CHECKOUT_ID)) == ACCEPTED

        order.refresh_from_db()
        assert order.payment_status == 'completed'
        assert order.order_status == 'cancelled'
        layer_chicks.refresh_from_db()
        assert layer_chicks.quantity == 500

    def test_oversold_stock_goes_negative(self, coordinator, payment_attempt, order, broilers, stk_callback):
        broilers.quantity = 1
        broilers.save()

        assert coordinator.handle_callback(stk_callback(CHECKOUT_ID)) == ACCEPTED

        broilers.refresh_from_db()
        assert broilers.quantity == -1

    def test_internal_error_is_absorbed_and_rolled_back(
        self, coordinator, payment_attempt, order, stk_callback
    ):
        with patch.object(PaymentCoordinator, '_apply_stock_movement', side_effect=RuntimeError('db down')):
            ack = coordinator.handle_callback(stk_callback(CHECKOUT_ID))

        assert ack == REJECTED
        order.refresh_from_db()
        assert order.payment_status == 'pending'

    def test_confirmation_sms_is_queued_on_commit(
        self, coordinator, payment_attempt, order, stk_callback, django_capture_on_commit_callbacks
    ):
        with patch('payments.tasks.get_sms_service') as mock_service:
            mock_service.return_value.send_sms.return_value = {'success': True}

            with django_capture_on_commit_callbacks(execute=True) as callbacks:
                coordinator.handle_callback(stk_callback(CHECKOUT_ID))

        assert len(callbacks) == 1
        phone, message = mock_service.return_value.send_sms.call_args[0]
        assert phone == '254712345678'
        assert 'QK6123ABCD' in message
        assert order.order_number in message


    @pytest.mark.django_db(transaction=True)
    def test_broker_outage_after_commit_still_acknowledges(
        self, coordinator, payment_attempt, order, stk_callback
    ):
        with patch('payments.tasks.send_payment_confirmation.delay',
                   side_effect=OperationalError('broker down')) as mock_delay:
            ack = coordinator.handle_callback(stk_callback(CHECKOUT_ID))

        assert ack == ACCEPTED
        mock_delay.assert_called_once_with(str(order.id))
        order.refresh_from_db()
        assert order.payment_status == 'completed'
        assert order.order_status == 'processing'


# =============================================================================
# STATUS QUERY
# =============================================================================

class TestQueryPaymentStatus:

    def test_passes_through_gateway_response(self, coordinator, gateway):
        gateway.query_stk_status.return_value = {'ResultCode': '0', 'ResultDesc': 'Processed'}

        result = coordinator.query_payment_status(CHECKOUT_ID)

        assert result == {'success': True, 'data': {'ResultCode': '0', 'ResultDesc': 'Processed'}}
        gateway.query_stk_status.assert_called_once_with(CHECKOUT_ID)

    def test_gateway_failure(self, coordinator, gateway):
        gateway.query_stk_status.side_effect = MpesaError('Payment gateway timeout.', code='TIMEOUT')

        result = coordinator.query_payment_status(CHECKOUT_ID)

        assert result == {'success': False, 'message': 'Payment gateway timeout.', 'code': 'TIMEOUT'}
