"""
M-Pesa payment endpoints.

Run with: pytest tests/test_payment_api.py -v
"""

from unittest.mock import patch

import pytest
from rest_framework import status

from core.mpesa_service import MpesaError, MpesaService
from payments.models import PaymentAttempt

CHECKOUT_ID = 'ws_CO_01062025101500123456'

STK_ACCEPTED = {
    'MerchantRequestID': '29115-34620561-1',
    'CheckoutRequestID': CHECKOUT_ID,
    'ResponseCode': '0',
    'CustomerMessage': 'Success. Request accepted for processing',
}


@pytest.mark.django_db
class TestInitiatePaymentEndpoint:

    def test_initiate(self, customer_client, order):
        with patch.object(MpesaService, 'initiate_stk_push', return_value=STK_ACCEPTED):
            response = customer_client.post('/api/payments/initiate/', {
                'order_id': str(order.id),
                'phone_number': '0712345678',
            }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        assert response.data['checkout_request_id'] == CHECKOUT_ID
        assert PaymentAttempt.objects.filter(order=order).count() == 1

    def test_gateway_failure_returns_502(self, customer_client, order):
        error = MpesaError('Unable to connect to payment gateway. Please try again.', code='CONNECTION_ERROR')

        with patch.object(MpesaService, 'initiate_stk_push', side_effect=error):
            response = customer_client.post('/api/payments/initiate/', {
                'order_id': str(order.id),
                'phone_number': '0712345678',
            }, format='json')

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data == {
            'error': 'Unable to connect to payment gateway. Please try again.',
            'code': 'CONNECTION_ERROR',
        }

    def test_paid_order_returns_409(self, customer_client, order):
        order.payment_status = 'completed'
        order.save()

        with patch.object(MpesaService, 'initiate_stk_push') as mock_push:
            response = customer_client.post('/api/payments/initiate/', {
                'order_id': str(order.id),
                'phone_number': '0712345678',
            }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'ALREADY_PAID'
        mock_push.assert_not_called()

    def test_other_customers_order_returns_403(self, api_client, other_customer, order):
        api_client.force_authenticate(user=other_customer)

        response = api_client.post('/api/payments/initiate/', {
            'order_id': str(order.id),
            'phone_number': '0722000111',
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_phone(self, customer_client, order):
        response = customer_client.post('/api/payments/initiate/', {
            'order_id': str(order.id),
            'phone_number': 'call me',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'phone_number' in response.data

    def test_requires_authentication(self, api_client, order):
        response = api_client.post('/api/payments/initiate/', {
            'order_id': str(order.id),
            'phone_number': '0712345678',
        }, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestCallbackEndpoint:

    def test_public_callback_finalizes_order(self, api_client, payment_attempt, order, stk_callback):
        response = api_client.post('/api/payments/callback/', stk_callback(CHECKOUT_ID), format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'ResultCode': 0, 'ResultDesc': 'Success'}
        order.refresh_from_db()
        assert order.payment_status == 'completed'

    def test_malformed_callback_still_returns_200(self, api_client, payment_attempt):
        response = api_client.post('/api/payments/callback/', {'hello': 'world'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'ResultCode': 1, 'ResultDesc': 'Failed'}

    def test_truncated_json_is_acknowledged(self, api_client, payment_attempt, order):
        response = api_client.post(
            '/api/payments/callback/',
            '{"Body": {"stkCallback": ',
            content_type='application/json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'ResultCode': 1, 'ResultDesc': 'Failed'}
        order.refresh_from_db()
        assert order.payment_status == 'pending'

    def test_non_json_body_is_acknowledged(self, api_client, payment_attempt, order):
        response = api_client.post('/api/payments/callback/', 'hello', content_type='text/plain')

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'ResultCode': 1, 'ResultDesc': 'Failed'}
        payment_attempt.refresh_from_db()
        assert payment_attempt.status == 'pending'

    def test_ignores_bad_bearer_token(self, api_client, payment_attempt, stk_callback):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer not-a-jwt')

        response = api_client.post('/api/payments/callback/', stk_callback(CHECKOUT_ID), format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['ResultCode'] == 0


@pytest.mark.django_db
class TestQueryEndpoint:

    def test_owner_can_query(self, customer_client, payment_attempt):
        daraja = {'ResponseCode': '0', 'ResultCode': '0', 'ResultDesc': 'The service request is processed successfully.'}

        with patch.object(MpesaService, 'query_stk_status', return_value=daraja):
            response = customer_client.post(
                '/api/payments/query/', {'checkout_request_id': CHECKOUT_ID}, format='json'
            )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data'] == daraja
        assert response.data['attempt']['status'] == 'pending'

    def test_unknown_checkout_id(self, customer_client, payment_attempt):
        response = customer_client.post(
            '/api/payments/query/', {'checkout_request_id': 'ws_CO_nope'}, format='json'
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_other_customer_is_forbidden(self, api_client, other_customer, payment_attempt):
        api_client.force_authenticate(user=other_customer)

        response = api_client.post(
            '/api/payments/query/', {'checkout_request_id': CHECKOUT_ID}, format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_can_query_any_payment(self, admin_client, payment_attempt):
        with patch.object(MpesaService, 'query_stk_status', return_value={'ResultCode': '1032'}):
            response = admin_client.post(
                '/api/payments/query/', {'checkout_request_id': CHECKOUT_ID}, format='json'
            )

        assert response.status_code == status.HTTP_200_OK

    def test_gateway_failure_returns_502(self, customer_client, payment_attempt):
        error = MpesaError('Payment gateway timeout. Please try again.', code='TIMEOUT')

        with patch.object(MpesaService, 'query_stk_status', side_effect=error):
            response = customer_client.post(
                '/api/payments/query/', {'checkout_request_id': CHECKOUT_ID}, format='json'
            )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data['code'] == 'TIMEOUT'
