"""
M-Pesa Payment Views

POST /api/payments/initiate/  - STK push for one of the customer's orders
POST /api/payments/callback/  - Daraja result webhook (public)
POST /api/payments/query/     - ask Daraja about a pending push
"""

import logging

from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.parsers import JSONParser
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated

from core.exceptions import ForbiddenError, GatewayError, NotFoundError
from .models import PaymentAttempt
from .serializers import InitiatePaymentSerializer, QueryPaymentSerializer, PaymentAttemptSerializer
from .services.coordinator import CALLBACK_REJECTED, PaymentCoordinator

logger = logging.getLogger(__name__)


class InitiatePaymentView(APIView):
    """
    POST /api/payments/initiate/

    Request body:
    {
        "order_id": "uuid",
        "phone_number": "0712345678"
    }

    Response:
    {
        "success": true,
        "message": "Payment request sent. Please check your phone.",
        "checkout_request_id": "ws_CO_...",
        "merchant_request_id": "..."
    }
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = InitiatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PaymentCoordinator().initiate_payment(
            serializer.validated_data['order_id'],
            request.user,
            serializer.validated_data['phone_number'],
        )

        if not result['success']:
            raise GatewayError(result['message'], code=result['code'])

        return Response({
            'success': True,
            'message': result['customer_message'] or 'Payment request sent. Please check your phone.',
            'checkout_request_id': result['checkout_request_id'],
            'merchant_request_id': result['merchant_request_id'],
        })


@method_decorator(csrf_exempt, name='dispatch')
class MpesaCallbackView(APIView):
    """
    POST /api/payments/callback/

    Daraja posts the STK result here. Always answers 200 with
    {"ResultCode": 0|1, "ResultDesc": "..."} so Daraja stops retrying.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    parser_classes = [JSONParser]

    def post(self, request):
        ack = PaymentCoordinator().handle_callback(request.data)
        return Response(ack, status=status.HTTP_200_OK)

    def handle_exception(self, exc):
        if isinstance(exc, (ParseError, UnsupportedMediaType)):
            logger.warning(f"Rejected unreadable M-Pesa callback: {exc}")
            return Response(dict(CALLBACK_REJECTED), status=status.HTTP_200_OK)
        return super().handle_exception(exc)


class QueryPaymentView(APIView):
    """
    POST /api/payments/query/
    {
        "checkout_request_id": "ws_CO_..."
    }
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = QueryPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        checkout_request_id = serializer.validated_data['checkout_request_id']

        attempt = PaymentAttempt.objects.select_related('order').filter(
            checkout_request_id=checkout_request_id
        ).first()
        if attempt is None:
            raise NotFoundError('Payment request not found.')
        if attempt.order.user_id != request.user.id and not request.user.is_shop_admin:
            raise ForbiddenError('You do not have access to this payment.')

        result = PaymentCoordinator().query_payment_status(checkout_request_id)

        if not result['success']:
            raise GatewayError(result['message'], code=result['code'])

        return Response({
            'success': True,
            'data': result['data'],
            'attempt': PaymentAttemptSerializer(attempt).data,
        })
