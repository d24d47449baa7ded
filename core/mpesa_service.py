"""
M-Pesa (Safaricom Daraja) Payment Service

Handles the Daraja API interactions for Lipa Na M-Pesa Online (STK Push):
- OAuth access token retrieval (cached until shortly before expiry)
- STK Push initiation (prompts the customer's phone for their PIN)
- STK Push status query

The payment result itself arrives asynchronously on the callback URL and is
handled by payments.services.coordinator.

Documentation: https://developer.safaricom.co.ke/APIs/MpesaExpressSimulate
"""

import base64
import hashlib
import logging
import math
import requests
from decimal import Decimal
from typing import Dict, Any, Tuple
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

logger = logging.getLogger(__name__)


class MpesaError(Exception):
    """Base exception for M-Pesa errors"""
    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code or 'MPESA_ERROR'
        self.details = details or {}


class MpesaService:
    """
    M-Pesa Daraja Gateway Service

    Credentials default to the MPESA_* settings and can be overridden per
    instance, which is how tests and alternate shortcodes configure it.

    Usage:
        from core.mpesa_service import MpesaService

        mpesa = MpesaService()
        result = mpesa.initiate_stk_push(
            phone_number="0712345678",
            amount=Decimal("1500.00"),
            account_reference="GM-20250601-AB12C",
            transaction_desc="Payment for order GM-20250601-AB12C",
        )
        checkout_request_id = result['CheckoutRequestID']

        status = mpesa.query_stk_status(checkout_request_id)
    """

    BASE_URLS = {
        'sandbox': 'https://sandbox.safaricom.co.ke',
        'production': 'https://api.safaricom.co.ke',
    }

    TOKEN_ENDPOINT = '/oauth/v1/generate?grant_type=client_credentials'
    STK_PUSH_ENDPOINT = '/mpesa/stkpush/v1/processrequest'
    STK_QUERY_ENDPOINT = '/mpesa/stkpushquery/v1/query'

    TIMESTAMP_FORMAT = '%Y%m%d%H%M%S'

    def __init__(
        self,
        consumer_key: str = None,
        consumer_secret: str = None,
        shortcode: str = None,
        passkey: str = None,
        environment: str = None,
        callback_url: str = None,
        transaction_type: str = None,
        timeout: int = None,
        token_expiry_margin: int = None,
    ):
        """Initialize the Daraja client, falling back to settings for anything not given."""
        self.consumer_key = consumer_key or getattr(settings, 'MPESA_CONSUMER_KEY', '')
        self.consumer_secret = consumer_secret or getattr(settings, 'MPESA_CONSUMER_SECRET', '')
        self.shortcode = str(shortcode or getattr(settings, 'MPESA_SHORTCODE', ''))
        self.passkey = passkey or getattr(settings, 'MPESA_PASSKEY', '')
        self.environment = environment or getattr(settings, 'MPESA_ENVIRONMENT', 'sandbox')
        self.callback_url = callback_url or getattr(settings, 'MPESA_CALLBACK_URL', '')
        self.transaction_type = transaction_type or getattr(
            settings, 'MPESA_TRANSACTION_TYPE', 'CustomerPayBillOnline'
        )
        self.timeout = timeout or getattr(settings, 'MPESA_TIMEOUT', 30)
        self.token_expiry_margin = (
            token_expiry_margin if token_expiry_margin is not None
            else getattr(settings, 'MPESA_TOKEN_EXPIRY_MARGIN', 60)
        )

        if self.environment not in self.BASE_URLS:
            raise MpesaError(
                message=f"Unknown M-Pesa environment: {self.environment}",
                code='CONFIGURATION_ERROR'
            )

        if not self.consumer_key or not self.consumer_secret:
            logger.warning("M-Pesa consumer credentials not configured. Gateway calls will fail.")

    @property
    def base_url(self) -> str:
        return self.BASE_URLS[self.environment]

    @property
    def token_cache_key(self) -> str:
        key_hash = hashlib.sha256(self.consumer_key.encode()).hexdigest()[:16]
        return f"mpesa:access_token:{self.environment}:{key_hash}"

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    def get_access_token(self, force_refresh: bool = False) -> str:
        """
        Get an OAuth access token, reusing the cached one while it is valid.

        Raises:
            MpesaError: When the token endpoint rejects the credentials or is unreachable
        """
        if not force_refresh:
            cached_token = cache.get(self.token_cache_key)
            if cached_token:
                return cached_token

        credentials = f"{self.consumer_key}:{self.consumer_secret}"
        encoded = base64.b64encode(credentials.encode()).decode()

        try:
            response = requests.get(
                f"{self.base_url}{self.TOKEN_ENDPOINT}",
                headers={'Authorization': f'Basic {encoded}'},
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            logger.error("M-Pesa token request timeout")
            raise MpesaError(
                message="Payment gateway timeout. Please try again.",
                code='TIMEOUT'
            )
        except requests.exceptions.ConnectionError:
            logger.error("M-Pesa token request connection error")
            raise MpesaError(
                message="Unable to connect to payment gateway. Please try again.",
                code='CONNECTION_ERROR'
            )

        result = self._parse_json(response)
        access_token = result.get('access_token')

        if not response.ok or not access_token:
            error_message = result.get('errorMessage', 'Failed to get M-Pesa access token')
            logger.error(f"M-Pesa auth error: {error_message}", extra={
                'status_code': response.status_code,
                'response': result
            })
            raise MpesaError(
                message=error_message,
                code='AUTH_ERROR',
                details={'response': result, 'status_code': response.status_code}
            )

        try:
            expires_in = int(result.get('expires_in', 3599))
        except (TypeError, ValueError):
            expires_in = 3599

        cache_ttl = max(expires_in - self.token_expiry_margin, 1)
        cache.set(self.token_cache_key, access_token, cache_ttl)
        logger.info(f"M-Pesa access token refreshed, cached for {cache_ttl}s")

        return access_token

    def invalidate_access_token(self):
        cache.delete(self.token_cache_key)

    def generate_timestamp(self) -> str:
        """Current Nairobi time as YYYYMMDDHHmmss."""
        return timezone.localtime().strftime(self.TIMESTAMP_FORMAT)

    def generate_password(self, timestamp: str = None) -> Tuple[str, str]:
        """
        Build the STK password: base64(shortcode + passkey + timestamp).

        Returns:
            (password, timestamp)
        """
        timestamp = timestamp or self.generate_timestamp()
        raw = f"{self.shortcode}{self.passkey}{timestamp}"
        password = base64.b64encode(raw.encode()).decode()
        return password, timestamp

    # =========================================================================
    # REQUEST PLUMBING
    # =========================================================================

    @staticmethod
    def _parse_json(response) -> Dict[str, Any]:
        try:
            result = response.json()
        except ValueError:
            return {}
        return result if isinstance(result, dict) else {}

    def _make_request(self, endpoint: str, data: dict, retry_on_auth: bool = True) -> Dict[str, Any]:
        """
        POST to a Daraja endpoint with a bearer token.

        A 401 drops the cached token and retries once with a fresh one.

        Raises:
            MpesaError: On API errors
        """
        url = f"{self.base_url}{endpoint}"

        try:
            headers = {
                'Authorization': f'Bearer {self.get_access_token()}',
                'Content-Type': 'application/json',
            }
            response = requests.post(url, json=data, headers=headers, timeout=self.timeout)

            if response.status_code == 401 and retry_on_auth:
                logger.warning(f"M-Pesa rejected cached token for {endpoint}, refreshing")
                self.invalidate_access_token()
                return self._make_request(endpoint, data, retry_on_auth=False)

            result = self._parse_json(response)

            if not response.ok:
                error_message = result.get('errorMessage', 'Unknown M-Pesa error')
                logger.error(f"M-Pesa API error: {error_message}", extra={
                    'endpoint': endpoint,
                    'status_code': response.status_code,
                    'response': result
                })
                raise MpesaError(
                    message=error_message,
                    code='API_ERROR',
                    details={'response': result, 'status_code': response.status_code}
                )

            return result

        except requests.exceptions.Timeout:
            logger.error(f"M-Pesa API timeout: {endpoint}")
            raise MpesaError(
                message="Payment gateway timeout. Please try again.",
                code='TIMEOUT'
            )
        except requests.exceptions.ConnectionError:
            logger.error(f"M-Pesa API connection error: {endpoint}")
            raise MpesaError(
                message="Unable to connect to payment gateway. Please try again.",
                code='CONNECTION_ERROR'
            )
        except MpesaError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected M-Pesa error: {e}")
            raise MpesaError(
                message="An unexpected error occurred. Please try again.",
                code='UNEXPECTED_ERROR',
                details={'error': str(e)}
            )

    # =========================================================================
    # STK PUSH
    # =========================================================================

    def initiate_stk_push(
        self,
        phone_number: str,
        amount,
        account_reference: str,
        transaction_desc: str,
        callback_url: str = None
    ) -> Dict[str, Any]:
        """
        Prompt the customer's phone for payment.

        Args:
            phone_number: Customer phone in any local format (0712..., +254712..., 712...)
            amount: Amount in KES; fractional shillings are rounded up
            account_reference: Shown to the customer, usually the order number
            transaction_desc: Short description of the payment
            callback_url: Overrides the configured callback URL

        Returns:
            Daraja response with MerchantRequestID, CheckoutRequestID,
            ResponseCode, ResponseDescription and CustomerMessage

        Raises:
            MpesaError: When the push request is rejected
        """
        phone = self.format_phone_number(phone_number)
        password, timestamp = self.generate_password()

        payload = {
            'BusinessShortCode': self.shortcode,
            'Password': password,
            'Timestamp': timestamp,
            'TransactionType': self.transaction_type,
            'Amount': self.to_whole_shillings(amount),
            'PartyA': phone,
            'PartyB': self.shortcode,
            'PhoneNumber': phone,
            'CallBackURL': callback_url or self.callback_url,
            'AccountReference': account_reference,
            'TransactionDesc': transaction_desc,
        }

        logger.info(f"Initiating STK push for {account_reference}", extra={
            'phone_number': phone,
            'amount': payload['Amount'],
        })

        result = self._make_request(self.STK_PUSH_ENDPOINT, payload)

        if str(result.get('ResponseCode', '')) != '0':
            error_message = result.get('ResponseDescription') or result.get(
                'errorMessage', 'STK push was not accepted'
            )
            logger.error(f"STK push rejected for {account_reference}: {error_message}", extra={
                'response': result
            })
            raise MpesaError(
                message=error_message,
                code='API_ERROR',
                details={'response': result}
            )

        logger.info(
            f"STK push accepted for {account_reference}. "
            f"CheckoutRequestID: {result.get('CheckoutRequestID')}"
        )
        return result

    def query_stk_status(self, checkout_request_id: str) -> Dict[str, Any]:
        """
        Ask Daraja for the state of an STK push.

        Returns:
            Daraja response with ResultCode and ResultDesc once the customer has acted

        Raises:
            MpesaError: On API errors
        """
        password, timestamp = self.generate_password()

        payload = {
            'BusinessShortCode': self.shortcode,
            'Password': password,
            'Timestamp': timestamp,
            'CheckoutRequestID': checkout_request_id,
        }

        return self._make_request(self.STK_QUERY_ENDPOINT, payload)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def format_phone_number(phone: str) -> str:
        """
        Normalize a Kenyan phone number to 254XXXXXXXXX.

        0712345678, +254712345678, 254712345678 and 712345678 all become
        254712345678. Applying it twice gives the same result.
        """
        phone = ''.join(str(phone).split())

        if phone.startswith('0'):
            phone = '254' + phone[1:]
        elif phone.startswith('+254'):
            phone = phone[1:]
        elif not phone.startswith('254'):
            phone = '254' + phone

        return phone

    @staticmethod
    def to_whole_shillings(amount) -> int:
        """Daraja only accepts whole shillings; round up."""
        return int(math.ceil(Decimal(str(amount))))
