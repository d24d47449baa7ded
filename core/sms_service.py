"""
Africa's Talking SMS Service for Kenya.
Sends booking confirmations, visit reminders and payment receipts.

Official API Documentation:
https://developers.africastalking.com/docs/sms/sending/bulk
"""
import requests
import logging
from typing import Dict, Optional
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


class SMSService:
    """
    Service for sending SMS via the Africa's Talking messaging API.

    When SMS_ENABLED is off or no API key is configured, messages are
    logged instead of sent so development and tests never hit the network.
    """

    LIVE_URL = "https://api.africastalking.com/version1/messaging"
    SANDBOX_URL = "https://api.sandbox.africastalking.com/version1/messaging"

    # Recipient statusCode values that mean the message was accepted
    ACCEPTED_STATUS_CODES = (100, 101, 102)

    def __init__(self):
        """Initialize SMS service with credentials from settings."""
        self.username = getattr(settings, 'AFRICASTALKING_USERNAME', 'sandbox')
        self.api_key = getattr(settings, 'AFRICASTALKING_API_KEY', None)
        self.sender_id = getattr(settings, 'AFRICASTALKING_SENDER_ID', '')
        self.enabled = getattr(settings, 'SMS_ENABLED', False)

        if not self.api_key:
            logger.warning("Africa's Talking credentials not configured. SMS sending will be simulated.")

    @property
    def api_url(self) -> str:
        return self.SANDBOX_URL if self.username == 'sandbox' else self.LIVE_URL

    def send_sms(self, phone_number: str, message: str, reference: Optional[str] = None) -> Dict:
        """
        Send an SMS.

        Args:
            phone_number: Recipient phone number, any Kenyan format
            message: SMS message content
            reference: Optional reference (order number, visit id) for the logs

        Returns:
            dict: success flag, message_id and error info
        """
        phone_number = self._normalize_phone_number(phone_number)

        if not self.enabled or not self.api_key:
            return self._simulate_sms(phone_number, message, reference)

        payload = {
            'username': self.username,
            'to': phone_number,
            'message': message,
        }
        if self.sender_id:
            payload['from'] = self.sender_id

        try:
            response = requests.post(
                self.api_url,
                data=payload,
                headers={
                    'apiKey': self.api_key,
                    'Accept': 'application/json',
                },
                timeout=10
            )

            data = response.json() if response.content else {}
            recipients = data.get('SMSMessageData', {}).get('Recipients', [])
            recipient = recipients[0] if recipients else {}

            if response.status_code == 201 and recipient.get('statusCode') in self.ACCEPTED_STATUS_CODES:
                logger.info(
                    f"SMS sent successfully to {phone_number}. "
                    f"MessageId: {recipient.get('messageId')}, Cost: {recipient.get('cost')}",
                    extra={'reference': reference}
                )
                return {
                    'success': True,
                    'message_id': recipient.get('messageId'),
                    'status': recipient.get('status'),
                    'cost': recipient.get('cost'),
                    'phone_number': phone_number,
                    'timestamp': timezone.now().isoformat(),
                }

            error_message = (
                recipient.get('status')
                or data.get('SMSMessageData', {}).get('Message')
                or response.text
                or 'Unknown error'
            )
            logger.error(
                f"Failed to send SMS to {phone_number}. "
                f"Status: {response.status_code}, Error: {error_message}",
                extra={'reference': reference}
            )
            return {
                'success': False,
                'error': error_message,
                'status_code': response.status_code,
                'phone_number': phone_number,
                'timestamp': timezone.now().isoformat(),
            }

        except requests.exceptions.Timeout:
            logger.error(f"Timeout sending SMS to {phone_number}")
            return {
                'success': False,
                'error': 'Request timeout',
                'phone_number': phone_number,
                'timestamp': timezone.now().isoformat(),
            }

        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Error sending SMS to {phone_number}: {str(e)}")
            return {
                'success': False,
                'error': str(e),
                'phone_number': phone_number,
                'timestamp': timezone.now().isoformat(),
            }

    def _normalize_phone_number(self, phone: str) -> str:
        """
        Normalize a Kenyan phone number to E.164.

        Examples:
            0712345678 -> +254712345678
            254712345678 -> +254712345678
            +254712345678 -> +254712345678
        """
        phone = ''.join(str(phone).split()).replace('-', '')

        if phone.startswith('+'):
            return phone
        if phone.startswith('0'):
            phone = phone[1:]
        if not phone.startswith('254'):
            phone = f'254{phone}'

        return f'+{phone}'

    def _simulate_sms(self, phone_number: str, message: str, reference: Optional[str]) -> Dict:
        """Simulate SMS sending for development/testing."""
        logger.info(
            f"\n{'='*60}\n"
            f"SIMULATED SMS\n"
            f"To: {phone_number}\n"
            f"Reference: {reference or '-'}\n"
            f"Message: {message}\n"
            f"{'='*60}\n"
        )

        return {
            'success': True,
            'message_id': f'SIM-{timezone.now().timestamp():.0f}',
            'status': 'simulated',
            'phone_number': phone_number,
            'timestamp': timezone.now().isoformat(),
            'simulated': True,
        }


# Singleton instance
_sms_service = None


def get_sms_service() -> SMSService:
    """Get or create singleton SMS service instance."""
    global _sms_service
    if _sms_service is None:
        _sms_service = SMSService()
    return _sms_service
