"""
Visit notification tasks.
"""
from celery import shared_task
from datetime import timedelta
from django.utils import timezone
import logging

from core.sms_service import get_sms_service

logger = logging.getLogger(__name__)


def _visit_phone(visit):
    return str(visit.user.phone) if visit.user.phone else ''


@shared_task(bind=True, max_retries=3)
def send_visit_confirmation(self, visit_id):
    """
    SMS the customer that their booking was received.

    Args:
        visit_id: UUID of the Visit
    """
    from visits.models import Visit

    try:
        visit = Visit.objects.select_related('user').get(id=visit_id)
    except Visit.DoesNotExist:
        return f"Visit {visit_id} not found"

    if visit.confirmation_sent:
        return f"Confirmation already sent for visit {visit_id}"

    phone = _visit_phone(visit)
    if not phone:
        logger.info(f"No phone number for visit {visit_id}, skipping confirmation SMS")
        return f"No phone number for visit {visit_id}"

    message = (
        f"Hi {visit.user.get_full_name()}, your GM Chicks farm visit for "
        f"{visit.number_of_visitors} on {visit.visit_date:%d %b %Y} at {visit.visit_time} "
        f"has been received. We will confirm shortly."
    )

    result = get_sms_service().send_sms(phone, message, reference=str(visit.id))
    if not result.get('success'):
        raise self.retry(exc=Exception(result.get('error', 'SMS failed')), countdown=60)

    Visit.objects.filter(pk=visit.pk).update(confirmation_sent=True)
    return f"Confirmation sent for visit {visit_id}"


@shared_task
def send_visit_reminders():
    """
    Remind customers with an active booking tomorrow.

    Runs hourly from celery beat. Each visit is reminded at most once.
    """
    from visits.models import Visit

    tomorrow = timezone.localdate() + timedelta(days=1)
    visits = Visit.objects.select_related('user').filter(
        visit_date=tomorrow,
        status__in=Visit.ACTIVE_STATUSES,
        reminder_sent=False,
    )

    sms_service = get_sms_service()
    sent = 0

    for visit in visits:
        phone = _visit_phone(visit)
        if not phone:
            continue

        message = (
            f"Reminder: your GM Chicks farm visit is tomorrow, {visit.visit_date:%d %b %Y} "
            f"at {visit.visit_time} for {visit.number_of_visitors}. See you then!"
        )
        result = sms_service.send_sms(phone, message, reference=str(visit.id))

        if result.get('success'):
            Visit.objects.filter(pk=visit.pk).update(reminder_sent=True)
            sent += 1
        else:
            logger.error(f"Failed to send reminder for visit {visit.id}: {result.get('error')}")

    logger.info(f"Sent {sent} visit reminders for {tomorrow}")
    return f"Sent {sent} visit reminders"
