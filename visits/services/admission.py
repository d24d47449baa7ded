"""
Visit Admission

Admits farm-visit bookings against a per-day visitor cap. The capacity
check and the insert for a date run under one cache lock and one
transaction. Bookings from separate worker processes are only serialized
when the cache is shared (REDIS_ENABLED=True).
"""

import datetime
import logging
from typing import Dict, Optional, Union

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from core.exceptions import ConflictError, ForbiddenError, InvalidRequestError, NotFoundError
from core.locking import DistributedLock, validate_status_transition
from visits.models import Visit

logger = logging.getLogger(__name__)


DateLike = Union[datetime.date, datetime.datetime, str]


class VisitAdmissionService:
    """
    Usage:
        service = VisitAdmissionService()
        service.check_availability('2025-06-01')
        # {'available': True, 'spots_left': 5, 'total_visitors': 15}

        visit = service.schedule_visit(request.user, '2025-06-01', '10:00', 4)
    """

    def __init__(self, max_visitors_per_day: Optional[int] = None):
        if max_visitors_per_day is None:
            max_visitors_per_day = getattr(settings, 'MAX_VISITORS_PER_DAY', 20)
        self.max_visitors_per_day = max_visitors_per_day

    @staticmethod
    def to_date(value: DateLike) -> datetime.date:
        """
        Reduce a date, datetime or ISO string to a calendar date.

        Raises:
            InvalidRequestError: value is not a recognisable date
        """
        if isinstance(value, datetime.datetime):
            if timezone.is_aware(value):
                value = timezone.localtime(value)
            return value.date()

        if isinstance(value, datetime.date):
            return value

        if isinstance(value, str):
            try:
                parsed = parse_date(value.strip())
                if parsed is None:
                    parsed_dt = parse_datetime(value.strip())
                    if parsed_dt is not None:
                        return VisitAdmissionService.to_date(parsed_dt)
            except ValueError:
                parsed = None
            if parsed is not None:
                return parsed

        raise InvalidRequestError(f"Invalid date: {value}. Use YYYY-MM-DD.", code='INVALID_DATE')

    def _booked_visitors(self, visit_date: datetime.date) -> int:
        total = Visit.objects.filter(
            visit_date=visit_date,
            status__in=Visit.ACTIVE_STATUSES,
        ).aggregate(total=Sum('number_of_visitors'))['total']
        return total or 0

    def check_availability(self, visit_date: DateLike) -> Dict:
        """
        Visitor capacity for a whole day.

        Returns:
            {'available': bool, 'spots_left': int, 'total_visitors': int}
        """
        day = self.to_date(visit_date)
        total_visitors = self._booked_visitors(day)

        return {
            'available': total_visitors < self.max_visitors_per_day,
            'spots_left': self.max_visitors_per_day - total_visitors,
            'total_visitors': total_visitors,
        }

    def schedule_visit(self, user, visit_date: DateLike, visit_time: str,
                       number_of_visitors: int, purpose: str = 'tour',
                       notes: str = '') -> Visit:
        """
        Book a visit if the day still has room for the whole group.

        Raises:
            InvalidRequestError: Visitor count outside 1-10
            ConflictError: Not enough spots left on that day
            LockUnavailableError: Another booking for the day held the lock too long
        """
        if not isinstance(number_of_visitors, int) or isinstance(number_of_visitors, bool) or not (
            Visit.MIN_VISITORS <= number_of_visitors <= Visit.MAX_VISITORS
        ):
            raise InvalidRequestError(
                f"Number of visitors must be between {Visit.MIN_VISITORS} and {Visit.MAX_VISITORS}.",
                code='INVALID_VISITOR_COUNT'
            )

        day = self.to_date(visit_date)

        with DistributedLock(f"visits:{day.isoformat()}"):
            with transaction.atomic():
                availability = self.check_availability(day)

                if not availability['available'] or availability['spots_left'] < number_of_visitors:
                    logger.info(
                        f"Visit rejected for {day}: {number_of_visitors} requested, "
                        f"{availability['spots_left']} left",
                        extra={'user_id': str(user.id)}
                    )
                    raise ConflictError(
                        f"Sorry, only {max(availability['spots_left'], 0)} spots available on this date",
                        code='CAPACITY_EXCEEDED',
                        details=availability,
                    )

                visit = Visit.objects.create(
                    user=user,
                    visit_date=day,
                    visit_time=visit_time,
                    number_of_visitors=number_of_visitors,
                    purpose=purpose or 'tour',
                    notes=notes or '',
                )

                visit_id = str(visit.id)
                transaction.on_commit(lambda: self._queue_confirmation(visit_id))

        logger.info(f"Visit scheduled for {day} {visit_time} ({number_of_visitors} visitors)", extra={
            'visit_id': str(visit.id),
            'user_id': str(user.id),
        })
        return visit

    @staticmethod
    def _queue_confirmation(visit_id: str):
        from visits.tasks import send_visit_confirmation
        try:
            send_visit_confirmation.delay(visit_id)
        except Exception as exc:
            # The booking is already committed
            logger.error(f"Failed to queue confirmation for visit {visit_id}: {exc}")

    @transaction.atomic
    def cancel_visit(self, visit_id, requester) -> Visit:
        """
        Cancel the requester's own visit. The spots are free again immediately.

        Raises:
            NotFoundError: Visit does not exist
            ForbiddenError: Visit belongs to someone else
            ConflictError: Visit already took place
        """
        visit = self._get_visit(visit_id, lock=True)

        if visit.user_id != requester.id:
            raise ForbiddenError('You do not have access to this visit.')

        if visit.status == 'cancelled':
            return visit

        if visit.status == 'completed':
            raise ConflictError('This visit has already taken place.', code='VISIT_COMPLETED')

        visit.status = 'cancelled'
        visit.save(update_fields=['status', 'updated_at'])

        logger.info(f"Visit {visit.id} on {visit.visit_date} cancelled by {requester.username}")
        return visit

    @transaction.atomic
    def update_status(self, visit_id, status: str) -> Visit:
        """
        Operator status change: confirm, complete or cancel.

        Raises:
            NotFoundError: Visit does not exist
            StatusTransitionError: Transition not allowed from the current status
        """
        visit = self._get_visit(visit_id, lock=True)

        validate_status_transition(visit.status, status, Visit.VISIT_STATUS_TRANSITIONS, 'visit')

        if status != visit.status:
            previous = visit.status
            visit.status = status
            visit.save(update_fields=['status', 'updated_at'])
            logger.info(f"Visit {visit.id} moved from {previous} to {status}")

        return visit

    @staticmethod
    def _get_visit(visit_id, lock=False) -> Visit:
        queryset = Visit.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=visit_id)
        except (Visit.DoesNotExist, DjangoValidationError):
            raise NotFoundError('Visit not found.')
