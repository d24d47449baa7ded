"""
Farm visit endpoints and notification tasks.

Run with: pytest tests/test_visit_api.py -v
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone
from rest_framework import status

from visits.models import Visit


def future_day(days=30):
    return timezone.localdate() + timedelta(days=days)


def make_visit(user, count=2, day=None, status='pending'):
    return Visit.objects.create(
        user=user,
        visit_date=day or future_day(),
        visit_time='10:00',
        number_of_visitors=count,
        status=status,
    )


@pytest.mark.django_db
class TestAvailabilityEndpoint:

    def test_is_public(self, api_client, customer):
        make_visit(customer, count=6, day=future_day())

        response = api_client.get(f'/api/visits/availability/{future_day().isoformat()}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            'date': future_day().isoformat(),
            'available': True,
            'spots_left': 14,
            'total_visitors': 6,
            'max_visitors_per_day': 20,
        }

    def test_bad_date(self, api_client):
        response = api_client.get('/api/visits/availability/next-tuesday/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'INVALID_DATE'


@pytest.mark.django_db
class TestScheduleEndpoint:

    def payload(self, **overrides):
        data = {
            'visit_date': future_day().isoformat(),
            'visit_time': '10:00',
            'number_of_visitors': 4,
            'purpose': 'tour',
            'notes': 'First time visiting',
        }
        data.update(overrides)
        return data

    def test_schedule_visit(self, customer_client, customer):
        response = customer_client.post('/api/visits/', self.payload(), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['visit']['status'] == 'pending'
        assert response.data['visit']['number_of_visitors'] == 4
        assert Visit.objects.get().user == customer

    def test_requires_authentication(self, api_client):
        response = api_client.post('/api/visits/', self.payload(), format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_rejects_past_date(self, customer_client):
        yesterday = timezone.localdate() - timedelta(days=1)

        response = customer_client.post(
            '/api/visits/', self.payload(visit_date=yesterday.isoformat()), format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'visit_date' in response.data

    @pytest.mark.parametrize('count', [0, 11])
    def test_rejects_visitor_count_outside_range(self, customer_client, count):
        response = customer_client.post(
            '/api/visits/', self.payload(number_of_visitors=count), format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'number_of_visitors' in response.data

    def test_full_day_returns_conflict(self, customer_client, other_customer):
        make_visit(other_customer, count=10)
        make_visit(other_customer, count=8)

        response = customer_client.post(
            '/api/visits/', self.payload(number_of_visitors=3), format='json'
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data == {
            'error': 'Sorry, only 2 spots available on this date',
            'code': 'CAPACITY_EXCEEDED',
        }

    def test_lists_only_own_visits(self, customer_client, customer, other_customer):
        make_visit(customer)
        make_visit(other_customer)

        response = customer_client.get('/api/visits/')

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]['user'] == customer.id


@pytest.mark.django_db
class TestCancelEndpoint:

    def test_owner_can_cancel(self, customer_client, customer):
        visit = make_visit(customer)

        response = customer_client.put(f'/api/visits/{visit.id}/cancel/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['visit']['status'] == 'cancelled'

    def test_other_user_is_forbidden(self, customer_client, other_customer):
        visit = make_visit(other_customer)

        response = customer_client.put(f'/api/visits/{visit.id}/cancel/')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        visit.refresh_from_db()
        assert visit.status == 'pending'


@pytest.mark.django_db
class TestAdminVisitEndpoints:

    def test_customer_cannot_list_all_visits(self, customer_client):
        response = customer_client.get('/api/admin/visits/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_filter_by_status_and_date(self, admin_client, customer, other_customer):
        day = future_day(10)
        wanted = make_visit(customer, day=day)
        make_visit(other_customer, day=day, status='confirmed')
        make_visit(customer, day=future_day(11))

        response = admin_client.get(f'/api/admin/visits/?status=pending&date={day.isoformat()}')

        assert response.status_code == status.HTTP_200_OK
        assert [row['id'] for row in response.data] == [str(wanted.id)]

    def test_confirm_visit(self, admin_client, customer):
        visit = make_visit(customer)

        response = admin_client.put(
            f'/api/admin/visits/{visit.id}/status/', {'status': 'confirmed'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'confirmed'

    def test_invalid_transition(self, admin_client, customer):
        visit = make_visit(customer, status='cancelled')

        response = admin_client.put(
            f'/api/admin/visits/{visit.id}/status/', {'status': 'confirmed'}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'INVALID_TRANSITION'


@pytest.mark.django_db
class TestVisitTasks:

    def test_reminders_go_to_active_visits_tomorrow(self, customer, other_customer):
        from visits.tasks import send_visit_reminders

        tomorrow = timezone.localdate() + timedelta(days=1)
        pending = make_visit(customer, day=tomorrow)
        confirmed = make_visit(other_customer, day=tomorrow, status='confirmed')
        cancelled = make_visit(customer, day=tomorrow, status='cancelled')
        later = make_visit(customer, day=tomorrow + timedelta(days=1))

        result = send_visit_reminders()

        assert result == 'Sent 2 visit reminders'
        for visit, reminded in ((pending, True), (confirmed, True), (cancelled, False), (later, False)):
            visit.refresh_from_db()
            assert visit.reminder_sent is reminded

    def test_reminders_are_sent_once(self, customer):
        from visits.tasks import send_visit_reminders

        make_visit(customer, day=timezone.localdate() + timedelta(days=1))

        send_visit_reminders()
        assert send_visit_reminders() == 'Sent 0 visit reminders'

    def test_confirmation_sms(self, customer):
        from visits.tasks import send_visit_confirmation

        visit = make_visit(customer, count=3)

        with patch('visits.tasks.get_sms_service') as mock_service:
            mock_service.return_value.send_sms.return_value = {'success': True}
            send_visit_confirmation(str(visit.id))

        phone, message = mock_service.return_value.send_sms.call_args[0]
        assert phone == '+254712345678'
        assert '3' in message and '10:00' in message
        visit.refresh_from_db()
        assert visit.confirmation_sent is True
