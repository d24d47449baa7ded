"""
Shared pytest fixtures for the shop tests.
"""
import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear cache before and after each test (tokens and locks live there)."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        username='wanjiku',
        email='wanjiku@example.com',
        password='testpass123',
        first_name='Wanjiku',
        last_name='Kamau',
        phone='+254712345678',
    )


@pytest.fixture
def other_customer(db):
    return User.objects.create_user(
        username='otieno',
        email='otieno@example.com',
        password='testpass123',
        first_name='Otieno',
        last_name='Odhiambo',
        phone='+254722000111',
    )


@pytest.fixture
def shop_admin(db):
    return User.objects.create_user(
        username='shop_admin',
        email='admin@gmchicks.example',
        password='testpass123',
        role=User.UserRole.ADMIN,
    )


@pytest.fixture
def customer_client(api_client, customer):
    api_client.force_authenticate(user=customer)
    return api_client


@pytest.fixture
def admin_client(api_client, shop_admin):
    api_client.force_authenticate(user=shop_admin)
    return api_client


@pytest.fixture
def layer_chicks(db):
    from catalog.models import Product

    return Product.objects.create(
        name='Kuroiler Day-old Chicks',
        description='Vaccinated day-old Kuroiler chicks.',
        category='chick',
        breed='Kuroiler',
        age='1 day',
        age_in_days=1,
        price=Decimal('100.00'),
        quantity=500,
    )


@pytest.fixture
def broilers(db):
    from catalog.models import Product

    return Product.objects.create(
        name='Ross 308 Broilers',
        description='Market-ready broilers.',
        category='broiler',
        breed='Ross 308',
        age='6 weeks',
        age_in_days=42,
        price=Decimal('650.00'),
        quantity=40,
    )


@pytest.fixture
def order(db, customer, layer_chicks, broilers):
    """Unpaid order: 10 chicks + 2 broilers = KES 2,300."""
    from orders.models import Order, OrderItem

    order = Order.objects.create(user=customer, delivery_city='Nakuru')
    OrderItem.objects.create(order=order, product=layer_chicks, quantity=10)
    OrderItem.objects.create(order=order, product=broilers, quantity=2)
    order.calculate_totals()
    order.add_status_history('pending', 'Order placed')
    return order


@pytest.fixture
def payment_attempt(db, order):
    from payments.models import PaymentAttempt

    order.phone_number = '254712345678'
    order.save(update_fields=['phone_number'])

    return PaymentAttempt.objects.create(
        order=order,
        checkout_request_id='ws_CO_01062025101500123456',
        merchant_request_id='29115-34620561-1',
        phone_number='254712345678',
        amount=order.total_amount,
    )


def build_stk_callback(checkout_request_id, result_code=0, result_desc=None,
                       amount=2300, receipt='QK6123ABCD', phone=254712345678,
                       include_metadata=True):
    """Daraja STK callback body as posted to the callback URL."""
    stk_callback = {
        'MerchantRequestID': '29115-34620561-1',
        'CheckoutRequestID': checkout_request_id,
        'ResultCode': result_code,
        'ResultDesc': result_desc or (
            'The service request is processed successfully.' if result_code == 0
            else 'Request cancelled by user'
        ),
    }
    if include_metadata and result_code == 0:
        stk_callback['CallbackMetadata'] = {
            'Item': [
                {'Name': 'Amount', 'Value': amount},
                {'Name': 'MpesaReceiptNumber', 'Value': receipt},
                {'Name': 'Balance'},
                {'Name': 'TransactionDate', 'Value': 20250601101530},
                {'Name': 'PhoneNumber', 'Value': phone},
            ]
        }
    return {'Body': {'stkCallback': stk_callback}}


@pytest.fixture
def stk_callback():
    return build_stk_callback
