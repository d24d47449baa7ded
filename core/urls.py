"""
URL configuration for the GM Chicks backend.
"""
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

from catalog.urls import admin_urlpatterns as catalog_admin_urls
from orders.urls import admin_urlpatterns as order_admin_urls
from visits.urls import admin_urlpatterns as visit_admin_urls
from core.views import HealthCheckView

urlpatterns = [
    path('', RedirectView.as_view(url='/admin/', permanent=False)),
    path('admin/', admin.site.urls),
    path('health/', HealthCheckView.as_view(), name='health'),
    path('api/auth/', include('accounts.urls')),
    path('api/products/', include('catalog.urls')),  # Public catalog
    path('api/orders/', include('orders.urls')),  # Checkout and order history
    path('api/payments/', include('payments.urls')),  # M-Pesa STK push and callback
    path('api/visits/', include('visits.urls')),  # Farm visit booking
    path('api/vaccinations/', include('vaccinations.urls')),  # Public vaccination guide
    path('api/admin/products/', include((catalog_admin_urls, 'admin_catalog'))),  # Stock checks
    path('api/admin/orders/', include((order_admin_urls, 'admin_orders'))),  # Order fulfillment
    path('api/admin/visits/', include((visit_admin_urls, 'admin_visits'))),  # Visit confirmation
]
