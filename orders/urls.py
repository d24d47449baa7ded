from django.urls import path

from .views import (
    OrderListCreateView,
    OrderDetailView,
    CancelOrderView,
    AdminOrderListView,
    AdminOrderStatusUpdateView,
)

app_name = 'orders'

urlpatterns = [
    path('', OrderListCreateView.as_view(), name='order-list'),
    path('<uuid:pk>/', OrderDetailView.as_view(), name='order-detail'),
    path('<uuid:pk>/cancel/', CancelOrderView.as_view(), name='order-cancel'),
]

admin_urlpatterns = [
    path('', AdminOrderListView.as_view(), name='admin-order-list'),
    path('<uuid:pk>/status/', AdminOrderStatusUpdateView.as_view(), name='admin-order-status'),
]
