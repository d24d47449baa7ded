from django.urls import path

from .views import ProductListView, ProductDetailView, LowStockProductsView

app_name = 'catalog'

urlpatterns = [
    path('', ProductListView.as_view(), name='product-list'),
    path('<uuid:pk>/', ProductDetailView.as_view(), name='product-detail'),
]

admin_urlpatterns = [
    path('low-stock/', LowStockProductsView.as_view(), name='low-stock'),
]
