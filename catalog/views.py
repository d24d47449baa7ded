"""
Catalog Views

Public product browsing plus the operator low-stock listing.
"""

from django.conf import settings
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions
from rest_framework.exceptions import ValidationError

from accounts.permissions import IsShopAdmin
from .models import Product
from .serializers import ProductSerializer, LowStockProductSerializer


class ProductListView(generics.ListAPIView):
    """
    GET /api/products/

    Filters: ?category=chick|layer|broiler, ?is_available=true|false
    """
    serializer_class = ProductSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['category', 'is_available']
    queryset = Product.objects.all()


class ProductDetailView(generics.RetrieveAPIView):
    """GET /api/products/<id>/"""
    serializer_class = ProductSerializer
    permission_classes = [permissions.AllowAny]
    queryset = Product.objects.all()


class LowStockProductsView(generics.ListAPIView):
    """
    GET /api/admin/products/low-stock/?threshold=10

    Products whose remaining stock is below the threshold.
    """
    serializer_class = LowStockProductSerializer
    permission_classes = [IsShopAdmin]

    def get_threshold(self):
        raw = self.request.query_params.get('threshold')
        if raw is None:
            return settings.LOW_STOCK_THRESHOLD
        try:
            threshold = int(raw)
        except ValueError:
            raise ValidationError({'threshold': 'Must be a whole number.'})
        if threshold < 0:
            raise ValidationError({'threshold': 'Must not be negative.'})
        return threshold

    def get_queryset(self):
        return Product.objects.filter(
            quantity__lt=self.get_threshold()
        ).order_by('quantity', 'name')
