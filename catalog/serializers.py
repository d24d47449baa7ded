from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    category_display = serializers.CharField(source='get_category_display', read_only=True)
    in_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'category', 'category_display',
            'breed', 'age', 'age_in_days', 'price', 'quantity', 'sold',
            'weight', 'features', 'images', 'is_available', 'in_stock',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class LowStockProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'name', 'category', 'quantity', 'sold', 'is_available']
        read_only_fields = fields
