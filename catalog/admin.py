from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'breed', 'price', 'quantity', 'sold', 'is_available', 'created_at')
    list_filter = ('category', 'is_available')
    search_fields = ('name', 'breed', 'description')
    readonly_fields = ('sold', 'created_at', 'updated_at')
    ordering = ('-created_at',)
