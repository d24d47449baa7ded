"""
Shop permissions.
"""
from rest_framework import permissions


class IsShopAdmin(permissions.BasePermission):
    """
    Operator endpoints: order fulfillment, visit confirmation, stock checks.
    """
    message = 'Admin access required.'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.is_shop_admin
        )
