# core/permissions.py

from rest_framework.permissions import BasePermission
from rest_framework import permissions


class IsAuthenticatedAndActive(BasePermission):
    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and request.user.is_active
        )


class IsBillingStaff(permissions.BasePermission):
    """Invoices, payments, exonerations and coverage rules"""
    message = 'Only billing staff can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated and user.is_active):
            return False
        return user.is_billing_staff


class IsAdmin(permissions.BasePermission):
    message = 'Only administrators can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated and user.is_active):
            return False
        return user.is_admin


class IsBillingStaffOrReadOnly(permissions.BasePermission):
    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return IsAuthenticatedAndActive().has_permission(request, view)
        return IsBillingStaff().has_permission(request, view)
