# core/constants.py

from django.db import models


class UserRoles(models.TextChoices):
    """User role constants for RBAC"""
    ADMIN = 'ADMIN', 'Administrator'
    BILLING = 'BILLING', 'Billing'
    DOCTOR = 'DOCTOR', 'Doctor'
    RECEPTIONIST = 'RECEPTIONIST', 'Receptionist'


# Roles allowed to touch invoice money (payments, exonerations, coverage rules)
BILLING_ROLES = (UserRoles.ADMIN, UserRoles.BILLING)


class InvoiceStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PARTIAL = 'PARTIAL', 'Partially Paid'
    PAID = 'PAID', 'Paid'
    CANCELLED = 'CANCELLED', 'Cancelled'
    EXONERATED = 'EXONERATED', 'Exonerated'


TERMINAL_STATUSES = frozenset({InvoiceStatus.CANCELLED, InvoiceStatus.EXONERATED})
OPEN_STATUSES = frozenset({InvoiceStatus.PENDING, InvoiceStatus.PARTIAL})


class PaymentMethods(models.TextChoices):
    CASH = 'CASH', 'Cash'
    CARD = 'CARD', 'Credit/Debit Card'
    TRANSFER = 'TRANSFER', 'Bank Transfer'
    CHECK = 'CHECK', 'Check'
    INSURANCE = 'INSURANCE', 'Insurance'
    OTHER = 'OTHER', 'Other'


class AuditActions:
    """Audit log action types"""
    CREATE = 'CREATE'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'
    APPROVE = 'APPROVE'

    CHOICES = [
        (CREATE, 'Create'),
        (UPDATE, 'Update'),
        (DELETE, 'Delete'),
        (APPROVE, 'Approve'),
    ]
