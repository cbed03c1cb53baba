# tests/conftest.py
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.accounts.models import User
from apps.catalog.models import Service
from apps.insurance.models import Insurance, InsuranceCoverage
from apps.patients.models import Patient
from core.constants import UserRoles


def make_user(email, role, **extra):
    return User.objects.create_user(
        email=email,
        password='pass12345',
        full_name=email.split('@')[0].title(),
        role=role,
        **extra
    )


# ===========================================
# USERS
# ===========================================
@pytest.fixture
def admin_user(db):
    return make_user('admin@clinic.test', UserRoles.ADMIN)


@pytest.fixture
def billing_user(db):
    return make_user('billing@clinic.test', UserRoles.BILLING)


@pytest.fixture
def doctor_user(db):
    return make_user('doctor@clinic.test', UserRoles.DOCTOR)


# ===========================================
# API CLIENTS
# ===========================================
@pytest.fixture
def api_client():
    return APIClient()


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def billing_client(billing_user):
    return _client_for(billing_user)


@pytest.fixture
def doctor_client(doctor_user):
    return _client_for(doctor_user)


# ===========================================
# DIRECTORY DATA
# ===========================================
@pytest.fixture
def consultation(db):
    return Service.objects.create(code='CONS', name='Consultation', category='General', price=Decimal('1000.00'))


@pytest.fixture
def lab_test(db):
    return Service.objects.create(code='LAB', name='Blood test', category='Laboratory', price=Decimal('500.00'))


@pytest.fixture
def insurance(db, consultation, lab_test):
    plan = Insurance.objects.create(name='Salud Segura')
    InsuranceCoverage.objects.create(insurance=plan, service=consultation, coverage_percent=Decimal('80'))
    InsuranceCoverage.objects.create(insurance=plan, service=lab_test, coverage_percent=Decimal('50'))
    return plan


@pytest.fixture
def patient(db):
    return Patient.objects.create(name='Ana Perez', cedula='001-0000001-1', phone='8095550001')


@pytest.fixture
def insured_patient(db, insurance):
    return Patient.objects.create(name='Luis Gomez', cedula='001-0000002-2', insurance=insurance)


@pytest.fixture
def invoice(patient, consultation, billing_user):
    """Self-pay invoice owing 1000.00"""
    from apps.billing.services import InvoiceService

    return InvoiceService.create_invoice(
        patient_id=patient.pk,
        items=[{'service_id': consultation.pk, 'quantity': 1}],
        created_by=billing_user,
    )
