# apps/patients/models.py
from django.db import models
from core.mixins.audit_fields import AuditFieldsMixin
from core.mixins.soft_delete import SoftDeleteMixin


class Patient(AuditFieldsMixin, SoftDeleteMixin, models.Model):
    """Patient directory entry billed by the clinic"""

    patient_number = models.CharField(max_length=20, unique=True, blank=True)
    name = models.CharField(max_length=150)
    cedula = models.CharField(max_length=30, blank=True, db_index=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    nationality = models.CharField(max_length=60, blank=True)
    birth_date = models.DateField(null=True, blank=True)
    address = models.TextField(blank=True)

    # Active insurance plan; invoices snapshot coverage at creation time
    insurance = models.ForeignKey(
        'insurance.Insurance',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='patients'
    )
    insurance_member_id = models.CharField(max_length=60, blank=True)

    class Meta:
        db_table = 'patients'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['patient_number']),
            models.Index(fields=['name']),
        ]

    def __str__(self):
        return f"{self.name} ({self.patient_number or 'N/A'})"

    def save(self, *args, **kwargs):
        if not self.patient_number:
            # PAT-000001
            last_patient = Patient.objects.filter(
                patient_number__startswith='PAT-'
            ).order_by('patient_number').last()

            if last_patient:
                new_num = int(last_patient.patient_number.split('-')[-1]) + 1
            else:
                new_num = 1

            self.patient_number = f'PAT-{new_num:06d}'

        super().save(*args, **kwargs)
