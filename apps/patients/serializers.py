# apps/patients/serializers.py
from rest_framework import serializers
from django.utils import timezone

from .models import Patient


class PatientSerializer(serializers.ModelSerializer):
    insurance_name = serializers.CharField(source='insurance.name', read_only=True, default=None)
    age = serializers.SerializerMethodField()

    class Meta:
        model = Patient
        fields = [
            'id', 'patient_number', 'name', 'cedula', 'phone', 'email',
            'nationality', 'birth_date', 'age', 'address',
            'insurance', 'insurance_name', 'insurance_member_id',
            'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'patient_number', 'is_active', 'created_at', 'updated_at']

    def get_age(self, obj):
        if not obj.birth_date:
            return None
        today = timezone.now().date()
        return today.year - obj.birth_date.year - (
            (today.month, today.day) < (obj.birth_date.month, obj.birth_date.day)
        )

    def validate_birth_date(self, value):
        if value and value > timezone.now().date():
            raise serializers.ValidationError("Date of birth cannot be in the future")
        return value

    def validate_insurance(self, value):
        if value and not value.is_active:
            raise serializers.ValidationError("Insurance plan is inactive")
        return value
