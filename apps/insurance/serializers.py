# apps/insurance/serializers.py
from rest_framework import serializers

from .models import Insurance, InsuranceCoverage


class InsuranceSerializer(serializers.ModelSerializer):
    coverage_count = serializers.SerializerMethodField()

    class Meta:
        model = Insurance
        fields = ['id', 'name', 'description', 'is_active', 'coverage_count', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_coverage_count(self, obj):
        return obj.coverages.filter(is_active=True).count()


class InsuranceCoverageSerializer(serializers.ModelSerializer):
    insurance_name = serializers.CharField(source='insurance.name', read_only=True)
    service_name = serializers.CharField(source='service.name', read_only=True)
    service_code = serializers.CharField(source='service.code', read_only=True)

    class Meta:
        model = InsuranceCoverage
        fields = [
            'id', 'insurance', 'insurance_name', 'service', 'service_name', 'service_code',
            'coverage_percent', 'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        # create() upserts on the pair, so skip the unique-together check
        validators = []

    def create(self, validated_data):
        rule, created = InsuranceCoverage.objects.update_or_create(
            insurance=validated_data['insurance'],
            service=validated_data['service'],
            defaults={
                'coverage_percent': validated_data['coverage_percent'],
                'is_active': validated_data.get('is_active', True),
                'updated_by': validated_data.get('created_by'),
            },
        )
        if created and validated_data.get('created_by'):
            rule.created_by = validated_data['created_by']
            rule.save(update_fields=['created_by'])
        self._created = created
        return rule


# ===========================================
# COVERAGE PREVIEW
# ===========================================
class ServiceLineSerializer(serializers.Serializer):
    service_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    unit_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True
    )


class CoverageRequestSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField()
    insurance_id = serializers.IntegerField(required=False, allow_null=True)
    services = ServiceLineSerializer(many=True, allow_empty=False)


class CoverageLineSerializer(serializers.Serializer):
    service_id = serializers.IntegerField()
    service_name = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    base_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    coverage_percent = serializers.DecimalField(max_digits=5, decimal_places=2)
    insurance_covers = serializers.DecimalField(max_digits=12, decimal_places=2)
    patient_pays = serializers.DecimalField(max_digits=12, decimal_places=2)


class InsuranceCalculationSerializer(serializers.Serializer):
    insurance_id = serializers.IntegerField(allow_null=True)
    insurance_name = serializers.CharField(allow_blank=True)
    items = CoverageLineSerializer(many=True)
    total_base_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_insurance_covers = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_patient_pays = serializers.DecimalField(max_digits=12, decimal_places=2)
