# apps/reports/serializers.py
from rest_framework import serializers


class ReportFilterSerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    patient_id = serializers.IntegerField(required=False)
    include_printed = serializers.BooleanField(required=False, default=True)

    def validate(self, data):
        start, end = data.get('start_date'), data.get('end_date')
        if start and end and start > end:
            raise serializers.ValidationError({'end_date': 'End date must be on or after start date'})
        return data


class DailySalesFilterSerializer(serializers.Serializer):
    """A single `date`, or a `start_date`/`end_date` range; defaults to today"""
    date = serializers.DateField(required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, data):
        start = data.get('start_date') or data.get('end_date')
        end = data.get('end_date') or data.get('start_date')
        if start is None:
            start = end = data.get('date')
        if start and end and start > end:
            raise serializers.ValidationError({'end_date': 'End date must be on or after start date'})
        data['start_date'], data['end_date'] = start, end
        return data
