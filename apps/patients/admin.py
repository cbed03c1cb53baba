from django.contrib import admin
from .models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_number', 'name', 'cedula', 'phone', 'insurance', 'is_active')
    list_filter = ('insurance', 'is_active', 'nationality')
    search_fields = ('patient_number', 'name', 'cedula', 'phone')
    readonly_fields = ('patient_number', 'created_at', 'updated_at')
    raw_id_fields = ('insurance',)

    fieldsets = (
        ('Personal Info', {
            'fields': ('patient_number', 'name', 'cedula', 'birth_date', 'nationality')
        }),
        ('Contact', {
            'fields': ('phone', 'email', 'address'),
        }),
        ('Insurance', {
            'fields': ('insurance', 'insurance_member_id'),
        }),
        ('Status', {
            'fields': ('is_active', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
