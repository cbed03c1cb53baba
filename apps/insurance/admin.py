from django.contrib import admin
from .models import Insurance, InsuranceCoverage


class InsuranceCoverageInline(admin.TabularInline):
    model = InsuranceCoverage
    extra = 0
    raw_id_fields = ('service',)
    fields = ('service', 'coverage_percent', 'is_active')


@admin.register(Insurance)
class InsuranceAdmin(admin.ModelAdmin):
    list_display = ('name', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name',)
    inlines = [InsuranceCoverageInline]


@admin.register(InsuranceCoverage)
class InsuranceCoverageAdmin(admin.ModelAdmin):
    list_display = ('insurance', 'service', 'coverage_percent', 'is_active')
    list_filter = ('insurance', 'is_active')
    search_fields = ('insurance__name', 'service__name', 'service__code')
