# apps/billing/admin.py

from django.contrib import admin
from .models import Invoice, InvoiceItem, InvoiceExoneration, DocumentSequence


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    can_delete = False
    readonly_fields = ('service', 'description', 'quantity', 'unit_price', 'line_total')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    """Ledger fields are read-only; use the API services to change money state"""
    list_display = ('invoice_number', 'patient', 'status', 'total_amount',
                    'paid_amount', 'pending_amount', 'created_at')
    list_filter = ('status', 'is_cancelled', 'insurance', 'created_at')
    search_fields = ('invoice_number', 'patient__name', 'patient__patient_number')
    readonly_fields = ('invoice_number', 'patient', 'insurance', 'total_amount', 'paid_amount',
                       'pending_amount', 'status', 'insurance_calculation', 'is_cancelled',
                       'cancelled_at', 'cancelled_by', 'cancel_reason', 'paid_at', 'version',
                       'created_at', 'updated_at', 'created_by', 'updated_by')
    inlines = [InvoiceItemInline]

    fieldsets = (
        ('Basic Info', {
            'fields': ('invoice_number', 'patient', 'insurance', 'status', 'due_date', 'notes')
        }),
        ('Financials', {
            'fields': ('total_amount', 'paid_amount', 'pending_amount', 'insurance_calculation', 'paid_at')
        }),
        ('Cancellation', {
            'fields': ('is_cancelled', 'cancelled_at', 'cancelled_by', 'cancel_reason'),
            'classes': ('collapse',)
        }),
        ('Audit', {
            'fields': ('version', 'created_at', 'updated_at', 'created_by', 'updated_by'),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(InvoiceExoneration)
class InvoiceExonerationAdmin(admin.ModelAdmin):
    list_display = ('invoice', 'original_amount', 'exonerated_amount', 'authorized_by',
                    'is_printed', 'created_at')
    list_filter = ('is_printed', 'created_at')
    search_fields = ('invoice__invoice_number', 'reason', 'authorization_code')
    readonly_fields = [f.name for f in InvoiceExoneration._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    list_display = ('prefix', 'last_value')
    readonly_fields = ('prefix', 'last_value')
