from django.contrib import admin
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Payments are append-only; admin is read-only"""
    list_display = ('payment_number', 'invoice', 'amount', 'method', 'received_by', 'received_at', 'is_printed')
    list_filter = ('method', 'is_printed', 'received_at')
    search_fields = ('payment_number', 'invoice__invoice_number', 'reference')
    date_hierarchy = 'received_at'
    readonly_fields = [f.name for f in Payment._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
