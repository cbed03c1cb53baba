from django.contrib import admin
from .models import Service


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'category', 'price', 'is_active')
    list_filter = ('category', 'is_active')
    search_fields = ('code', 'name')
    readonly_fields = ('created_at', 'updated_at')
