from django.apps import AppConfig


class BillingConfig(AppConfig):
    name = 'apps.billing'
    verbose_name = 'Billing Management'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        """Import signals when app is ready"""
        from . import signals  # noqa: F401
