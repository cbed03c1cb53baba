from django.apps import AppConfig


class InsuranceConfig(AppConfig):
    name = 'apps.insurance'
    verbose_name = 'Insurance & Coverage'
    default_auto_field = 'django.db.models.BigAutoField'
