# apps/reports/urls.py

from django.urls import path
from .views import (
    InvoiceStatsAPIView,
    ExonerationReportAPIView,
    AgingReportAPIView,
    InsuranceReportAPIView,
    InvoiceExportAPIView,
    DailySalesAPIView,
)

urlpatterns = [
    path('invoices/stats/', InvoiceStatsAPIView.as_view(), name='invoice-stats'),
    path('invoices/export/', InvoiceExportAPIView.as_view(), name='invoice-export'),
    path('exonerations/', ExonerationReportAPIView.as_view(), name='exoneration-report'),
    path('daily-sales/', DailySalesAPIView.as_view(), name='daily-sales'),
    path('aging/', AgingReportAPIView.as_view(), name='aging-report'),
    path('insurance/', InsuranceReportAPIView.as_view(), name='insurance-report'),
]
