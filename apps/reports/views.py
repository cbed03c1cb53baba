# apps/reports/views.py

import logging
from datetime import timedelta

from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.billing.serializers import ExonerationSerializer, InvoiceListSerializer
from core.permissions import IsBillingStaff
from core.utils.excel_export import export_multiple_sheets, export_to_csv
from .serializers import DailySalesFilterSerializer, ReportFilterSerializer
from .services import (
    ReportService,
    aging_report,
    collection_rate,
    growth,
    insurance_summary,
    sales_by_service,
    summarize_exonerations,
    summarize_invoices,
)

logger = logging.getLogger(__name__)


def _filters(request):
    serializer = ReportFilterSerializer(data=request.query_params.dict())
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class InvoiceStatsAPIView(APIView):
    """Today's figures next to the figures for the whole (optionally filtered) period"""
    permission_classes = [IsBillingStaff]

    def get(self, request):
        filters = _filters(request)
        today = timezone.localdate()

        invoices = list(ReportService.invoices(
            start_date=filters.get('start_date'),
            end_date=filters.get('end_date'),
            patient_id=filters.get('patient_id'),
        ))

        def by_day(day):
            return [inv for inv in invoices if timezone.localtime(inv.created_at).date() == day]

        today_summary = summarize_invoices(by_day(today))
        yesterday_summary = summarize_invoices(by_day(today - timedelta(days=1)))
        today_summary['billed_growth'] = growth(
            today_summary['total_billed'], yesterday_summary['total_billed']
        )

        overall = summarize_invoices(invoices)
        overall['collection_rate'] = collection_rate(invoices)

        return Response({
            'today': today_summary,
            'global': overall,
            'date': today,
        })


class ExonerationReportAPIView(APIView):
    permission_classes = [IsBillingStaff]

    def get(self, request):
        filters = _filters(request)
        exonerations = list(ReportService.exonerations(
            start_date=filters.get('start_date'),
            end_date=filters.get('end_date'),
            patient_id=filters.get('patient_id'),
            include_printed=filters.get('include_printed', True),
        ))

        return Response({
            'summary': summarize_exonerations(exonerations),
            'results': ExonerationSerializer(exonerations, many=True).data,
        })


class AgingReportAPIView(APIView):
    permission_classes = [IsBillingStaff]

    def get(self, request):
        filters = _filters(request)
        today = timezone.localdate()
        invoices = ReportService.invoices(
            start_date=filters.get('start_date'),
            end_date=filters.get('end_date'),
            patient_id=filters.get('patient_id'),
        )
        report = aging_report(invoices, today)
        report['date'] = today
        return Response(report)


class InsuranceReportAPIView(APIView):
    permission_classes = [IsBillingStaff]

    def get(self, request):
        filters = _filters(request)
        invoices = ReportService.invoices(
            start_date=filters.get('start_date'),
            end_date=filters.get('end_date'),
        ).filter(insurance_calculation__isnull=False)
        return Response({'results': insurance_summary(invoices)})


class DailySalesAPIView(APIView):
    """Per-service sales of paid invoices plus the invoices and exonerations of a day or range"""
    permission_classes = [IsBillingStaff]

    def get(self, request):
        serializer = DailySalesFilterSerializer(data=request.query_params.dict())
        serializer.is_valid(raise_exception=True)
        start = serializer.validated_data['start_date'] or timezone.localdate()
        end = serializer.validated_data['end_date'] or start

        invoices = list(ReportService.invoices(start_date=start, end_date=end))
        exonerations = list(ReportService.exonerations(start_date=start, end_date=end))
        services = sales_by_service(ReportService.sold_items(start, end))

        logger.info(f"Daily sales {start}..{end}: {len(invoices)} invoices, {len(services)} services")

        return Response({
            'date': str(start) if start == end else f"{start} - {end}",
            'start_date': start,
            'end_date': end,
            'summary': summarize_invoices(invoices),
            'exonerations': summarize_exonerations(exonerations),
            'services': services,
            'invoices': InvoiceListSerializer(invoices, many=True).data,
        })


class InvoiceExportAPIView(APIView):
    """
    Excel workbook with an invoice sheet and a summary sheet.
    `?file_type=csv` returns the invoice rows only, as CSV.
    """
    permission_classes = [IsBillingStaff]

    def get(self, request):
        filters = _filters(request)
        invoices = list(ReportService.invoices(
            start_date=filters.get('start_date'),
            end_date=filters.get('end_date'),
            patient_id=filters.get('patient_id'),
        ))
        rows = ReportService.invoice_export_rows(invoices)
        filename = f"invoices_{timezone.localdate():%Y%m%d}"

        logger.info(f"Invoice export: {len(invoices)} rows for {request.user.email}")

        if request.query_params.get('file_type') == 'csv':
            return export_to_csv(rows, filename=filename)

        summary = summarize_invoices(invoices)
        summary_rows = [{'Metric': key.replace('_', ' ').title(), 'Value': value} for key, value in summary.items()]
        return export_multiple_sheets({'Invoices': rows, 'Summary': summary_rows}, filename=filename)
