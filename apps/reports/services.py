# apps/reports/services.py
"""
Billing reports.

The module-level functions are pure folds over invoices and exonerations
that were already fetched; they do no I/O. ReportService does the fetching.
"""
from collections import OrderedDict
from decimal import Decimal

from core.constants import InvoiceStatus, OPEN_STATUSES
from core.utils.money import ZERO, HUNDRED, to_money

AGING_BUCKETS = (
    ('0-30', 0, 30),
    ('31-60', 31, 60),
    ('61-90', 61, 90),
    ('90+', 91, None),
)


def _exoneration(invoice):
    if hasattr(invoice, 'exoneration_or_none'):
        return invoice.exoneration_or_none
    return getattr(invoice, 'exoneration', None)


def _reference_date(invoice):
    if getattr(invoice, 'due_date', None):
        return invoice.due_date
    created = invoice.created_at
    return created.date() if hasattr(created, 'date') else created


# ===========================================
# PURE AGGREGATES
# ===========================================
def summarize_exonerations(exonerations):
    total = ZERO
    count = printed = 0
    for exoneration in exonerations:
        count += 1
        total += to_money(exoneration.exonerated_amount)
        if exoneration.is_printed:
            printed += 1
    return {
        'total_exonerated': total,
        'count': count,
        'printed_count': printed,
        'pending_print_count': count - printed,
    }


def summarize_invoices(invoices):
    """
    Status breakdown of a set of invoices.

    pending_total adds the full pending amount of PENDING invoices and only
    the remaining balance of PARTIAL ones, so nothing is counted twice.
    total_billed is what was actually collected: owed amount of PAID
    invoices plus paid amount of PARTIAL ones.
    """
    summary = {
        'total_invoices': 0,
        'total_billed': ZERO,
        'exonerated_count': 0,
        'exonerated_total': ZERO,
        'pending_count': 0,
        'pending_total': ZERO,
        'partial_count': 0,
        'partial_paid_total': ZERO,
        'paid_count': 0,
        'cancelled_count': 0,
    }

    for invoice in invoices:
        summary['total_invoices'] += 1
        status = invoice.status
        exoneration = _exoneration(invoice)

        if status == InvoiceStatus.EXONERATED or exoneration is not None:
            summary['exonerated_count'] += 1
            original = exoneration.original_amount if exoneration is not None else invoice.total_owed
            summary['exonerated_total'] += to_money(original)
        elif status == InvoiceStatus.PAID:
            summary['paid_count'] += 1
            summary['total_billed'] += to_money(invoice.total_owed)
        elif status == InvoiceStatus.PARTIAL:
            summary['partial_count'] += 1
            summary['partial_paid_total'] += to_money(invoice.paid_amount)
            summary['total_billed'] += to_money(invoice.paid_amount)
            summary['pending_total'] += to_money(invoice.pending_amount)
        elif status == InvoiceStatus.PENDING:
            summary['pending_count'] += 1
            summary['pending_total'] += to_money(invoice.pending_amount)
        elif status == InvoiceStatus.CANCELLED:
            summary['cancelled_count'] += 1

    return summary


def aging_report(invoices, today):
    """Outstanding balance of open invoices bucketed by days past due (or since issue)"""
    buckets = OrderedDict((name, {'count': 0, 'amount': ZERO}) for name, _, _ in AGING_BUCKETS)

    for invoice in invoices:
        if invoice.status not in OPEN_STATUSES:
            continue
        days = max(0, (today - _reference_date(invoice)).days)
        for name, low, high in AGING_BUCKETS:
            if days >= low and (high is None or days <= high):
                buckets[name]['count'] += 1
                buckets[name]['amount'] += to_money(invoice.pending_amount)
                break

    return {
        'buckets': buckets,
        'total_outstanding': sum((b['amount'] for b in buckets.values()), ZERO),
        'total_count': sum(b['count'] for b in buckets.values()),
    }


def collection_rate(invoices):
    """Percentage of the owed amount collected, cancelled invoices excluded"""
    owed = collected = ZERO
    for invoice in invoices:
        if invoice.status == InvoiceStatus.CANCELLED:
            continue
        owed += to_money(invoice.total_owed)
        collected += to_money(invoice.paid_amount)
    if owed <= ZERO:
        return ZERO
    return to_money(min(collected, owed) * HUNDRED / owed)


def insurance_summary(invoices):
    """Coverage totals per insurer, taken from each invoice's snapshot"""
    groups = {}
    for invoice in invoices:
        snapshot = invoice.insurance_calculation
        if not snapshot or invoice.status == InvoiceStatus.CANCELLED:
            continue
        name = snapshot.get('insurance_name') or 'Unknown'
        group = groups.setdefault(name, {
            'insurance_name': name,
            'invoice_count': 0,
            'total_base_amount': ZERO,
            'total_insurance_covers': ZERO,
            'total_patient_pays': ZERO,
        })
        group['invoice_count'] += 1
        group['total_base_amount'] += to_money(snapshot.get('total_base_amount'))
        group['total_insurance_covers'] += to_money(snapshot.get('total_insurance_covers'))
        group['total_patient_pays'] += to_money(snapshot.get('total_patient_pays'))

    return sorted(groups.values(), key=lambda g: g['total_insurance_covers'], reverse=True)


def sales_by_service(items):
    """
    Revenue and quantity per service over invoice items.

    invoice_count counts distinct invoices, not lines. Sorted by revenue,
    highest first.
    """
    groups = {}
    for item in items:
        service = item.service
        group = groups.setdefault(item.service_id, {
            'service_id': item.service_id,
            'service_name': service.name,
            'category': service.category,
            'total_quantity': 0,
            'total_revenue': ZERO,
            'invoices': set(),
        })
        group['total_quantity'] += item.quantity
        group['total_revenue'] += to_money(item.line_total)
        group['invoices'].add(item.invoice_id)

    results = []
    for group in groups.values():
        group['invoice_count'] = len(group.pop('invoices'))
        results.append(group)
    return sorted(results, key=lambda g: (-g['total_revenue'], g['service_name']))


def growth(current, previous):
    """Percent change from previous to current; None when both are zero"""
    current = Decimal(current)
    previous = Decimal(previous)
    if previous == 0:
        return None if current == 0 else Decimal('100.00')
    return to_money((current - previous) * HUNDRED / abs(previous))


# ===========================================
# QUERY SIDE
# ===========================================
class ReportService:
    """Fetches billing data for the report endpoints"""

    @staticmethod
    def invoices(start_date=None, end_date=None, patient_id=None):
        from apps.billing.models import Invoice

        queryset = Invoice.objects.select_related('patient', 'exoneration', 'insurance')
        if start_date:
            queryset = queryset.filter(created_at__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(created_at__date__lte=end_date)
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)
        return queryset.order_by('-created_at')

    @staticmethod
    def exonerations(start_date=None, end_date=None, patient_id=None, include_printed=True):
        from apps.billing.models import InvoiceExoneration

        queryset = InvoiceExoneration.objects.select_related(
            'invoice', 'invoice__patient', 'authorized_by'
        )
        if start_date:
            queryset = queryset.filter(created_at__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(created_at__date__lte=end_date)
        if patient_id:
            queryset = queryset.filter(invoice__patient_id=patient_id)
        if not include_printed:
            queryset = queryset.filter(is_printed=False)
        return queryset.order_by('-created_at')

    @staticmethod
    def sold_items(start_date, end_date):
        """Items of PAID invoices created in the period"""
        from apps.billing.models import InvoiceItem

        return InvoiceItem.objects.select_related('service').filter(
            invoice__status=InvoiceStatus.PAID,
            invoice__created_at__date__gte=start_date,
            invoice__created_at__date__lte=end_date,
        )

    @staticmethod
    def invoice_export_rows(invoices):
        rows = []
        for invoice in invoices:
            exoneration = _exoneration(invoice)
            rows.append({
                'Invoice': invoice.invoice_number,
                'Date': invoice.created_at,
                'Patient': invoice.patient.name,
                'Patient No.': invoice.patient.patient_number,
                'Status': invoice.get_status_display(),
                'Total': invoice.total_amount,
                'Insurance Covers': invoice.insurance_covers,
                'Patient Owes': invoice.total_owed,
                'Paid': invoice.paid_amount,
                'Pending': invoice.pending_amount,
                'Exonerated': exoneration.exonerated_amount if exoneration else ZERO,
            })
        return rows
