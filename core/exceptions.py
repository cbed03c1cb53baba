# core/exceptions.py

import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# ===========================================
# BILLING ERROR TAXONOMY
# ===========================================
class BillingError(exceptions.APIException):
    """Base class for every error raised by the billing services"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Billing operation failed.'
    default_code = 'billing_error'


class ValidationError(BillingError):
    """Malformed input. Never retried."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'validation_error'

    def __init__(self, detail=None, code=None, field=None):
        super().__init__(detail, code)
        self.field = field


class InvalidAmountError(ValidationError):
    default_detail = 'Amount must be greater than zero.'
    default_code = 'invalid_amount'

    def __init__(self, detail=None, code=None, field='amount'):
        super().__init__(detail, code, field=field)


class NotFoundError(BillingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'not_found'


class InvalidStateError(BillingError):
    """Operation attempted against an invoice whose status forbids it"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Operation not allowed in the current invoice state.'
    default_code = 'invalid_state'


class AlreadyExoneratedError(InvalidStateError):
    default_detail = 'Invoice already has an exoneration.'
    default_code = 'already_exonerated'


class ConcurrencyConflictError(BillingError):
    """Optimistic-lock failure on the invoice ledger; the only retried error"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Invoice was modified concurrently, please retry.'
    default_code = 'concurrency_conflict'


# ===========================================
# DRF EXCEPTION HANDLER
# ===========================================
def api_exception_handler(exc, context):
    """
    Render every API error as {"error": ..., "code": ...}.

    Anything DRF does not know how to handle is logged with the invoice id
    taken from the view kwargs and answered with a generic 500.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        kwargs = context.get('kwargs') or {}
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'} "
            f"(invoice={kwargs.get('pk', '-')}): {exc}",
            exc_info=exc,
        )
        return Response(
            {'error': 'Internal server error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, BillingError):
        data = {'error': str(exc.detail), 'code': exc.get_codes()}
        field = getattr(exc, 'field', None)
        if field:
            data['field'] = field
        response.data = data
    elif isinstance(exc, exceptions.ValidationError):
        response.data = {
            'error': 'Invalid data',
            'code': 'validation_error',
            'details': response.data,
        }
    else:
        detail = response.data.get('detail') if isinstance(response.data, dict) else response.data
        response.data = {
            'error': str(detail),
            'code': getattr(exc, 'default_code', None) or ('not_found' if response.status_code == 404 else 'error'),
        }

    return response
