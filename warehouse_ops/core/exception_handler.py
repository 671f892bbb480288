"""
DRF exception handler producing ``{"error": ..., "code": ...}`` bodies.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import BusinessException

logger = logging.getLogger(__name__)

STATUS_CODES = {
    401: 'UNAUTHORIZED',
    403: 'FORBIDDEN',
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
    429: 'THROTTLED',
}


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    return str(detail)


def warehouse_exception_handler(exc, context):
    if isinstance(exc, BusinessException):
        body = {'error': exc.message, 'code': exc.code}
        if exc.details:
            body['details'] = exc.details
        return Response(body, status=exc.status_code)

    if isinstance(exc, DRFValidationError):
        return Response({
            'error': _first_message(exc.detail),
            'code': 'VALIDATION_ERROR',
            'details': exc.detail,
        }, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)
    if response is not None:
        detail = response.data.get('detail', response.data) if isinstance(response.data, dict) else response.data
        response.data = {
            'error': str(detail),
            'code': STATUS_CODES.get(response.status_code, 'ERROR'),
        }
        return response

    view = context.get('view')
    logger.exception("Unhandled error in %s", view.__class__.__name__ if view else 'view')
    return Response(
        {'error': 'Internal server error', 'code': 'INTERNAL_ERROR'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
