"""
API error types and the unified DRF exception handler.

Every error leaving the API has the shape
``{'ok': False, 'error': {'code': ..., 'message': ...}}``.  Domain
errors raised from the service layer carry their own ``default_code``
which becomes the ``code`` field.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class DomainError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request.'
    default_code = 'bad_request'


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict.'
    default_code = 'conflict'


class InsufficientStockError(DomainError):
    default_detail = 'Insufficient stock.'
    default_code = 'insufficient_stock'


class InvalidTransitionError(DomainError):
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_transition'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view'), exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    code = getattr(exc, 'default_code', None) if isinstance(exc, DomainError) else 'api_error'
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code)
