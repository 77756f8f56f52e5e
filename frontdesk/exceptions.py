"""
Error taxonomy and the API exception handler.

Services raise these exceptions directly; the handler turns every failure
into the uniform envelope ``{"success": false, "message": ..., "error": ...}``.
"""
import logging

from django.conf import settings
from django.db import DatabaseError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ValidationError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request.'
    default_code = 'validation_error'


class ConflictError(APIException):
    # Conflicts are reported as 400 to match the existing front-end contract.
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Conflicting record.'
    default_code = 'conflict'


class NotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class DependencyError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Database unavailable.'
    default_code = 'dependency_error'


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for key, value in detail.items():
            msg = _first_message(value)
            return msg if key in ('detail', 'non_field_errors') else f"{key}: {msg}"
        return 'Invalid request.'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Invalid request.'
    return str(detail)


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        logger.error('database failure in %s', context.get('view'), exc_info=exc)
        exc = DependencyError(detail=str(exc) if settings.DEBUG else None)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.error('unhandled error in %s', context.get('view'), exc_info=exc)
        body = {'success': False, 'message': 'Something went wrong!'}
        if settings.DEBUG:
            body['error'] = str(exc)
        return Response(body, status=500)

    body = {'success': False, 'message': _first_message(resp.data)}
    if isinstance(exc, DRFValidationError) and isinstance(resp.data, (dict, list)):
        body['error'] = resp.data
    elif isinstance(exc, DependencyError) and settings.DEBUG:
        body['error'] = str(exc.detail)
    elif isinstance(exc, Http404):
        body['message'] = 'Not found.'
    return Response(body, status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp):
    headers = {}
    for name in ('WWW-Authenticate', 'Retry-After'):
        if resp.has_header(name):
            headers[name] = resp[name]
    return headers
