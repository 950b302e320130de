"""Error types shared by the services and the DRF exception handler.

Every error leaves the API in the ``{"status": false, "msg": ...}`` envelope.
Server-side failures are logged in full and answered with a generic message.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated
from rest_framework.response import Response

from core.messages import GENERIC_ERROR_MESSAGE, MISSING_TOKEN_MESSAGE

logger = logging.getLogger(__name__)


class ServiceError(APIException):
    """A provider or store call failed while serving the request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = GENERIC_ERROR_MESSAGE
    default_code = 'service_error'
    # When False the detail is only logged and clients see the generic message
    expose = False


def _first_message(data) -> str:
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail'])
        for value in data.values():
            return _first_message(value)
        return GENERIC_ERROR_MESSAGE
    if isinstance(data, (list, tuple)):
        return _first_message(data[0]) if data else GENERIC_ERROR_MESSAGE
    return str(data)


def api_exception_handler(exc, context):
    """Render DRF and unexpected exceptions in the response envelope."""
    # rest_framework.views loads the authentication classes, which import this package
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)
    request = context.get('request')
    path = request.path if request is not None else 'unknown'

    if response is None:
        logger.error(f"Unhandled error on {path}: {str(exc)}", exc_info=exc)
        return Response(
            {"status": False, "msg": GENERIC_ERROR_MESSAGE},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, ServiceError):
        logger.error(f"Service error on {path}: {exc.detail}", exc_info=exc.__cause__ or exc)
        message = str(exc.detail) if exc.expose else GENERIC_ERROR_MESSAGE
    elif isinstance(exc, NotAuthenticated):
        message = MISSING_TOKEN_MESSAGE
    else:
        message = _first_message(response.data)

    body = {"status": False, "msg": message}
    if isinstance(response.data, dict) and 'detail' not in response.data:
        body["errors"] = response.data
    response.data = body
    return response
