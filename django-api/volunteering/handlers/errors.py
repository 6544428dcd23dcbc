"""Domain error to HTTP response mapping.

Installed as REST_FRAMEWORK["EXCEPTION_HANDLER"]. Only the error code and
the user-safe message leave the process.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from volunteering.domain.errors import DomainError, ErrorCode, InvariantViolationError

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.REGISTRATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NOTIFICATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVARIANT_VIOLATION: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


def exception_handler(exc, context):
    if isinstance(exc, DomainError):
        if isinstance(exc, InvariantViolationError):
            logger.error(
                "Invariant violation while handling %s: %s", context.get("view"), exc.detail
            )
        return Response(
            error_body(exc.code.value, exc.message),
            status=STATUS_BY_CODE[exc.code],
        )
    return drf_exception_handler(exc, context)
