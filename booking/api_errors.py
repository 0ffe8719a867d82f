# booking/api_errors.py
#
# Purpose:
# - One error envelope for every API endpoint:
#     {"success": false, "error": {"code": "...", "message": "..."}}
#
# Mapping:
# - SchedulingError (expected outcomes: SLOT_CONFLICT, PAST_DATE, ...) →
#   its own status code; never retried by the server.
# - DRF field validation and model clean() failures → 400 INVALID_REQUEST.
# - IntegrityError (duplicate staff email, ...) → 400 INVALID_REQUEST.
# - Other DRF errors (auth, 404, ...) → DRF's status with its upper-cased code.
# - django.db.DatabaseError (store unreachable, lock timeout, ...) →
#   503 INTERNAL_ERROR; safe for the caller to retry with backoff.
#
import logging

from django.core.exceptions import ValidationError as ModelValidationError
from django.db import DatabaseError, IntegrityError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .services.errors import InvalidRequest, SchedulingError

logger = logging.getLogger(__name__)


def error_response(code: str, message, status_code: int) -> Response:
    return Response(
        {"success": False, "error": {"code": code, "message": message}},
        status=status_code,
    )


def scheduling_error_response(exc: SchedulingError) -> Response:
    return Response({"success": False, "error": exc.as_dict()}, status=exc.status_code)


def scheduling_exception_handler(exc, context):
    if isinstance(exc, SchedulingError):
        return scheduling_error_response(exc)

    if isinstance(exc, ModelValidationError):
        return error_response(InvalidRequest.code, exc.messages, status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, IntegrityError):
        logger.info("Integrity error: %s", exc)
        return error_response(InvalidRequest.code, "Duplicate or conflicting record.", status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, DatabaseError):
        logger.exception("Database failure in %s", context.get("view").__class__.__name__)
        return error_response(
            "INTERNAL_ERROR",
            "Temporary failure, please retry.",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        code = InvalidRequest.code
    else:
        code = getattr(exc, "default_code", "error")
    detail = response.data
    if isinstance(detail, dict) and set(detail) == {"detail"}:
        detail = detail["detail"]
    response.data = {"success": False, "error": {"code": str(code).upper(), "message": detail}}
    return response
