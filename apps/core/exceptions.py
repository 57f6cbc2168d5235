"""
Service-layer error taxonomy.

Every error derives from DRF's APIException so views may either let it
propagate (rendered by the default exception handler with `status_code`)
or catch it to shape a richer payload.
"""
from __future__ import annotations

from typing import Iterable, Optional

from rest_framework import status
from rest_framework.exceptions import APIException


class ServiceError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."
    default_code = "service_error"


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"
    default_code = "unauthorized"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class ValidationError(ServiceError):
    """Missing or malformed answers. `missing` lists the offending question ids."""

    default_detail = "Please answer all required questions before continuing."
    default_code = "invalid"

    def __init__(self, detail: Optional[str] = None, missing: Iterable[str] = ()):
        super().__init__(detail=detail)
        self.missing = list(missing)


class PersistenceError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Storage operation failed."
    default_code = "persistence_error"


class DeliveryError(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Email delivery failed."
    default_code = "delivery_error"


class SessionClosedError(ServiceError):
    """The invitation is not in a resumable state (unavailable/expired/already submitted)."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "This survey session is closed."
    default_code = "session_closed"

    def __init__(self, state: str, detail: Optional[str] = None):
        super().__init__(detail=detail or f"Survey session is {state}")
        self.state = state


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "You have already submitted this survey"
    default_code = "conflict"
