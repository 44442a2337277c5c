# reselec/client/errors.py

"""
Exceptions raised by the SDK.

    ReselecClientError
    ├── NetworkError               the API could not be reached
    ├── TransitionInProgressError  a status change is already running for the record
    └── ApiError                   the API answered with an error status
        ├── AuthenticationError    401
        ├── PermissionDeniedError  403
        ├── NotFoundError          404
        └── ValidationError        400 / 422, with per-field messages
"""

from typing import Any, Dict, List, Optional


class ReselecClientError(Exception):
    """Base class of every SDK error."""


class NetworkError(ReselecClientError):
    pass


class TransitionInProgressError(ReselecClientError):
    def __init__(self, intervention_id: int):
        self.intervention_id = intervention_id
        super().__init__(f"A status change is already in progress for intervention {intervention_id}")


class ApiError(ReselecClientError):
    def __init__(self, status_code: int, message: str, payload: Any = None):
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(f"{status_code}: {message}")


class AuthenticationError(ApiError):
    pass


class PermissionDeniedError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    def __init__(
        self,
        status_code: int,
        message: str,
        payload: Any = None,
        field_errors: Optional[Dict[str, List[str]]] = None,
    ):
        super().__init__(status_code, message, payload)
        self.field_errors = field_errors or {}


def field_errors_from_detail(detail: Any) -> Dict[str, List[str]]:
    """
    Maps FastAPI validation entries (`{"loc": [...], "msg": ...}`) to field name -> messages.
    The location prefix ("body", "query", "path") is dropped; nested fields are dotted.
    """
    errors: Dict[str, List[str]] = {}
    if not isinstance(detail, list):
        return errors
    for entry in detail:
        if not isinstance(entry, dict):
            continue
        loc = [str(part) for part in entry.get("loc", [])]
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        field = ".".join(loc) or "__all__"
        errors.setdefault(field, []).append(entry.get("msg", "Invalid value"))
    return errors


def message_from_detail(detail: Any, default: str) -> str:
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        first = detail[0]
        if isinstance(first, dict) and "msg" in first:
            return first["msg"]
    return default


def error_for_response(status_code: int, payload: Any) -> ApiError:
    """Builds the exception matching an error response."""
    detail = payload.get("detail") if isinstance(payload, dict) else payload
    if status_code == 401:
        return AuthenticationError(status_code, message_from_detail(detail, "Authentication required"), payload)
    if status_code == 403:
        return PermissionDeniedError(status_code, "Access denied", payload)
    if status_code == 404:
        return NotFoundError(status_code, message_from_detail(detail, "Not found"), payload)
    if status_code in (400, 422):
        return ValidationError(
            status_code,
            message_from_detail(detail, "Invalid request"),
            payload,
            field_errors=field_errors_from_detail(detail),
        )
    return ApiError(status_code, message_from_detail(detail, "Unexpected server error"), payload)
