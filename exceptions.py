"""
Application exceptions.

Every exception raised out of the store or a router carries the HTTP status it
maps to, so a single exception handler in ``app.py`` can render all of them.
"""

from typing import Any, Iterable, Optional


class AppException(Exception):
    """
    Base class for errors surfaced to the caller.

    Attributes:
        message: Human-readable error message.
        detail: Optional extra context rendered as ``details``.
        http_status: HTTP status code used by the exception handler.
    """

    http_status: int = 500

    def __init__(self, message: str, detail: Optional[Any] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.detail is not None:
            body["details"] = self.detail
        return body


class NotFoundError(AppException):
    """Unknown room or session id."""

    http_status = 404


class ValidationError(AppException):
    """
    Required fields are missing or invalid.

    ``missing_fields`` keeps the request order so the response names exactly
    the fields the caller has to fill in. Without an explicit ``detail`` the
    details map every checked field to whether it was present.
    """

    http_status = 400

    def __init__(
        self,
        message: str = "Missing required fields",
        missing_fields: Iterable[str] = (),
        checked_fields: Iterable[str] = (),
        detail: Optional[Any] = None,
    ):
        self.missing_fields = list(missing_fields)
        if detail is None:
            checked = list(checked_fields) or self.missing_fields
            detail = {field: field not in self.missing_fields for field in checked} if checked else None
        super().__init__(message, detail)

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.missing_fields:
            body["missingFields"] = self.missing_fields
        return body


class ForbiddenError(AppException):
    """A banned participant tried to submit a turn."""

    http_status = 403


class UpstreamFailure(AppException):
    """The text-completion service failed or returned an error status."""

    http_status = 500


class MalformedMessage(AppException):
    """A real-time envelope could not be parsed. Never sent over HTTP."""

    http_status = 400


def from_request_errors(errors: Iterable[dict]) -> ValidationError:
    """
    Translate FastAPI request validation errors into a ``ValidationError``.

    ``missing`` errors become ``missingFields``; any other error (wrong type,
    undecodable JSON) is reported per field under ``details``.
    """
    missing = []
    invalid = {}
    body_is_json = True
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(loc[1:]) or (loc[0] if loc else "body")
        if error.get("type") == "json_invalid":
            body_is_json = False
            invalid["body"] = error.get("msg", "JSON decode error")
        elif error.get("type") == "missing":
            missing.append(field)
        else:
            invalid[field] = error.get("msg", "Invalid value")

    if not body_is_json:
        return ValidationError("Request body is not valid JSON", detail=invalid)
    if invalid:
        return ValidationError("Invalid request body", missing_fields=missing, detail=invalid)
    return ValidationError(missing_fields=missing)


def require_fields(values: dict, fields: Iterable[str]) -> None:
    """Raise ValidationError naming every field in ``fields`` that is empty or missing."""
    fields = list(fields)
    missing = [field for field in fields if values.get(field) in (None, "")]
    if missing:
        raise ValidationError(missing_fields=missing, checked_fields=fields)
