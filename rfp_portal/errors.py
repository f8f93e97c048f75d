"""
rfp_portal/errors.py

Exception hierarchy for the submission lifecycle.

Every error carries a stable `code` (the name used on the wire) and the HTTP
status the API answers with. Routes never build error payloads by hand; the
error handler registered in create_app() renders any PortalError via to_dict().
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base exception for all portal errors."""

    code = "PortalError"
    http_status = 500

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(PortalError):
    """Raised when a submission (or other record) does not exist or is not visible to the actor."""

    code = "NotFound"
    http_status = 404


class Forbidden(PortalError):
    """Raised when the actor may not perform the operation at all."""

    code = "Forbidden"
    http_status = 403


class InvalidTransition(PortalError):
    """Raised when the current status does not accept the requested change."""

    code = "InvalidTransition"
    http_status = 409

    def __init__(self, message: str, details: Optional[str] = None, status: Optional[str] = None):
        super().__init__(message, details)
        # Authoritative status at the time of rejection, so callers can refresh their view.
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.status is not None:
            payload["status"] = self.status
        return payload


class UnsupportedAction(PortalError):
    """Raised for admin actions outside approve / shortlist / decline."""

    code = "UnsupportedAction"
    http_status = 400


class DraftStoreUnavailable(PortalError):
    """Raised when the draft store cannot be reached. Never means "no draft"."""

    code = "DraftStoreUnavailable"
    http_status = 503


class ValidationFailed(PortalError):
    """
    Raised when required fields are missing or malformed.

    `fields` maps each offending field name to a human readable reason, so the
    UI can point at the exact input.
    """

    code = "ValidationFailed"
    http_status = 422

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None, details: Optional[str] = None):
        super().__init__(message, details)
        self.fields = dict(fields or {})

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["fields"] = self.fields
        return payload


class WizardClosed(PortalError):
    """Raised when a submitted wizard instance is used again."""

    code = "WizardClosed"
    http_status = 409


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        NotFound,
        Forbidden,
        InvalidTransition,
        UnsupportedAction,
        DraftStoreUnavailable,
        ValidationFailed,
        WizardClosed,
    )
}


def error_from_payload(payload: Dict[str, Any], fallback_status: int = 500) -> PortalError:
    """
    Rebuild a PortalError from an API error payload.

    Used by the HTTP client so remote failures surface as the same exception
    classes the in-process services raise.
    """
    code = payload.get("error") or ""
    message = payload.get("message") or payload.get("error") or f"HTTP {fallback_status}"
    details = payload.get("details")

    cls = ERRORS_BY_CODE.get(code)
    if cls is ValidationFailed:
        return ValidationFailed(message, fields=payload.get("fields"), details=details)
    if cls is InvalidTransition:
        return InvalidTransition(message, details=details, status=payload.get("status"))
    if cls is not None:
        return cls(message, details)
    if fallback_status == 404:
        return NotFound(message, details)
    if fallback_status == 403 or fallback_status == 401:
        return Forbidden(message, details)
    return PortalError(message, details)
