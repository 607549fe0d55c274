"""
Typed errors raised by :class:`depot.client.api.ApiClient`.

Every failed call surfaces as an :class:`ApiError` subclass chosen from the
HTTP status, so callers branch on type instead of poking at responses.
"""

from __future__ import annotations

from typing import Any

import httpx

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"


class ApiError(Exception):
    """Base class; ``status`` is ``None`` when no response was received."""

    def __init__(self, message: str, status: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload


class ValidationError(ApiError):
    """400 or 422: the request body or query was rejected."""

    def __init__(
        self,
        detail: str,
        errors: list[dict] | None = None,
        status: int | None = 400,
        payload: Any = None,
    ) -> None:
        self.detail = detail
        self.errors = errors or []
        super().__init__(format_validation_message(detail, self.errors), status, payload)


class AuthError(ApiError):
    """401 or 403."""


class NotFoundError(ApiError):
    """404."""


class ConflictError(ApiError):
    """409, e.g. an illegal or concurrent order status change."""


class TransportError(ApiError):
    """The request never produced an HTTP response."""


def format_validation_message(detail: str, errors: list[dict]) -> str:
    """``"Validation failed: username: too short, password: required"``."""
    if not errors:
        return detail
    parts = [f"{e.get('field', 'field')}: {e.get('message', 'Invalid value')}" for e in errors]
    return f"{detail}: {', '.join(parts)}"


def _detail(payload: Any, response: httpx.Response) -> str:
    if isinstance(payload, dict):
        detail = payload.get("detail") or payload.get("message")
        if isinstance(detail, str) and detail:
            return detail
        if detail:
            return str(detail)
    return response.text.strip() or f"Request failed with status {response.status_code}"


def error_from_response(response: httpx.Response) -> ApiError:
    """Map an error response to the matching :class:`ApiError` subclass."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    status = response.status_code
    detail = _detail(payload, response)

    if status in (400, 422):
        errors = payload.get("errors") if isinstance(payload, dict) else None
        return ValidationError(detail, errors if isinstance(errors, list) else None, status, payload)
    if status in (401, 403):
        return AuthError(detail, status, payload)
    if status == 404:
        return NotFoundError(detail, status, payload)
    if status == 409:
        return ConflictError(detail, status, payload)
    return ApiError(detail, status, payload)


def error_message(exc: BaseException | None) -> str:
    """User-facing text for any exception a client call may raise."""
    if isinstance(exc, ApiError) and exc.message:
        return exc.message
    return DEFAULT_ERROR_MESSAGE
