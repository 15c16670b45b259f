"""Custom exceptions shared by the domain services."""

from __future__ import annotations

from typing import Mapping

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class DomainError(Exception):
	"""Base class for errors raised by domain services."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "request_failed"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class NotFoundError(DomainError):
	"""Thrown when a resource is not visible or missing."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class ForbiddenError(DomainError):
	"""Raised when the caller may not see or change a resource."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "not_authorized"


class ConflictError(DomainError):
	"""Raised for conflicting operations (e.g. a full event)."""

	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"


class ValidationError(DomainError):
	"""Raised for validation errors not covered by FastAPI schema validation.

	``errors`` maps field names to messages for inline display.
	"""

	status_code = _HTTP_422
	detail = "validation_error"

	def __init__(self, detail: str | None = None, *, errors: Mapping[str, str] | None = None) -> None:
		super().__init__(detail)
		self.errors: dict[str, str] = dict(errors or {})


class InvalidRuleError(ValidationError):
	"""Raised when a recurrence rule is missing a field its interval needs."""

	detail = "invalid_recurrence_rule"


class BackendUnavailableError(DomainError):
	"""Raised when the data store cannot serve a request."""

	status_code = status.HTTP_503_SERVICE_UNAVAILABLE
	detail = "backend_unavailable"


class RateLimitedError(DomainError):
	"""Raised when a caller exceeds its per-minute budget."""

	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	detail = "rate_limit"

	def __init__(self, detail: str | None = None, *, retry_after: int | None = None) -> None:
		super().__init__(detail)
		self.retry_after = retry_after
