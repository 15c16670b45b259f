"""Error translation and global handlers.

Every JSON error body carries the request id. Field-level validation errors
travel in ``errors`` so forms can render them inline.
"""

from __future__ import annotations

import logging

import asyncpg
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from undongjang.api.request_id import get_request_id
from undongjang.domain import exceptions

_LOG = logging.getLogger(__name__)


class FieldErrorHTTPException(HTTPException):
	"""HTTPException that also carries a field -> message map."""

	def __init__(self, status_code: int, detail: str, errors: dict[str, str]) -> None:
		super().__init__(status_code=status_code, detail=detail)
		self.errors = errors


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, exceptions.ValidationError) and exc.errors:
		return FieldErrorHTTPException(exc.status_code, exc.detail, exc.errors)
	if isinstance(exc, exceptions.RateLimitedError) and exc.retry_after:
		return HTTPException(
			status_code=exc.status_code,
			detail=exc.detail,
			headers={"Retry-After": str(exc.retry_after)},
		)
	if isinstance(exc, exceptions.DomainError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	if isinstance(exc, (asyncpg.PostgresError, OSError)):
		_LOG.warning("api.backend_unavailable", exc_info=exc)
		unavailable = exceptions.BackendUnavailableError()
		return HTTPException(status_code=unavailable.status_code, detail=unavailable.detail)
	_LOG.error("api.unhandled_error", exc_info=exc)
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="request_failed")


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload: dict[str, object] = {"detail": exc.detail, "request_id": get_request_id(request)}
		errors = getattr(exc, "errors", None)
		if errors:
			payload["errors"] = errors
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {
			"detail": "validation_error",
			"errors": jsonable_errors(exc),
			"request_id": get_request_id(request),
		}
		return JSONResponse(status_code=422, content=payload)


def jsonable_errors(exc: RequestValidationError) -> dict[str, str]:
	"""Flatten pydantic error entries into field -> message."""
	result: dict[str, str] = {}
	for error in exc.errors():
		loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
		key = ".".join(loc) or "__root__"
		result.setdefault(key, str(error.get("msg", "invalid")))
	return result
