"""Middleware to bind a request id to request.state and response headers.

An inbound ``X-Request-Id`` is reused only when it looks like an id; anything
else is replaced so arbitrary header text never reaches the logs.
"""

from __future__ import annotations

import re
from typing import Optional

import ulid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from undongjang.api.request_id import REQUEST_ID_ATTR

REQUEST_ID_HEADER = "X-Request-Id"
_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def accept_request_id(raw: Optional[str]) -> str:
    if raw and _VALID_ID.match(raw.strip()):
        return raw.strip()
    return str(ulid.new())


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        setattr(request.state, REQUEST_ID_ATTR, rid)
        response = await call_next(request)
        response.headers.setdefault(REQUEST_ID_HEADER, rid)
        return response
