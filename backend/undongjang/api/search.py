"""REST endpoints for free-text search and suggestions."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from undongjang.api.errors import to_http_error
from undongjang.domain.search import guards
from undongjang.domain.search.schemas import SearchEventResult, SearchGroupResult, Suggestion
from undongjang.domain.search.service import SearchService
from undongjang.infra.auth import AuthenticatedUser, get_session

router = APIRouter(prefix="/api/search", tags=["search"])

_service = SearchService()


async def _throttle(request: Request, user: Optional[AuthenticatedUser]) -> None:
	actor = user.id if user else (request.client.host if request.client else "anonymous")
	await guards.enforce_rate_limit(actor)


@router.get("/suggestions", response_model=list[Suggestion])
async def suggestions_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None, max_length=200),
	user: Optional[AuthenticatedUser] = Depends(get_session),
) -> list[Suggestion]:
	if not guards.is_suggestible(guards.normalize_query(q)):
		return []
	try:
		await _throttle(request, user)
		return await _service.get_search_suggestions(q)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/events", response_model=list[SearchEventResult])
async def search_events_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None, max_length=200),
	user: Optional[AuthenticatedUser] = Depends(get_session),
) -> list[SearchEventResult]:
	if not guards.normalize_query(q):
		return []
	try:
		await _throttle(request, user)
		return await _service.search_events(q)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/groups", response_model=list[SearchGroupResult])
async def search_groups_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None, max_length=200),
	user: Optional[AuthenticatedUser] = Depends(get_session),
) -> list[SearchGroupResult]:
	if not guards.normalize_query(q):
		return []
	try:
		await _throttle(request, user)
		return await _service.search_groups(q)
	except Exception as exc:
		raise to_http_error(exc) from exc
