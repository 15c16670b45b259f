"""Map links for event locations.

With a maps API key the event page embeds a map; without one it degrades
to a plain search link instead of failing.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from undongjang.domain.events.formatting import is_online_address
from undongjang.domain.events.models import Event
from undongjang.domain.events.schemas import MapLinkResponse
from undongjang.settings import settings

EMBED_BASE_URL = "https://www.google.com/maps/embed/v1/place"
SEARCH_BASE_URL = "https://www.google.com/maps/search/"


def map_query(event: Event) -> Optional[str]:
	if event.is_online or is_online_address(event.address):
		return None
	parts = [part.strip() for part in (event.location_name, event.address) if part and part.strip()]
	if not parts:
		return None
	return ", ".join(dict.fromkeys(parts))


def build_map_link(event: Event, *, api_key: Optional[str] = None) -> MapLinkResponse:
	query = map_query(event)
	if query is None:
		return MapLinkResponse(status="no-location")
	link_url = f"{SEARCH_BASE_URL}?{urlencode({'api': 1, 'query': query})}"
	key = api_key if api_key is not None else settings.maps_api_key
	if not key:
		return MapLinkResponse(status="no-key", link_url=link_url, query=query)
	embed_url = f"{EMBED_BASE_URL}?{urlencode({'key': key, 'q': query})}"
	return MapLinkResponse(status="ready", embed_url=embed_url, link_url=link_url, query=query)
