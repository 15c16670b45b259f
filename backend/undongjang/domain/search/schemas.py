"""Pydantic schemas for search results and suggestions."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

DEFAULT_EVENT_IMAGE = "https://images.unsplash.com/photo-1515187029135-18ee286d815b?w=560&h=238&fit=crop"
DEFAULT_GROUP_COVER = "https://images.unsplash.com/photo-1522071820081-009f0129c71c?w=1200&h=400&fit=crop"


class SearchEventResult(BaseModel):
	id: str
	title: str
	kind: str
	start_at: datetime
	end_at: Optional[datetime] = None
	time_label: str
	end_time_label: str = ""
	image_url: str = DEFAULT_EVENT_IMAGE
	location: Optional[str] = None


class SearchGroupResult(BaseModel):
	id: str
	name: str
	description: Optional[str] = None
	image_url: str = DEFAULT_GROUP_COVER
	location_city: Optional[str] = None
	member_count: int = 0
	is_private: bool = False


class Suggestion(BaseModel):
	label: str
	type: Literal["event", "group"]
	id: str
