"""Pydantic schemas for notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationResponse(BaseModel):
	id: str
	type: str
	group_id: str
	group_name: Optional[str] = None
	related_id: Optional[str] = None
	created_at: datetime
	read_at: Optional[datetime] = None


class NotificationReadResponse(BaseModel):
	id: str
	read_at: datetime
	changed: bool
