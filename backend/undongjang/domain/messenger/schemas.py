"""Pydantic schemas for the messenger API."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from undongjang.domain.messenger.models import Conversation, Message


class CreateConversationRequest(BaseModel):
	group_id: Optional[str] = None
	event_id: Optional[str] = None

	@model_validator(mode="after")
	def _exactly_one_subject(self) -> "CreateConversationRequest":
		if bool(self.group_id) == bool(self.event_id):
			raise ValueError("Provide exactly one of group_id or event_id.")
		return self


class SendMessageRequest(BaseModel):
	content: str = Field(..., max_length=4000)


class ConversationResponse(BaseModel):
	id: str
	member_user_id: str
	subject_type: str
	subject_id: str
	subject_name: Optional[str] = None
	group_id: Optional[str] = None
	event_id: Optional[str] = None
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None

	@classmethod
	def from_model(cls, conversation: Conversation) -> "ConversationResponse":
		return cls(
			id=conversation.id,
			member_user_id=conversation.member_user_id,
			subject_type=conversation.subject_type.value,
			subject_id=conversation.subject_id,
			subject_name=conversation.subject_name,
			group_id=conversation.group_id,
			event_id=conversation.event_id,
			created_at=conversation.created_at,
			updated_at=conversation.updated_at,
		)


class ConversationSummary(ConversationResponse):
	label: str
	member_name: Optional[str] = None
	last_message_preview: Optional[str] = None
	last_message_at: Optional[datetime] = None
	unread: bool = False


class MessageResponse(BaseModel):
	id: str
	conversation_id: str
	seq: int
	sender_id: str
	sender_name: Optional[str] = None
	content: str
	created_at: datetime

	@classmethod
	def from_model(cls, message: Message) -> "MessageResponse":
		return cls(
			id=message.id,
			conversation_id=message.conversation_id,
			seq=message.seq,
			sender_id=message.sender_id,
			sender_name=message.sender_name,
			content=message.content,
			created_at=message.created_at,
		)


class MessagePage(BaseModel):
	messages: List[MessageResponse]
	next_cursor: Optional[str] = None


class SendMessageResponse(BaseModel):
	id: str
	seq: int
	created_at: datetime


class ReadStateResponse(BaseModel):
	conversation_id: str
	last_read_seq: int
	read_at: Optional[datetime] = None


class UnreadCountsResponse(BaseModel):
	total: int = 0
	messages_unread: int = 0
	groups_unread: int = 0
	events_unread: int = 0
	by_group: Dict[str, int] = Field(default_factory=dict)
	by_event: Dict[str, int] = Field(default_factory=dict)
