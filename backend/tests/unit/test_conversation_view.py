import asyncio
from datetime import datetime, timezone

import pytest

from support import make_user
from undongjang.domain.messenger.schemas import MessagePage, MessageResponse, SendMessageResponse
from undongjang.domain.messenger.surface import SurfaceState, SurfaceTarget
from undongjang.domain.messenger.view import GENERIC_ERROR, ConversationView

USER = make_user("member-1", "Mina")
LOCAL_NOW = datetime(2024, 5, 1, 12, 0, 5, tzinfo=timezone.utc)


def _message(seq: int) -> MessageResponse:
	return MessageResponse(
		id=f"m{seq}",
		conversation_id="c1",
		seq=seq,
		sender_id="organizer-1",
		content=f"message {seq}",
		created_at=datetime(2024, 5, 1, 12, 0, seq, tzinfo=timezone.utc),
	)


class _StubService:
	def __init__(self) -> None:
		self.gate: asyncio.Event | None = None
		self.fail = False

	async def get_messages(self, conversation_id, user, *, cursor=None, limit=None):
		if self.gate is not None:
			await self.gate.wait()
		if self.fail:
			raise RuntimeError("boom")
		if cursor is None:
			return MessagePage(messages=[_message(3), _message(4)], next_cursor="older")
		return MessagePage(messages=[_message(1), _message(2)], next_cursor=None)

	async def send_message(self, conversation_id, user, content):
		if self.gate is not None:
			await self.gate.wait()
		return SendMessageResponse(id="m5", seq=5, created_at=datetime(2024, 5, 1, 12, 0, 9, tzinfo=timezone.utc))


@pytest.mark.asyncio
async def test_load_then_older_pages_prepend():
	view = ConversationView(_StubService(), "c1", USER)
	await view.load()
	assert [message.id for message in view.messages] == ["m3", "m4"]
	assert view.has_older
	await view.load_older()
	assert [message.id for message in view.messages] == ["m1", "m2", "m3", "m4"]
	assert not view.has_older


@pytest.mark.asyncio
async def test_send_appends_with_local_timestamp():
	view = ConversationView(_StubService(), "c1", USER, clock=lambda: LOCAL_NOW)
	await view.load()
	message_id = await view.send("  hi there ")
	assert message_id == "m5"
	appended = view.messages[-1]
	assert appended.content == "hi there"
	assert appended.created_at == LOCAL_NOW
	assert appended.sender_id == "member-1"


@pytest.mark.asyncio
async def test_results_after_close_are_dropped():
	service = _StubService()
	service.gate = asyncio.Event()
	view = ConversationView(service, "c1", USER)
	pending = asyncio.create_task(view.load())
	await asyncio.sleep(0)
	view.close()
	service.gate.set()
	await pending
	assert view.messages == []
	assert view.next_cursor is None


@pytest.mark.asyncio
async def test_failures_surface_one_message():
	service = _StubService()
	service.fail = True
	view = ConversationView(service, "c1", USER)
	await view.load()
	assert view.error == GENERIC_ERROR
	assert not view.loading


def test_surface_close_runs_callback_once():
	calls = []
	surface = SurfaceState()
	surface.open(SurfaceTarget(conversation_id="c1"), on_complete=lambda: calls.append("done"))
	assert surface.is_open
	assert surface.active == SurfaceTarget(conversation_id="c1")
	surface.close()
	surface.close()
	assert calls == ["done"]
	assert not surface.is_open
	assert surface.active is None


def test_surface_open_replaces_active_target():
	calls = []
	surface = SurfaceState()
	surface.open(SurfaceTarget(group_id="g1"), on_complete=lambda: calls.append("first"))
	surface.open(SurfaceTarget(event_id="e1"))
	assert surface.active == SurfaceTarget(event_id="e1")
	surface.close()
	assert calls == []


def test_surface_clears_before_callback():
	surface = SurfaceState()
	seen = []
	surface.open(SurfaceTarget(conversation_id="c1"), on_complete=lambda: seen.append(surface.is_open))
	surface.close()
	assert seen == [False]


class _SendRacesLoadService(_StubService):
	def __init__(self) -> None:
		super().__init__()
		self.send_gate = asyncio.Event()
		self.stored = False

	async def get_messages(self, conversation_id, user, *, cursor=None, limit=None):
		messages = [_message(3), _message(4)]
		if self.stored:
			messages.append(_message(5))
		return MessagePage(messages=messages, next_cursor=None)

	async def send_message(self, conversation_id, user, content):
		self.stored = True
		await self.send_gate.wait()
		return SendMessageResponse(id="m5", seq=5, created_at=datetime(2024, 5, 1, 12, 0, 5, tzinfo=timezone.utc))


@pytest.mark.asyncio
async def test_send_does_not_duplicate_message_already_loaded():
	service = _SendRacesLoadService()
	view = ConversationView(service, "c1", USER)
	await view.load()
	sending = asyncio.create_task(view.send("message 5"))
	await asyncio.sleep(0)
	await view.load()
	service.send_gate.set()
	assert await sending == "m5"
	assert [message.id for message in view.messages] == ["m3", "m4", "m5"]
