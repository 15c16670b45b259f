from datetime import datetime, timezone

import pytest

from undongjang.api import notifications as notifications_api
from undongjang.domain.notifications.models import Notification, NotificationType
from undongjang.domain.notifications.service import NotificationsService

READ_AT = datetime(2024, 5, 1, 10, tzinfo=timezone.utc)


class _Repo:
	def __init__(self):
		self.item = Notification(
			id="n1",
			user_id="organizer-1",
			type=NotificationType.NEW_MEMBER_REQUEST,
			group_id="group-1",
			created_at=datetime(2024, 5, 1, 9, tzinfo=timezone.utc),
			related_id="request-1",
		)

	async def list_unread(self, user_id):
		if user_id != self.item.user_id or self.item.is_read:
			return []
		return [self.item]

	async def mark_read(self, notification_id, user_id):
		if notification_id != self.item.id or user_id != self.item.user_id:
			return None
		if self.item.read_at is not None:
			return self.item.read_at, False
		self.item.read_at = READ_AT
		return READ_AT, True


@pytest.fixture(autouse=True)
def notifications_service(monkeypatch):
	service = NotificationsService(repository=_Repo())
	monkeypatch.setattr(notifications_api, "_service", service)
	return service


@pytest.mark.asyncio
async def test_mark_read_twice_keeps_first_timestamp(api_client):
	headers = {"X-User-Id": "organizer-1"}
	listed = await api_client.get("/api/notifications", headers=headers)
	assert [item["id"] for item in listed.json()] == ["n1"]

	first = await api_client.post("/api/notifications/n1/read", headers=headers)
	second = await api_client.post("/api/notifications/n1/read", headers=headers)
	assert first.json()["changed"] is True
	assert second.json()["changed"] is False
	assert first.json()["read_at"] == second.json()["read_at"]
	assert (await api_client.get("/api/notifications", headers=headers)).json() == []


@pytest.mark.asyncio
async def test_foreign_notification_is_not_found(api_client):
	response = await api_client.post("/api/notifications/n1/read", headers={"X-User-Id": "someone"})
	assert response.status_code == 404
