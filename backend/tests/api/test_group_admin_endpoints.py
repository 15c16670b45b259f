import pytest

from support import FakeGroupsRepo, make_group
from undongjang.api import groups as groups_api
from undongjang.domain.groups.service import GroupsService


@pytest.fixture(autouse=True)
def groups_repo(monkeypatch):
	repo = FakeGroupsRepo([make_group(organizer_id="owner", member_ids=["m1"], privacy="private")])
	monkeypatch.setattr(groups_api, "_service", GroupsService(repository=repo))
	return repo


@pytest.mark.asyncio
async def test_join_request_round_trip_over_http(api_client, groups_repo):
	requested = await api_client.post("/api/groups/group-1/join", headers={"X-User-Id": "hopeful"})
	assert requested.json()["status"] == "requested"

	denied = await api_client.get("/api/groups/group-1/join-requests", headers={"X-User-Id": "m1"})
	assert denied.status_code == 403

	listed = await api_client.get("/api/groups/group-1/join-requests", headers={"X-User-Id": "owner"})
	[request] = listed.json()
	assert request["user_id"] == "hopeful"

	accepted = await api_client.post(
		f"/api/groups/group-1/join-requests/{request['id']}/accept",
		headers={"X-User-Id": "owner"},
	)
	assert accepted.json() == {"group_id": "group-1", "status": "accepted"}
	members = await api_client.get("/api/groups/group-1/members")
	assert [member["user_id"] for member in members.json()][0] == "owner"
	assert "hopeful" in {member["user_id"] for member in members.json()}


@pytest.mark.asyncio
async def test_transfer_and_invite_inboxes_are_not_read_as_group_ids(api_client, groups_repo):
	created = await api_client.post(
		"/api/groups/group-1/ownership-transfer",
		json={"to_user_id": "m1"},
		headers={"X-User-Id": "owner"},
	)
	assert created.status_code == 201

	inbox = await api_client.get("/api/groups/ownership-transfers", headers={"X-User-Id": "m1"})
	assert [item["group_name"] for item in inbox.json()] == ["Riverside Runners"]

	accepted = await api_client.post(
		f"/api/groups/ownership-transfers/{created.json()['id']}/accept",
		headers={"X-User-Id": "m1"},
	)
	assert accepted.status_code == 200
	assert groups_repo.groups["group-1"].organizer_id == "m1"

	invites = await api_client.get("/api/groups/admin-invites", headers={"X-User-Id": "owner"})
	assert invites.status_code == 200
	assert invites.json() == []


@pytest.mark.asyncio
async def test_admin_invite_requires_the_owner(api_client):
	response = await api_client.post(
		"/api/groups/group-1/admin-invites",
		json={"user_id": "m1"},
		headers={"X-User-Id": "m1"},
	)
	assert response.status_code == 403
	invited = await api_client.post(
		"/api/groups/group-1/admin-invites",
		json={"user_id": "m1"},
		headers={"X-User-Id": "owner"},
	)
	assert invited.status_code == 201
	again = await api_client.post(
		"/api/groups/group-1/admin-invites",
		json={"user_id": "m1"},
		headers={"X-User-Id": "owner"},
	)
	assert again.status_code == 409
