"""Fakes and builders shared by the unit and API tests."""

from datetime import datetime, timezone
from typing import Optional

from undongjang.domain.events.models import Attendee, Event, EventKind, Privacy
from undongjang.domain.exceptions import ConflictError
from undongjang.domain.groups.models import AdminInvite, Group, GroupMember, JoinRequest, OwnershipTransfer
from undongjang.infra.auth import AuthenticatedUser


def make_user(user_id: str = "user-1", name: Optional[str] = None) -> AuthenticatedUser:
	return AuthenticatedUser(id=user_id, display_name=name or user_id)


class FakeGroupsRepo:
	"""In-memory stand-in for GroupsRepository."""

	def __init__(self, groups=(), *, admins=None) -> None:
		self.groups = {group.id: group for group in groups}
		self.admins: dict[str, set[str]] = {key: set(value) for key, value in (admins or {}).items()}
		self.join_requests: dict[str, JoinRequest] = {}
		self.transfers: dict[str, OwnershipTransfer] = {}
		self.invites: dict[str, AdminInvite] = {}
		self.joined_at: dict[tuple[str, str], datetime] = {}
		self.notifications: list[tuple[str, str, str]] = []
		self._ids = 0

	def _next_id(self, prefix):
		self._ids += 1
		return f"{prefix}-{self._ids}"

	async def list_groups(self, *, limit, offset=0):
		return list(self.groups.values())[offset : offset + limit]

	async def get_group(self, group_id):
		return self.groups.get(group_id)

	async def is_member(self, group_id, user_id):
		group = self.groups.get(group_id)
		return bool(group) and (user_id == group.organizer_id or user_id in group.member_ids)

	async def is_admin(self, group_id, user_id):
		return user_id in self.admins.get(group_id, set())

	async def add_member(self, group_id, user_id):
		group = self.groups[group_id]
		if user_id in group.member_ids:
			return False
		group.member_ids = tuple(sorted(set(group.member_ids) | {user_id}))
		self.joined_at[(group_id, user_id)] = datetime.now(timezone.utc)
		return True

	async def create_join_request(self, group_id, user_id):
		for request in self.join_requests.values():
			if (request.group_id, request.user_id) == (group_id, user_id):
				if request.status == "pending":
					return False
				request.status = "pending"
				break
		else:
			request = JoinRequest(
				id=self._next_id("request"),
				group_id=group_id,
				user_id=user_id,
				created_at=datetime.now(timezone.utc),
			)
			self.join_requests[request.id] = request
		self.notifications.append((self.groups[group_id].organizer_id, "new_member_request", request.id))
		return True

	async def list_managed_group_ids(self, user_id):
		return [
			group.id
			for group in self.groups.values()
			if group.organizer_id == user_id or user_id in self.admins.get(group.id, set())
		]

	async def list_groups_for_user(self, user_id):
		return [
			group
			for group in self.groups.values()
			if group.organizer_id == user_id or user_id in group.member_ids
		]

	async def list_members(self, group_id):
		group = self.groups[group_id]
		return [
			GroupMember(id=f"member-{user_id}", user_id=user_id, joined_at=self.joined_at.get((group_id, user_id)))
			for user_id in group.member_ids
		]

	async def remove_member(self, group_id, user_id):
		group = self.groups[group_id]
		if user_id not in group.member_ids:
			return False
		group.member_ids = tuple(member for member in group.member_ids if member != user_id)
		self.admins.get(group_id, set()).discard(user_id)
		return True

	async def list_join_requests(self, group_id):
		pending = [r for r in self.join_requests.values() if r.group_id == group_id and r.status == "pending"]
		return sorted(pending, key=lambda r: r.created_at, reverse=True)

	async def accept_join_request(self, group_id, request_id):
		request = self.join_requests.get(request_id)
		if request is None or request.group_id != group_id or request.status != "pending":
			return None
		request.status = "accepted"
		await self.add_member(group_id, request.user_id)
		return request

	async def reject_join_request(self, group_id, request_id):
		request = self.join_requests.get(request_id)
		if request is None or request.group_id != group_id or request.status != "pending":
			return False
		request.status = "rejected"
		return True

	async def upsert_ownership_transfer(self, group_id, from_user_id, to_user_id):
		for existing in list(self.transfers.values()):
			if existing.group_id == group_id:
				del self.transfers[existing.id]
		transfer = OwnershipTransfer(
			id=self._next_id("transfer"),
			group_id=group_id,
			from_user_id=from_user_id,
			to_user_id=to_user_id,
			created_at=datetime.now(timezone.utc),
		)
		self.transfers[transfer.id] = transfer
		self.notifications.append((to_user_id, "ownership_transfer_request", transfer.id))
		return transfer

	async def accept_ownership_transfer(self, transfer_id, user_id):
		transfer = self.transfers.get(transfer_id)
		if transfer is None or transfer.to_user_id != user_id:
			return None
		del self.transfers[transfer_id]
		group = self.groups[transfer.group_id]
		group.organizer_id = transfer.to_user_id
		await self.add_member(group.id, transfer.from_user_id)
		await self.add_member(group.id, transfer.to_user_id)
		return transfer

	async def decline_ownership_transfer(self, transfer_id, user_id):
		transfer = self.transfers.get(transfer_id)
		if transfer is None or user_id not in (transfer.from_user_id, transfer.to_user_id):
			return None
		del self.transfers[transfer_id]
		return transfer.group_id

	async def list_pending_transfers(self, user_id):
		return [
			OwnershipTransfer(
				id=t.id,
				group_id=t.group_id,
				from_user_id=t.from_user_id,
				to_user_id=t.to_user_id,
				created_at=t.created_at,
				group_name=self.groups[t.group_id].name if t.group_id in self.groups else None,
			)
			for t in self.transfers.values()
			if t.to_user_id == user_id
		]

	async def create_admin_invite(self, group_id, user_id, invited_by):
		if any((i.group_id, i.user_id) == (group_id, user_id) for i in self.invites.values()):
			return None
		invite = AdminInvite(
			id=self._next_id("invite"),
			group_id=group_id,
			user_id=user_id,
			invited_by=invited_by,
			created_at=datetime.now(timezone.utc),
		)
		self.invites[invite.id] = invite
		self.notifications.append((user_id, "admin_invite", invite.id))
		return invite

	async def accept_admin_invite(self, invite_id, user_id):
		invite = self.invites.get(invite_id)
		if invite is None or invite.user_id != user_id:
			return None
		del self.invites[invite_id]
		self.admins.setdefault(invite.group_id, set()).add(user_id)
		return invite

	async def decline_admin_invite(self, invite_id, user_id):
		invite = self.invites.get(invite_id)
		if invite is None or user_id not in (invite.user_id, invite.invited_by):
			return None
		del self.invites[invite_id]
		return invite.group_id

	async def list_pending_admin_invites(self, user_id):
		return [invite for invite in self.invites.values() if invite.user_id == user_id]


class FakeEventsRepo:
	"""In-memory stand-in for EventsRepository."""

	def __init__(self, events=(), *, admins=None) -> None:
		self.events = {event.id: event for event in events}
		self.admins: dict[str, set[str]] = {key: set(value) for key, value in (admins or {}).items()}
		self.attendees: dict[str, list] = {}
		self.created: list[dict] = []
		self.updated: list[tuple[str, dict]] = []
		self.photos: list[dict] = []

	async def create_event(self, values):
		self.created.append(dict(values))
		event = make_event(
			event_id=f"event-{len(self.created)}",
			title=values["title"],
			start_at=values["start_time"],
			kind=EventKind(values["event_type"]),
			privacy=Privacy(values["privacy"]),
			created_by=values["created_by"],
			address=values.get("address"),
			end_at=values.get("end_time"),
		)
		self.events[event.id] = event
		return event

	async def get_event(self, event_id, *, conn=None, for_update=False):
		return self.events.get(event_id)

	async def list_upcoming_events(self, *, now, limit, host_group_id=None):
		found = [
			event
			for event in self.events.values()
			if event.start_at >= now and (host_group_id is None or event.host_group_id == host_group_id)
		]
		return sorted(found, key=lambda event: event.start_at)[:limit]

	async def update_event(self, event_id, values):
		self.updated.append((event_id, dict(values)))
		event = self.events[event_id]
		event.title = values["title"]
		return event

	async def cancel_event(self, event_id):
		event = self.events[event_id]
		event.cancelled_at = event.cancelled_at or datetime(2024, 1, 1, tzinfo=timezone.utc)
		return event

	async def is_event_admin(self, event_id, user_id):
		return user_id in self.admins.get(event_id, set())

	async def list_managed_event_ids(self, user_id):
		return [
			event.id
			for event in self.events.values()
			if event.created_by == user_id or user_id in self.admins.get(event.id, set())
		]

	async def list_attendees(self, event_id):
		return list(self.attendees.get(event_id, []))

	async def add_attendee(self, event_id, user_id, *, occurrence_start_at, attendee_limit):
		current = self.attendees.setdefault(event_id, [])
		if any(item.user_id == user_id for item in current):
			return len(current)
		if attendee_limit is not None and len(current) >= attendee_limit:
			raise ConflictError("event_full")
		current.append(
			Attendee(user_id=user_id, joined_at=datetime(2024, 1, 1, tzinfo=timezone.utc), occurrence_start_at=occurrence_start_at)
		)
		return len(current)

	async def remove_attendee(self, event_id, user_id):
		current = self.attendees.setdefault(event_id, [])
		current[:] = [item for item in current if item.user_id != user_id]
		return len(current)

	async def add_photo(self, event_id, *, url, uploaded_by):
		row = {"id": f"photo-{len(self.photos) + 1}", "image_url": url, "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)}
		self.photos.append(row)
		return row


def make_group(
	group_id: str = "group-1",
	*,
	name: str = "Riverside Runners",
	organizer_id: str = "organizer-1",
	member_ids=(),
	privacy: str = "public",
	location_city: Optional[str] = None,
) -> Group:
	return Group(
		id=group_id,
		name=name,
		organizer_id=organizer_id,
		privacy=privacy,
		location_city=location_city,
		member_ids=tuple(member_ids),
	)


def make_event(
	event_id: str = "event-1",
	*,
	title: str = "Evening Run",
	start_at: Optional[datetime] = None,
	kind: EventKind = EventKind.LIGHTNING,
	privacy: Privacy = Privacy.PUBLIC,
	created_by: str = "organizer-1",
	**extra,
) -> Event:
	return Event(
		id=event_id,
		title=title,
		start_at=start_at or datetime(2030, 1, 1, tzinfo=timezone.utc),
		kind=kind,
		privacy=privacy,
		created_by=created_by,
		**extra,
	)
