from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from support import FakeEventsRepo, FakeGroupsRepo, make_event, make_group, make_user
from undongjang.domain.events.models import EventKind, Privacy, RecurrenceRule, RepeatInterval
from undongjang.domain.events.schemas import EventForm
from undongjang.domain.events.service import EventsService
from undongjang.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from undongjang.domain.groups.service import GroupsService
from undongjang.infra import storage

CHICAGO = ZoneInfo("America/Chicago")
NOW = datetime(2024, 2, 1, 12, tzinfo=timezone.utc)
LAST_FRIDAY = RecurrenceRule(
	interval=RepeatInterval.MONTHLY,
	time_of_day=time(19, 0),
	weekday=5,
	week_of_month=5,
)


def _service(events=(), groups=(), *, event_admins=None, group_admins=None) -> tuple[EventsService, FakeEventsRepo]:
	repo = FakeEventsRepo(events, admins=event_admins)
	group_service = GroupsService(repository=FakeGroupsRepo(groups, admins=group_admins))
	return EventsService(repository=repo, groups=group_service, clock=lambda: NOW), repo


def _monthly_event(**extra):
	return make_event(
		kind=EventKind.STANDARD,
		start_at=datetime(2024, 2, 23, 19, tzinfo=CHICAGO),
		recurrence=LAST_FRIDAY,
		**extra,
	)


@pytest.mark.asyncio
async def test_create_lightning_event_stores_address_location():
	service, repo = _service()
	form = EventForm(
		title="Pickup Soccer",
		event_type="lightning",
		privacy="public",
		location_type="address",
		address="12 Field Rd",
		start_time="2030-06-01T18:00",
	)
	response = await service.create_event(make_user("organizer-1"), form)
	assert response.title == "Pickup Soccer"
	stored = repo.created[0]
	assert stored["address"] == "12 Field Rd"
	assert stored["meeting_url"] is None
	assert stored["recurrence_interval"] is None
	assert stored["start_time"] == datetime(2030, 6, 1, 18, tzinfo=CHICAGO)


@pytest.mark.asyncio
async def test_create_recurring_event_starts_at_first_occurrence():
	service, repo = _service()
	form = EventForm(
		title="Monthly Social",
		event_type="standard",
		privacy="public",
		location_type="online",
		meeting_url="https://meet.example/abc",
		repeat_interval="monthly",
		recurrence_weekday=5,
		recurrence_week_of_month=5,
		start_time_time="19:00",
		end_time_time="21:00",
	)
	await service.create_event(make_user("organizer-1"), form)
	stored = repo.created[0]
	assert stored["start_time"].date() == date(2024, 2, 23)
	assert stored["end_time"] == datetime(2024, 2, 23, 21, tzinfo=CHICAGO)
	assert stored["recurrence_interval"] == "monthly"
	assert stored["address"] == "온라인"
	assert stored["meeting_url"] == "https://meet.example/abc"


@pytest.mark.asyncio
async def test_invalid_form_raises_field_errors():
	service, repo = _service()
	with pytest.raises(ValidationError) as excinfo:
		await service.create_event(make_user(), EventForm(event_type="lightning"))
	assert {"title", "privacy", "location_type", "start_time"} <= set(excinfo.value.errors)
	assert repo.created == []


@pytest.mark.asyncio
async def test_unparseable_form_values_never_escape_as_exceptions():
	service, repo = _service()
	form = EventForm(
		title="Monthly Social",
		event_type="standard",
		privacy="public",
		location_type="online",
		meeting_url="https://meet.example/abc",
		repeat_interval="weekly",
		recurrence_weekday="2",
		start_time_time="19:00",
		end_time_time="25:00",
		attendee_limit="²",
	)
	with pytest.raises(ValidationError) as excinfo:
		await service.create_event(make_user(), form)
	assert set(excinfo.value.errors) == {"end_time_time", "attendee_limit"}
	assert repo.created == []


@pytest.mark.asyncio
async def test_host_group_must_be_managed_by_creator():
	service, _ = _service(groups=[make_group("group-1", organizer_id="someone-else")])
	form = EventForm(
		title="Hosted",
		event_type="lightning",
		privacy="public",
		location_type="address",
		address="Hall",
		start_time="2030-06-01T18:00",
		host_group_id="group-1",
	)
	with pytest.raises(ValidationError) as excinfo:
		await service.create_event(make_user("user-1"), form)
	assert "host_group_id" in excinfo.value.errors


@pytest.mark.asyncio
async def test_exclusive_event_requires_membership():
	event = make_event(privacy=Privacy.EXCLUSIVE, host_group_id="group-1")
	group = make_group("group-1", organizer_id="organizer-1", member_ids=["member-1"])
	service, _ = _service([event], [group])
	with pytest.raises(ForbiddenError):
		await service.get_event(event.id, make_user("stranger"))
	with pytest.raises(ForbiddenError):
		await service.get_event(event.id, None)
	detail = await service.get_event(event.id, make_user("member-1"))
	assert detail.id == event.id


@pytest.mark.asyncio
async def test_missing_event_is_not_found():
	service, _ = _service()
	with pytest.raises(NotFoundError):
		await service.get_event("nope")


@pytest.mark.asyncio
async def test_meeting_url_only_for_attendees_and_managers():
	event = make_event(meeting_url="https://meet.example/x")
	service, _ = _service([event])
	assert (await service.get_event(event.id, make_user("viewer"))).meeting_url is None
	assert (await service.get_event(event.id, make_user("organizer-1"))).meeting_url == "https://meet.example/x"
	await service.rsvp(event.id, make_user("viewer"))
	detail = await service.get_event(event.id, make_user("viewer"))
	assert detail.is_attending
	assert detail.meeting_url == "https://meet.example/x"


@pytest.mark.asyncio
async def test_detail_lists_next_five_occurrences():
	event = _monthly_event()
	service, _ = _service([event])
	detail = await service.get_event(event.id)
	assert len(detail.next_occurrences) == 5
	assert detail.next_occurrences[0].label == "Fri, Feb 23, 7:00 PM"
	assert detail.next_occurrences[1].start_at.date() == date(2024, 3, 29)


@pytest.mark.asyncio
async def test_rsvp_enforces_attendee_limit():
	event = make_event(attendee_limit=1)
	service, _ = _service([event])
	first = await service.rsvp(event.id, make_user("a"))
	assert first.attendee_count == 1
	with pytest.raises(ConflictError):
		await service.rsvp(event.id, make_user("b"))


@pytest.mark.asyncio
async def test_rsvp_to_cancelled_event_conflicts():
	event = make_event(cancelled_at=NOW)
	service, _ = _service([event])
	with pytest.raises(ConflictError):
		await service.rsvp(event.id, make_user())


@pytest.mark.asyncio
async def test_rsvp_occurrence_must_belong_to_rule():
	event = _monthly_event()
	service, repo = _service([event])
	with pytest.raises(ValidationError):
		await service.rsvp(event.id, make_user(), occurrence_start_at=datetime(2024, 3, 22, 19, tzinfo=CHICAGO))
	response = await service.rsvp(
		event.id,
		make_user(),
		occurrence_start_at=datetime(2024, 3, 29, 19, tzinfo=CHICAGO),
	)
	assert response.status == "going"
	assert repo.attendees[event.id][0].occurrence_start_at == datetime(2024, 3, 29, 19, tzinfo=CHICAGO)


@pytest.mark.asyncio
async def test_rsvp_occurrence_on_one_off_event_is_rejected():
	event = make_event()
	service, _ = _service([event])
	with pytest.raises(ValidationError) as excinfo:
		await service.rsvp(event.id, make_user(), occurrence_start_at=datetime(2030, 1, 1, tzinfo=timezone.utc))
	assert "occurrence_start_at" in excinfo.value.errors


@pytest.mark.asyncio
async def test_cancel_rsvp_drops_attendance():
	event = make_event()
	service, _ = _service([event])
	await service.rsvp(event.id, make_user("a"))
	response = await service.cancel_rsvp(event.id, make_user("a"))
	assert response.status == "not_going"
	assert response.attendee_count == 0


@pytest.mark.asyncio
async def test_update_requires_manager():
	event = make_event()
	service, _ = _service([event])
	form = EventForm(
		title="Renamed",
		event_type="lightning",
		privacy="public",
		location_type="address",
		address="Hall",
		start_time="2030-06-01T18:00",
	)
	with pytest.raises(ForbiddenError):
		await service.update_event(event.id, make_user("stranger"), form)
	updated = await service.update_event(event.id, make_user("organizer-1"), form)
	assert updated.title == "Renamed"


@pytest.mark.asyncio
async def test_event_admin_and_group_admin_can_manage():
	event = make_event("event-9", created_by="creator", host_group_id="group-1")
	group = make_group("group-1", organizer_id="group-owner")
	service, _ = _service([event], [group], event_admins={"event-9": ["co-host"]}, group_admins={"group-1": ["group-admin"]})
	assert await service.can_manage_event(event, "creator")
	assert await service.can_manage_event(event, "co-host")
	assert await service.can_manage_event(event, "group-owner")
	assert await service.can_manage_event(event, "group-admin")
	assert not await service.can_manage_event(event, "stranger")


@pytest.mark.asyncio
async def test_cancel_event_marks_cancelled():
	event = make_event()
	service, _ = _service([event])
	response = await service.cancel_event(event.id, make_user("organizer-1"))
	assert response.cancelled


@pytest.mark.asyncio
async def test_add_photo_rejects_unsupported_type():
	event = make_event()
	service, repo = _service([event])
	with pytest.raises(ValidationError):
		await service.add_photo(event.id, make_user("organizer-1"), data=b"GIF", content_type="text/plain")
	assert repo.photos == []


@pytest.mark.asyncio
async def test_add_photo_stores_and_records(monkeypatch):
	event = make_event()
	service, repo = _service([event])
	uploaded = []

	async def _fake_upload(key, data, content_type):
		uploaded.append((key, data, content_type))
		return f"http://cdn.test/{key}"

	monkeypatch.setattr(storage, "upload", _fake_upload)
	photo = await service.add_photo(event.id, make_user("organizer-1"), data=b"\x89PNG", content_type="image/png")
	assert photo.url.startswith("http://cdn.test/events/event-1/")
	assert photo.url.endswith(".png")
	assert uploaded[0][1] == b"\x89PNG"
	assert len(repo.photos) == 1
