"""
Tests for the entity dashboard
Tests for: load + reclassification, event bucket routing, content CRUD
"""
import datetime as dt

import httpx
import pytest

from portal.dashboard import LOAD_FAILED, EntityDashboard
from portal.events import Bucket
from portal.session import EntityKind

NOW = dt.date(2024, 6, 1)
EVENTS = "/society-dashboard/society/42/events"


@pytest.fixture
def seeded(backend, society_admin):
    """Society 42 with one member, one past and two upcoming events (one expired)"""
    backend.seed("society", "42", "members", [{"name": "Asha Rao", "role": "Chair"}])
    backend.seed("society", "42", "events/past", [{"title": "Old talk", "date": "2024-01-10"}])
    backend.seed("society", "42", "events/upcoming", [
        {"title": "Expired", "date": "2024-05-01", "venue": "Room 1"},
        {"title": "Future", "date": "2024-09-01", "venue": "Hall", "maxParticipants": 80},
    ])
    backend.seed("society", "42", "achievements", [{"title": "Best Chapter", "category": "LEADERSHIP"}])
    backend.seed("society", "42", "gallery", [{"imageUrl": "https://img.test/1.png", "title": "Orientation"}])
    return backend


async def open_dashboard(gate, admin, now=NOW, load=True) -> EntityDashboard:
    result = await gate.login(admin["email"], admin["password"])
    assert result.success
    dashboard = EntityDashboard(gate.api, EntityKind.SOCIETY, "42")
    if load:
        await dashboard.load(now=now)
    return dashboard


def titles(records):
    return [r.title for r in records]


def event_writes(backend):
    return [c for c in backend.calls if c[0] in ("POST", "PUT", "DELETE") and "/events/" in c[1]]


def stored_titles(backend, bucket):
    return [r["title"] for r in backend.records("society", "42", f"events/{bucket}")]


class TestLoad:
    """Test dashboard load and reclassification on load"""

    @pytest.mark.asyncio
    async def test_load_moves_expired_event(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin, load=False)

        result = await dashboard.load(now=NOW)

        assert result.success is True
        snapshot = dashboard.snapshot
        assert snapshot.profile.name == "Computer Society"
        assert titles(snapshot.past) == ["Old talk", "Expired"]
        assert titles(snapshot.upcoming) == ["Future"]
        assert snapshot.moved_to_past == 1
        assert snapshot.moved_to_upcoming == 0

        # Created in the new collection first, then removed from the old one
        assert event_writes(seeded) == [
            ("POST", f"{EVENTS}/past"),
            ("DELETE", f"{EVENTS}/upcoming/103"),
        ]
        assert stored_titles(seeded, "past") == ["Old talk", "Expired"]
        assert stored_titles(seeded, "upcoming") == ["Future"]
        moved = seeded.records("society", "42", "events/past")[1]
        assert moved["venue"] == "Room 1"

    @pytest.mark.asyncio
    async def test_load_without_drift_writes_nothing(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin, load=False)

        result = await dashboard.load(now=dt.date(2024, 4, 1))

        assert result.success is True
        assert event_writes(seeded) == []
        assert titles(dashboard.snapshot.upcoming) == ["Expired", "Future"]

    @pytest.mark.asyncio
    async def test_second_load_is_a_no_op(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        writes = len(event_writes(seeded))

        await dashboard.load(now=NOW)

        assert len(event_writes(seeded)) == writes
        assert dashboard.snapshot.moved_to_past == 0

    @pytest.mark.asyncio
    async def test_failed_move_leaves_record_in_place(self, gate, seeded, society_admin):
        seeded.fail("POST", f"{EVENTS}/past")
        dashboard = await open_dashboard(gate, society_admin, load=False)

        result = await dashboard.load(now=NOW)

        assert result.success is False
        assert "could not be moved" in result.error
        assert titles(dashboard.snapshot.past) == ["Old talk"]
        assert titles(dashboard.snapshot.upcoming) == ["Expired", "Future"]
        assert stored_titles(seeded, "upcoming") == ["Expired", "Future"]

    @pytest.mark.asyncio
    async def test_failed_delete_after_copy(self, gate, seeded, society_admin):
        seeded.fail("DELETE", f"{EVENTS}/upcoming/")
        dashboard = await open_dashboard(gate, society_admin, load=False)

        result = await dashboard.load(now=NOW)

        assert result.success is False
        # The copy exists in both collections, and the snapshot says so
        assert titles(dashboard.snapshot.past) == ["Old talk", "Expired"]
        assert titles(dashboard.snapshot.upcoming) == ["Expired", "Future"]

    @pytest.mark.asyncio
    async def test_fetch_failure(self, gate, seeded, society_admin):
        seeded.fail("GET", "/members")
        dashboard = await open_dashboard(gate, society_admin, load=False)

        result = await dashboard.load(now=NOW)

        assert result.success is False
        assert result.error == LOAD_FAILED
        assert result.data is None
        assert dashboard.snapshot.profile is None

    @pytest.mark.asyncio
    async def test_malformed_details(self, gate, seeded, society_admin):
        def details_as_list(request):
            if request.method == "GET" and request.url.path.endswith("/society-dashboard/society/42"):
                return httpx.Response(200, json=["not", "a", "record"])
            return None

        dashboard = await open_dashboard(gate, society_admin, load=False)
        seeded.intercept = details_as_list

        result = await dashboard.load(now=NOW)

        assert result.success is False
        assert result.error == LOAD_FAILED

    @pytest.mark.asyncio
    async def test_overview(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        await dashboard.add_event({"title": "Soon", "date": "2024-06-15"}, now=NOW)

        overview = dashboard.overview()

        assert overview.name == "Computer Society"
        assert overview.counts == {
            "members": 1,
            "past_events": 2,
            "upcoming_events": 2,
            "achievements": 1,
            "gallery": 1,
        }
        assert titles(overview.past) == ["Expired", "Old talk"]
        assert titles(overview.upcoming) == ["Soon", "Future"]


class TestEvents:
    """Test event create/edit/delete bucket routing"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("date,bucket", [("2024-07-04", Bucket.UPCOMING), ("2024-06-01", Bucket.UPCOMING),
                                             ("2024-02-02", Bucket.PAST)])
    async def test_add_event_goes_to_its_bucket(self, gate, seeded, society_admin, date, bucket):
        dashboard = await open_dashboard(gate, society_admin)

        result = await dashboard.add_event({"title": "New event", "date": date, "venue": "Lab 4"}, now=NOW)

        assert result.success is True
        assert result.data["bucket"] is bucket
        assert "New event" in stored_titles(seeded, bucket.value)
        assert "New event" not in stored_titles(seeded, bucket.other.value)
        assert dashboard.snapshot.bucket(bucket)[-1].id is not None

    @pytest.mark.asyncio
    async def test_add_event_validation(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        before = len(seeded.calls)

        result = await dashboard.add_event({"title": "No date"}, now=NOW)

        assert result.success is False
        assert result.error == "Date is required"
        assert len(seeded.calls) == before

    @pytest.mark.asyncio
    async def test_add_event_backend_failure(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        seeded.fail("POST", f"{EVENTS}/upcoming")

        result = await dashboard.add_event({"title": "Party", "date": "2024-12-01"}, now=NOW)

        assert result.success is False
        assert result.error == "Failed to save event. Please try again."
        assert titles(dashboard.snapshot.upcoming) == ["Future"]

    @pytest.mark.asyncio
    async def test_edit_in_same_bucket_is_an_update(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        writes = len(event_writes(seeded))

        result = await dashboard.update_event(104, Bucket.UPCOMING, {"title": "Future (renamed)"}, now=NOW)

        assert result.success is True
        assert result.data["moved"] is False
        assert event_writes(seeded)[writes:] == [("PUT", f"{EVENTS}/upcoming/104")]
        stored = seeded.records("society", "42", "events/upcoming")[0]
        assert stored["title"] == "Future (renamed)"
        assert stored["venue"] == "Hall"
        assert stored["maxParticipants"] == 80

    @pytest.mark.asyncio
    async def test_edit_future_to_past_moves_once(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        writes = len(event_writes(seeded))

        result = await dashboard.update_event("104", "upcoming", {"date": "2024-03-01"}, now=NOW)

        assert result.success is True
        assert result.data["moved"] is True
        assert result.data["bucket"] is Bucket.PAST
        assert event_writes(seeded)[writes:] == [
            ("POST", f"{EVENTS}/past"),
            ("DELETE", f"{EVENTS}/upcoming/104"),
        ]
        assert stored_titles(seeded, "upcoming") == []
        assert stored_titles(seeded, "past").count("Future") == 1
        moved = next(r for r in seeded.records("society", "42", "events/past") if r["title"] == "Future")
        assert moved["date"] == "2024-03-01"
        assert moved["venue"] == "Hall"
        assert moved["maxParticipants"] == 80
        assert titles(dashboard.snapshot.past).count("Future") == 1
        assert titles(dashboard.snapshot.upcoming) == []

    @pytest.mark.asyncio
    async def test_edit_move_create_failure_changes_nothing(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        seeded.fail("POST", f"{EVENTS}/past")

        result = await dashboard.update_event(104, Bucket.UPCOMING, {"date": "2024-03-01"}, now=NOW)

        assert result.success is False
        assert result.error == "Failed to save event. Please try again."
        assert titles(dashboard.snapshot.upcoming) == ["Future"]
        assert stored_titles(seeded, "upcoming") == ["Future"]
        assert not seeded.calls_to("DELETE", f"{EVENTS}/upcoming/104")

    @pytest.mark.asyncio
    async def test_edit_unknown_event(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)

        result = await dashboard.update_event(999, Bucket.PAST, {"title": "x"}, now=NOW)

        assert result.success is False
        assert result.error == "Event not found"

    @pytest.mark.asyncio
    async def test_delete_event(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)

        result = await dashboard.delete_event(104, Bucket.UPCOMING)

        assert result.success is True
        assert dashboard.snapshot.upcoming == []
        assert stored_titles(seeded, "upcoming") == []

    @pytest.mark.asyncio
    async def test_delete_event_failure(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        seeded.fail("DELETE", f"{EVENTS}/upcoming/104")

        result = await dashboard.delete_event(104, Bucket.UPCOMING)

        assert result.error == "Failed to delete event. Please try again."
        assert titles(dashboard.snapshot.upcoming) == ["Future"]


class TestContent:
    """Test profile, members, achievements and gallery"""

    @pytest.mark.asyncio
    async def test_update_profile_sends_complete_record(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        description = seeded.entities["society"]["42"]["description"]

        result = await dashboard.update_profile({"vision": "Connect every student to IEEE"})

        assert result.success is True
        entity = seeded.entities["society"]["42"]
        assert entity["vision"] == "Connect every student to IEEE"
        assert entity["name"] == "Computer Society"
        assert entity["description"] == description
        assert dashboard.snapshot.profile.vision == "Connect every student to IEEE"

    @pytest.mark.asyncio
    async def test_update_profile_snake_case_field(self, gate, seeded, society_admin):
        seeded.entities["society"]["42"]["establishedYear"] = 2001
        dashboard = await open_dashboard(gate, society_admin)

        result = await dashboard.update_profile({"established_year": 2010, "is_active": False})

        assert result.success is True
        entity = seeded.entities["society"]["42"]
        assert entity["establishedYear"] == 2010
        assert entity["isActive"] is False
        assert dashboard.snapshot.profile.established_year == 2010

    @pytest.mark.asyncio
    async def test_update_profile_unreadable_response(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        seeded.intercept = lambda request: (
            httpx.Response(200, json={"name": None}) if request.method == "PUT" else None
        )

        result = await dashboard.update_profile({"vision": "Connect every student"})

        assert result.success is True
        assert dashboard.snapshot.profile.name == "Computer Society"
        assert dashboard.snapshot.profile.vision == "Connect every student"

    @pytest.mark.asyncio
    async def test_update_profile_requires_name(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)

        result = await dashboard.update_profile({"name": ""})

        assert result.error == "Name is required"

    @pytest.mark.asyncio
    async def test_update_profile_failure(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        seeded.fail("PUT", "/society-dashboard/society/42")

        result = await dashboard.update_profile({"vision": "x"})

        assert result.error == "Failed to update. Please try again."
        assert dashboard.snapshot.profile.vision is None

    @pytest.mark.asyncio
    async def test_member_lifecycle(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)

        added = await dashboard.add_member({"name": "Ravi Kumar", "role": "Secretary", "email": "ravi@x.test"})
        assert added.success is True
        member_id = added.data.id

        updated = await dashboard.update_member(member_id, {"role": "Vice Chair"})
        assert updated.success is True
        stored = seeded.records("society", "42", "members")[-1]
        assert stored["role"] == "Vice Chair"
        assert stored["email"] == "ravi@x.test"

        deleted = await dashboard.delete_member(member_id)
        assert deleted.success is True
        assert [m.name for m in dashboard.snapshot.members] == ["Asha Rao"]

    @pytest.mark.asyncio
    async def test_member_unreadable_response_keeps_local_record(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        seeded.intercept = lambda request: (
            httpx.Response(201, json={"id": 500, "name": None, "role": "Secretary"})
            if request.method == "POST" else None
        )

        result = await dashboard.add_member({"name": "Ravi Kumar", "role": "Secretary"})

        assert result.success is True
        assert result.data.name == "Ravi Kumar"
        assert [m.name for m in dashboard.snapshot.members] == ["Asha Rao", "Ravi Kumar"]

    @pytest.mark.asyncio
    async def test_member_validation(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)

        result = await dashboard.add_member({"name": "No Position"})

        assert result.error == "Position is required"

    @pytest.mark.asyncio
    async def test_achievements(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)
        existing_id = dashboard.snapshot.achievements[0].id

        added = await dashboard.add_achievement({"title": "Hackathon winners", "position": "1st"})
        updated = await dashboard.update_achievement(existing_id, {"category": "SERVICE"})
        missing = await dashboard.update_achievement(999, {"category": "SERVICE"})

        assert added.success and updated.success
        assert missing.error == "Achievement not found"
        assert [a.category for a in dashboard.snapshot.achievements] == ["SERVICE", None]

        seeded.fail("DELETE", "/achievements/")
        failed = await dashboard.delete_achievement(existing_id)
        assert failed.error == "Failed to delete achievement. Please try again."
        assert len(dashboard.snapshot.achievements) == 2

    @pytest.mark.asyncio
    async def test_update_achievement_snake_case_field(self, gate, seeded, society_admin):
        seeded.records("society", "42", "achievements")[0]["achievedBy"] = "Old Team"
        dashboard = await open_dashboard(gate, society_admin)
        achievement_id = dashboard.snapshot.achievements[0].id

        result = await dashboard.update_achievement(achievement_id, {"achieved_by": "New Team"})

        assert result.success is True
        assert seeded.records("society", "42", "achievements")[0]["achievedBy"] == "New Team"
        assert dashboard.snapshot.achievements[0].achieved_by == "New Team"

    @pytest.mark.asyncio
    async def test_gallery(self, gate, seeded, society_admin):
        dashboard = await open_dashboard(gate, society_admin)

        added = await dashboard.add_gallery_item({"imageUrl": "https://img.test/2.png", "isPublic": False})
        assert added.success is True
        assert added.data.is_public is False

        deleted = await dashboard.delete_gallery_item(added.data.id)
        assert deleted.success is True
        assert [g.title for g in dashboard.snapshot.gallery] == ["Orientation"]

        missing_image = await dashboard.add_gallery_item({"title": "No image"})
        assert missing_image.error == "Image URL is required"
