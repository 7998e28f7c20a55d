"""
Entity Dashboard
================

Admin CRUD over one society's or council's content: profile, slate members,
events, achievements and gallery.

Events live in two backend collections, ``events/past`` and
``events/upcoming``. Every event write goes through the classifier so a
record always lands in the collection its date calls for, and ``load()``
moves any record that has drifted (an upcoming event whose day has passed).

In-memory state is only changed after the backend confirmed the write.
"""

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import ValidationError as PydanticValidationError

from portal.api_client import PortalAPIClient
from portal.events import Bucket, DateLike, place_on_create, place_on_edit, reclassify_all, today
from portal.exceptions import PortalError, ValidationError
from portal.logging_config import logger
from portal.results import OperationResult
from portal.schemas import (
    Achievement,
    EntityProfile,
    EventRecord,
    GalleryItem,
    PortalModel,
    SlateMember,
    parse_list,
    parse_record,
)
from portal.session import EntityKind

LOAD_FAILED = "Failed to load dashboard data. Please try again."


def _save_failed(noun: str) -> str:
    return f"Failed to save {noun}. Please try again."


def _delete_failed(noun: str) -> str:
    return f"Failed to delete {noun}. Please try again."


@dataclass
class DashboardSnapshot:
    """Last known state of an entity's content"""
    profile: Optional[EntityProfile] = None
    members: List[SlateMember] = field(default_factory=list)
    past: List[EventRecord] = field(default_factory=list)
    upcoming: List[EventRecord] = field(default_factory=list)
    achievements: List[Achievement] = field(default_factory=list)
    gallery: List[GalleryItem] = field(default_factory=list)
    # Records moved between collections by the last load
    moved_to_past: int = 0
    moved_to_upcoming: int = 0

    def bucket(self, bucket: Bucket) -> List[EventRecord]:
        return self.past if bucket is Bucket.PAST else self.upcoming

    def set_bucket(self, bucket: Bucket, records: List[EventRecord]) -> None:
        if bucket is Bucket.PAST:
            self.past = records
        else:
            self.upcoming = records


@dataclass
class DashboardOverview:
    name: str
    counts: Dict[str, int]
    past: List[EventRecord]
    upcoming: List[EventRecord]


def _find(records: List[PortalModel], record_id: Any) -> Optional[PortalModel]:
    for record in records:
        if record.same_id(record_id):
            return record
    return None


def _without(records: List[PortalModel], record_id: Any) -> list:
    return [r for r in records if not r.same_id(record_id)]


def _replaced(records: List[PortalModel], record_id: Any, new: PortalModel) -> list:
    return [new if r.same_id(record_id) else r for r in records]


def _saved(model: Type[PortalModel], response: Any, fallback: PortalModel) -> PortalModel:
    """The backend's copy of a written record when it sent one back"""
    if isinstance(response, dict) and response.get("id") is not None:
        return parse_record(model, response) or fallback
    return fallback


def _event_day(record: EventRecord) -> dt.date:
    return record.date or dt.date.min


class EntityDashboard:
    """Dashboard operations for one entity the current admin manages"""

    def __init__(self, api: PortalAPIClient, kind: EntityKind, entity_id: str,
                 timezone: Optional[str] = None):
        self.api = api
        self.kind = EntityKind(kind)
        self.entity_id = str(entity_id)
        self.timezone = timezone
        self.snapshot = DashboardSnapshot()

    def _now(self, now: Optional[DateLike]) -> DateLike:
        return now if now is not None else today(self.timezone)

    def _failed(self, context: str, error: PortalError, message: str) -> OperationResult:
        logger.warning(f"{context} failed for {self.kind.value} {self.entity_id}: {error.message}")
        return OperationResult.fail(message)

    # ==================== Load ====================

    async def load(self, now: Optional[DateLike] = None) -> OperationResult:
        """
        Fetch everything, then move drifted events into the right collection.

        A move is create-in-target then delete-from-source. Only moves whose
        writes both succeeded are reflected in the snapshot; a failed move
        leaves that record where it was and the result carries an error.
        """
        api, kind, entity_id = self.api, self.kind, self.entity_id
        try:
            profile = EntityProfile.model_validate(await api.get_entity_details(kind, entity_id))
            members = parse_list(SlateMember, await api.list_members(kind, entity_id))
            past = parse_list(EventRecord, await api.list_events(kind, entity_id, Bucket.PAST.value))
            upcoming = parse_list(EventRecord, await api.list_events(kind, entity_id, Bucket.UPCOMING.value))
            achievements = parse_list(Achievement, await api.list_achievements(kind, entity_id))
            gallery = parse_list(GalleryItem, await api.list_gallery(kind, entity_id))
        except PortalError as e:
            return self._failed("Dashboard load", e, LOAD_FAILED)
        except PydanticValidationError as e:
            logger.warning(f"Malformed details for {kind.value} {entity_id}: {e}")
            return OperationResult.fail(LOAD_FAILED)

        snapshot = DashboardSnapshot(
            profile=profile,
            members=members,
            past=past,
            upcoming=upcoming,
            achievements=achievements,
            gallery=gallery,
        )

        error = None
        partition = reclassify_all(past, upcoming, self._now(now))
        if partition is not None:
            moved_past, moved_upcoming, failures = 0, 0, 0
            for source, records in ((Bucket.UPCOMING, partition.moved_to_past),
                                    (Bucket.PAST, partition.moved_to_upcoming)):
                for record in records:
                    if await self._move(snapshot, record, source, source.other):
                        if source is Bucket.UPCOMING:
                            moved_past += 1
                        else:
                            moved_upcoming += 1
                    else:
                        failures += 1
            snapshot.moved_to_past, snapshot.moved_to_upcoming = moved_past, moved_upcoming
            logger.log_classification(kind.value, entity_id, moved_past, moved_upcoming)
            if failures:
                error = f"{failures} event(s) could not be moved to the right list"

        self.snapshot = snapshot
        return OperationResult(success=error is None, data=snapshot, error=error)

    async def _move(self, snapshot: DashboardSnapshot, record: EventRecord,
                    source: Bucket, target: Bucket) -> bool:
        """Create `record` in `target`, then delete it from `source`"""
        try:
            response = await self.api.create_event(
                self.kind, self.entity_id, target.value, record.to_payload()
            )
        except PortalError as e:
            logger.warning(f"Could not copy event {record.id} to {target.value}: {e.message}")
            return False

        created = _saved(EventRecord, response, record)
        snapshot.set_bucket(target, snapshot.bucket(target) + [created])

        try:
            await self.api.delete_event(self.kind, self.entity_id, source.value, record.id)
        except PortalError as e:
            # The record now exists in both collections until the next load retries
            logger.warning(
                f"Event {record.id} copied to {target.value} but not removed from "
                f"{source.value}: {e.message}"
            )
            return False

        snapshot.set_bucket(source, _without(snapshot.bucket(source), record.id))
        return True

    def overview(self) -> DashboardOverview:
        """Counts plus events sorted for display"""
        s = self.snapshot
        return DashboardOverview(
            name=s.profile.name if s.profile else "",
            counts={
                "members": len(s.members),
                "past_events": len(s.past),
                "upcoming_events": len(s.upcoming),
                "achievements": len(s.achievements),
                "gallery": len(s.gallery),
            },
            past=sorted(s.past, key=_event_day, reverse=True),
            upcoming=sorted(s.upcoming, key=_event_day),
        )

    # ==================== Profile ====================

    async def update_profile(self, fields: Dict[str, Any]) -> OperationResult:
        """Merge `fields` onto the current details and send the complete record"""
        current = self.snapshot.profile
        base = current.model_dump(by_alias=True, exclude_none=True, mode="json") if current else {}
        try:
            profile = EntityProfile.from_form({**base, **EntityProfile.wire_keys(fields)})
        except ValidationError as e:
            return OperationResult.fail(e.message)

        try:
            response = await self.api.update_entity(self.kind, self.entity_id, profile.to_payload())
        except PortalError as e:
            return self._failed("Profile update", e, "Failed to update. Please try again.")

        if isinstance(response, dict) and response:
            profile = parse_record(EntityProfile, response) or profile
        self.snapshot.profile = profile
        return OperationResult.ok(profile)

    # ==================== Events ====================

    async def add_event(self, fields: Dict[str, Any], now: Optional[DateLike] = None) -> OperationResult:
        """Create an event in the collection its date belongs to"""
        try:
            record = EventRecord.from_form(fields)
        except ValidationError as e:
            return OperationResult.fail(e.message)

        bucket = place_on_create(record, self._now(now))
        try:
            response = await self.api.create_event(
                self.kind, self.entity_id, bucket.value, record.to_payload()
            )
        except PortalError as e:
            return self._failed("Event create", e, _save_failed("event"))

        created = _saved(EventRecord, response, record)
        self.snapshot.set_bucket(bucket, self.snapshot.bucket(bucket) + [created])
        return OperationResult.ok({"bucket": bucket, "event": created})

    async def update_event(self, event_id: Any, bucket: Bucket, fields: Dict[str, Any],
                           now: Optional[DateLike] = None) -> OperationResult:
        """
        Apply `fields` to an event and keep it in the right collection.

        Same bucket: PUT in place. Different bucket: POST to the new
        collection, then DELETE from the old one.
        """
        bucket = Bucket(bucket)
        existing = _find(self.snapshot.bucket(bucket), event_id)
        if existing is None:
            return OperationResult.fail("Event not found")

        try:
            placement = place_on_edit(existing, fields, bucket, self._now(now))
        except ValidationError as e:
            return OperationResult.fail(e.message)

        record = placement.record
        if not placement.moved:
            try:
                response = await self.api.update_event(
                    self.kind, self.entity_id, bucket.value, event_id, record.to_payload()
                )
            except PortalError as e:
                return self._failed("Event update", e, _save_failed("event"))
            saved = _saved(EventRecord, response, record)
            self.snapshot.set_bucket(bucket, _replaced(self.snapshot.bucket(bucket), event_id, saved))
            return OperationResult.ok({"bucket": bucket, "event": saved, "moved": False})

        target = placement.bucket
        try:
            response = await self.api.create_event(
                self.kind, self.entity_id, target.value, record.to_payload()
            )
        except PortalError as e:
            return self._failed("Event move", e, _save_failed("event"))

        created = _saved(EventRecord, response, record)
        self.snapshot.set_bucket(target, self.snapshot.bucket(target) + [created])

        try:
            await self.api.delete_event(self.kind, self.entity_id, bucket.value, event_id)
        except PortalError as e:
            return self._failed(
                "Event move",
                e,
                f"Event was saved to {target.value} events but could not be removed "
                f"from {bucket.value} events. Please try again.",
            )

        self.snapshot.set_bucket(bucket, _without(self.snapshot.bucket(bucket), event_id))
        return OperationResult.ok({"bucket": target, "event": created, "moved": True})

    async def delete_event(self, event_id: Any, bucket: Bucket) -> OperationResult:
        bucket = Bucket(bucket)
        try:
            await self.api.delete_event(self.kind, self.entity_id, bucket.value, event_id)
        except PortalError as e:
            return self._failed("Event delete", e, _delete_failed("event"))
        self.snapshot.set_bucket(bucket, _without(self.snapshot.bucket(bucket), event_id))
        return OperationResult.ok()

    # ==================== Members / achievements / gallery ====================

    async def _add(self, attr: str, model: Type[PortalModel], noun: str,
                   create: Callable[..., Awaitable[Any]], fields: Dict[str, Any]) -> OperationResult:
        try:
            record = model.from_form(fields)
        except ValidationError as e:
            return OperationResult.fail(e.message)
        try:
            response = await create(self.kind, self.entity_id, record.to_payload())
        except PortalError as e:
            return self._failed(f"{noun.capitalize()} create", e, _save_failed(noun))
        saved = _saved(model, response, record)
        setattr(self.snapshot, attr, getattr(self.snapshot, attr) + [saved])
        return OperationResult.ok(saved)

    async def _update(self, attr: str, model: Type[PortalModel], noun: str,
                      update: Callable[..., Awaitable[Any]], record_id: Any,
                      fields: Dict[str, Any]) -> OperationResult:
        existing = _find(getattr(self.snapshot, attr), record_id)
        if existing is None:
            return OperationResult.fail(f"{noun.capitalize()} not found")
        base = existing.model_dump(by_alias=True, exclude_none=True, mode="json")
        try:
            record = model.from_form({**base, **model.wire_keys(fields)})
        except ValidationError as e:
            return OperationResult.fail(e.message)
        try:
            response = await update(self.kind, self.entity_id, record_id, record.to_payload())
        except PortalError as e:
            return self._failed(f"{noun.capitalize()} update", e, _save_failed(noun))
        saved = _saved(model, response, record)
        setattr(self.snapshot, attr, _replaced(getattr(self.snapshot, attr), record_id, saved))
        return OperationResult.ok(saved)

    async def _delete(self, attr: str, noun: str, delete: Callable[..., Awaitable[Any]],
                      record_id: Any) -> OperationResult:
        try:
            await delete(self.kind, self.entity_id, record_id)
        except PortalError as e:
            return self._failed(f"{noun.capitalize()} delete", e, _delete_failed(noun))
        setattr(self.snapshot, attr, _without(getattr(self.snapshot, attr), record_id))
        return OperationResult.ok()

    async def add_member(self, fields: Dict[str, Any]) -> OperationResult:
        return await self._add("members", SlateMember, "member", self.api.create_member, fields)

    async def update_member(self, member_id: Any, fields: Dict[str, Any]) -> OperationResult:
        return await self._update("members", SlateMember, "member", self.api.update_member, member_id, fields)

    async def delete_member(self, member_id: Any) -> OperationResult:
        return await self._delete("members", "member", self.api.delete_member, member_id)

    async def add_achievement(self, fields: Dict[str, Any]) -> OperationResult:
        return await self._add(
            "achievements", Achievement, "achievement", self.api.create_achievement, fields
        )

    async def update_achievement(self, achievement_id: Any, fields: Dict[str, Any]) -> OperationResult:
        return await self._update(
            "achievements", Achievement, "achievement", self.api.update_achievement,
            achievement_id, fields,
        )

    async def delete_achievement(self, achievement_id: Any) -> OperationResult:
        return await self._delete(
            "achievements", "achievement", self.api.delete_achievement, achievement_id
        )

    async def add_gallery_item(self, fields: Dict[str, Any]) -> OperationResult:
        return await self._add("gallery", GalleryItem, "gallery item", self.api.create_gallery_item, fields)

    async def delete_gallery_item(self, item_id: Any) -> OperationResult:
        return await self._delete("gallery", "gallery item", self.api.delete_gallery_item, item_id)
