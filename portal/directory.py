"""
Public directory of societies and councils

Read-only; no session needed. Backend failures degrade to an empty listing
or a missing entity, and unreadable records are left out, so the public
pages always render.
"""

from typing import List, Optional

from portal.api_client import PortalAPIClient
from portal.events import Bucket
from portal.exceptions import PortalError
from portal.logging_config import logger
from portal.schemas import Achievement, EntityProfile, EventRecord, GalleryItem, parse_list, parse_record
from portal.session import EntityKind


class PublicDirectory:
    def __init__(self, api: PortalAPIClient):
        self.api = api

    async def list_entities(self, kind: EntityKind) -> List[EntityProfile]:
        try:
            return parse_list(EntityProfile, await self.api.list_entities(kind))
        except PortalError as e:
            logger.warning(f"Failed to load {kind.value} directory: {e.message}")
            return []

    async def list_societies(self) -> List[EntityProfile]:
        return await self.list_entities(EntityKind.SOCIETY)

    async def list_councils(self) -> List[EntityProfile]:
        return await self.list_entities(EntityKind.COUNCIL)

    async def get_entity(self, kind: EntityKind, entity_id: str) -> Optional[EntityProfile]:
        try:
            data = await self.api.get_public_entity(kind, entity_id)
        except PortalError as e:
            logger.warning(f"Failed to load {kind.value} {entity_id}: {e.message}")
            return None
        if not data:
            return None
        return parse_record(EntityProfile, data)

    # Public society pages read the same collections the dashboard edits

    async def list_events(self, kind: EntityKind, entity_id: str, bucket: Bucket) -> List[EventRecord]:
        bucket = Bucket(bucket)
        try:
            data = await self.api.list_events(kind, entity_id, bucket.value)
        except PortalError as e:
            logger.warning(f"Failed to load {bucket.value} events of {kind.value} {entity_id}: {e.message}")
            return []
        return parse_list(EventRecord, data)

    async def list_achievements(self, kind: EntityKind, entity_id: str) -> List[Achievement]:
        try:
            return parse_list(Achievement, await self.api.list_achievements(kind, entity_id))
        except PortalError as e:
            logger.warning(f"Failed to load achievements of {kind.value} {entity_id}: {e.message}")
            return []

    async def list_gallery(self, kind: EntityKind, entity_id: str) -> List[GalleryItem]:
        """Public gallery items only"""
        try:
            items = parse_list(GalleryItem, await self.api.list_gallery(kind, entity_id))
        except PortalError as e:
            logger.warning(f"Failed to load gallery of {kind.value} {entity_id}: {e.message}")
            return []
        return [item for item in items if item.is_public]
