"""
Chapter Backend API Client
==========================

JSON-over-HTTP client for the chapter website backend. Every method returns
the decoded JSON body (or ``{}`` for empty / non-JSON success responses) and
raises a PortalError subclass on failure:

    TransportError          backend unreachable
    BackendError            non-2xx response
    MalformedResponseError  2xx response with a body that is not valid JSON
"""

import time
from typing import Any, Dict, List, Optional

import httpx

from portal.exceptions import (
    BackendError,
    InvalidCredentialsError,
    MalformedResponseError,
    TransportError,
)
from portal.logging_config import logger
from portal.session import EntityKind


class PortalAPIClient:
    """Async client for the chapter backend"""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token: Optional[str] = None

        client_kwargs: Dict[str, Any] = {"base_url": self.base_url, "transport": transport}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def set_token(self, token: Optional[str]) -> None:
        self.token = token

    def _get_headers(self) -> Dict[str, str]:
        """Request headers; the bearer token is omitted when there is none"""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, endpoint: str, data: Optional[Any] = None) -> Any:
        """Make HTTP request and decode the response"""
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method, endpoint, json=data, headers=self._get_headers()
            )
        except httpx.RequestError as e:
            logger.warning(f"HTTP {method} {endpoint} failed: {type(e).__name__}: {e}")
            raise TransportError(f"Cannot connect to server: {e}") from e

        duration_ms = (time.perf_counter() - start) * 1000
        logger.log_request(method, endpoint, response.status_code, duration_ms)

        if not response.is_success:
            raise BackendError(response.status_code, self._error_message(response))

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return {}

        text = response.text
        if not text.strip():
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError() from e

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            for key in ("error", "message", "detail"):
                if body.get(key):
                    return str(body[key])
        return None

    # ==================== Authentication ====================

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        try:
            return await self._request("POST", "/auth/login", {"email": email, "password": password})
        except BackendError as e:
            if e.status_code == 401:
                raise InvalidCredentialsError(e.message) from e
            raise

    async def logout(self) -> Dict[str, Any]:
        return await self._request("POST", "/auth/logout")

    async def get_profile(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/profile")

    async def change_password(self, old_password: str, new_password: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/auth/change-password",
            {"oldPassword": old_password, "newPassword": new_password},
        )

    # ==================== Public directory ====================

    async def list_entities(self, kind: EntityKind) -> List[Dict[str, Any]]:
        return await self._request("GET", kind.public_prefix)

    async def get_public_entity(self, kind: EntityKind, entity_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{kind.public_prefix}/{entity_id}")

    # ==================== Entity dashboard ====================

    def _dashboard_path(self, kind: EntityKind, entity_id: str, *parts: Any) -> str:
        path = f"{kind.dashboard_prefix}/{entity_id}"
        for part in parts:
            path += f"/{part}"
        return path

    async def get_entity_details(self, kind: EntityKind, entity_id: str) -> Dict[str, Any]:
        return await self._request("GET", self._dashboard_path(kind, entity_id))

    async def update_entity(self, kind: EntityKind, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", self._dashboard_path(kind, entity_id), data)

    # Slate members

    async def list_members(self, kind: EntityKind, entity_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", self._dashboard_path(kind, entity_id, "members"))

    async def create_member(self, kind: EntityKind, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", self._dashboard_path(kind, entity_id, "members"), data)

    async def update_member(self, kind: EntityKind, entity_id: str, member_id: Any,
                            data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", self._dashboard_path(kind, entity_id, "members", member_id), data)

    async def delete_member(self, kind: EntityKind, entity_id: str, member_id: Any) -> Dict[str, Any]:
        return await self._request("DELETE", self._dashboard_path(kind, entity_id, "members", member_id))

    # Events, one collection per bucket ("past" / "upcoming")

    async def list_events(self, kind: EntityKind, entity_id: str, bucket: str) -> List[Dict[str, Any]]:
        return await self._request("GET", self._dashboard_path(kind, entity_id, "events", bucket))

    async def create_event(self, kind: EntityKind, entity_id: str, bucket: str,
                           data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", self._dashboard_path(kind, entity_id, "events", bucket), data)

    async def update_event(self, kind: EntityKind, entity_id: str, bucket: str, event_id: Any,
                           data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "PUT", self._dashboard_path(kind, entity_id, "events", bucket, event_id), data
        )

    async def delete_event(self, kind: EntityKind, entity_id: str, bucket: str, event_id: Any) -> Dict[str, Any]:
        return await self._request("DELETE", self._dashboard_path(kind, entity_id, "events", bucket, event_id))

    # Achievements

    async def list_achievements(self, kind: EntityKind, entity_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", self._dashboard_path(kind, entity_id, "achievements"))

    async def create_achievement(self, kind: EntityKind, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", self._dashboard_path(kind, entity_id, "achievements"), data)

    async def update_achievement(self, kind: EntityKind, entity_id: str, achievement_id: Any,
                                 data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "PUT", self._dashboard_path(kind, entity_id, "achievements", achievement_id), data
        )

    async def delete_achievement(self, kind: EntityKind, entity_id: str, achievement_id: Any) -> Dict[str, Any]:
        return await self._request("DELETE", self._dashboard_path(kind, entity_id, "achievements", achievement_id))

    # Gallery

    async def list_gallery(self, kind: EntityKind, entity_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", self._dashboard_path(kind, entity_id, "gallery"))

    async def create_gallery_item(self, kind: EntityKind, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", self._dashboard_path(kind, entity_id, "gallery"), data)

    async def delete_gallery_item(self, kind: EntityKind, entity_id: str, item_id: Any) -> Dict[str, Any]:
        return await self._request("DELETE", self._dashboard_path(kind, entity_id, "gallery", item_id))
