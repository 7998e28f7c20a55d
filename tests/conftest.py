"""
Chapter Portal - Test Configuration and Fixtures

The backend is an in-memory stand-in served through httpx.MockTransport,
so every test exercises the real request layer without a network.
"""
import io
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from faker import Faker
from rich.console import Console

from portal.api_client import PortalAPIClient
from portal.app import PortalApp
from portal.auth import AuthGate
from portal.config import PortalConfig
from portal.token_store import TokenStore

fake = Faker()

BASE_URL = "http://testserver/api"

COLLECTIONS = ("members", "achievements", "gallery")
BUCKETS = ("past", "upcoming")


class BackendStub:
    """In-memory chapter backend"""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.entities: Dict[str, Dict[str, Dict[str, Any]]] = {"society": {}, "council": {}}
        self.collections: Dict[Tuple[str, str, str], List[Dict[str, Any]]] = {}
        self.failures: List[Tuple[str, str, int]] = []
        self.calls: List[Tuple[str, str]] = []
        # Called first for every request; returning a Response short-circuits routing
        self.intercept: Optional[Callable[[httpx.Request], Optional[httpx.Response]]] = None
        self._next_id = 100

    # ==================== Seeding ====================

    def add_user(self, email: str, password: str, role: str, entity_id: Any = None,
                 name: str = "Admin") -> Dict[str, Any]:
        user = {"role": role, "entityId": entity_id, "name": name, "email": email}
        self.users[email] = {"password": password, "user": user}
        return user

    def issue_token(self, email: str) -> str:
        token = f"token-{len(self.tokens) + 1}-{email}"
        self.tokens[token] = email
        return token

    def add_entity(self, kind: str, entity_id: str, **fields) -> Dict[str, Any]:
        entity = {"id": entity_id, "name": fields.pop("name", f"{kind} {entity_id}"), **fields}
        self.entities[kind][str(entity_id)] = entity
        return entity

    def seed(self, kind: str, entity_id: str, collection: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        stored = self.records(kind, entity_id, collection)
        for record in records:
            record = dict(record)
            record.setdefault("id", self._new_id())
            stored.append(record)
        return stored

    def records(self, kind: str, entity_id: str, collection: str) -> List[Dict[str, Any]]:
        return self.collections.setdefault((kind, str(entity_id), collection), [])

    def fail(self, method: str, fragment: str, status: int = 500) -> None:
        """Make requests whose path contains `fragment` fail with `status`"""
        self.failures.append((method, fragment, status))

    def calls_to(self, method: str, fragment: str = "") -> List[Tuple[str, str]]:
        return [c for c in self.calls if c[0] == method and fragment in c[1]]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    # ==================== Request handling ====================

    def _current_email(self, request: httpx.Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.tokens.get(header[len("Bearer "):])

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/api"):
            path = path[len("/api"):]
        method = request.method
        self.calls.append((method, path))

        if self.intercept is not None:
            response = self.intercept(request)
            if response is not None:
                return response

        for fail_method, fail_fragment, status in self.failures:
            if method == fail_method and fail_fragment in path:
                return httpx.Response(status, json={"message": "Simulated failure"})

        body = json.loads(request.content) if request.content else None
        parts = [p for p in path.split("/") if p]

        if parts[:1] == ["auth"]:
            return self._auth(method, parts[1:], body, request)
        if parts[:1] in (["societies"], ["councils"]):
            return self._public("society" if parts[0] == "societies" else "council", parts[1:])
        if len(parts) >= 3 and parts[0] in ("society-dashboard", "council-dashboard"):
            return self._dashboard(method, parts[1], parts[2], parts[3:], body, request)
        return httpx.Response(404, json={"error": "Not found"})

    def _auth(self, method, parts, body, request) -> httpx.Response:
        action = parts[0] if parts else ""
        if action == "login" and method == "POST":
            account = self.users.get(body.get("email"))
            if account is None or account["password"] != body.get("password"):
                return httpx.Response(401, json={"error": "Invalid credentials"})
            token = self.issue_token(body["email"])
            return httpx.Response(200, json={"token": token, "user": account["user"]})
        if action == "logout" and method == "POST":
            return httpx.Response(200, json={"message": "Logged out"})

        email = self._current_email(request)
        if email is None:
            return httpx.Response(401, json={"error": "Invalid token"})
        if action == "profile":
            return httpx.Response(200, json=self.users[email]["user"])
        if action == "change-password":
            account = self.users[email]
            if body.get("oldPassword") != account["password"]:
                return httpx.Response(400, json={"error": "Current password is incorrect"})
            account["password"] = body["newPassword"]
            return httpx.Response(200, json={"message": "Password changed"})
        return httpx.Response(404, json={"error": "Not found"})

    def _public(self, kind, parts) -> httpx.Response:
        if not parts:
            return httpx.Response(200, json=list(self.entities[kind].values()))
        entity = self.entities[kind].get(parts[0])
        if entity is None:
            return httpx.Response(404, json={"error": "Not found"})
        return httpx.Response(200, json=entity)

    def _dashboard(self, method, kind, entity_id, rest, body, request) -> httpx.Response:
        if method != "GET" and self._current_email(request) is None:
            return httpx.Response(401, json={"error": "Unauthorized"})

        if not rest:
            entity = self.entities[kind].get(entity_id)
            if entity is None:
                return httpx.Response(404, json={"error": "Not found"})
            if method == "PUT":
                entity.update(body)
            return httpx.Response(200, json=entity)

        if rest[0] == "events":
            collection, record_id = f"events/{rest[1]}", (rest[2] if len(rest) > 2 else None)
        else:
            collection, record_id = rest[0], (rest[1] if len(rest) > 1 else None)
        records = self.records(kind, entity_id, collection)

        if record_id is None:
            if method == "GET":
                return httpx.Response(200, json=records)
            if method == "POST":
                record = {**body, "id": self._new_id()}
                records.append(record)
                return httpx.Response(201, json=record)
        else:
            index = next((i for i, r in enumerate(records) if str(r["id"]) == record_id), None)
            if index is None:
                return httpx.Response(404, json={"error": "Not found"})
            if method == "PUT":
                records[index] = {**body, "id": records[index]["id"]}
                return httpx.Response(200, json=records[index])
            if method == "DELETE":
                records.pop(index)
                return httpx.Response(204)
        return httpx.Response(405, json={"error": "Method not allowed"})


@pytest.fixture
def backend() -> BackendStub:
    return BackendStub()


@pytest.fixture
def config(tmp_path) -> PortalConfig:
    return PortalConfig(api_base_url=BASE_URL, config_dir=str(tmp_path / "portal"))


@pytest.fixture
def api(backend: BackendStub) -> PortalAPIClient:
    return PortalAPIClient(BASE_URL, transport=backend.transport())


@pytest.fixture
def token_store(config: PortalConfig) -> TokenStore:
    return TokenStore(config.credentials_file, key=config.token_key)


@pytest.fixture
def gate(api: PortalAPIClient, token_store: TokenStore) -> AuthGate:
    return AuthGate(api, token_store)


@pytest.fixture
def society_admin(backend: BackendStub) -> Dict[str, Any]:
    """A SOCIETY_ADMIN account for society 42"""
    email, password = fake.email(), fake.password(length=12)
    backend.add_entity("society", "42", name="Computer Society", description=fake.sentence())
    user = backend.add_user(email, password, "SOCIETY_ADMIN", 42, name=fake.name())
    return {**user, "password": password}


@pytest.fixture
def council_admin(backend: BackendStub) -> Dict[str, Any]:
    """A COUNCIL_ADMIN account for council 5"""
    email, password = fake.email(), fake.password(length=12)
    backend.add_entity("council", "5", name="Women in Engineering Council")
    user = backend.add_user(email, password, "COUNCIL_ADMIN", "5", name=fake.name())
    return {**user, "password": password}


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120, force_terminal=False)


@pytest.fixture
def app(config: PortalConfig, backend: BackendStub, console: Console) -> PortalApp:
    return PortalApp(config, console=console, transport=backend.transport())
