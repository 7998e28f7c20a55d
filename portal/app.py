"""
Portal App - wires the client together and opens portal paths

Opening a path is the client's version of navigating the chapter site: the
AuthGate decides first, then the matching page is fetched and rendered.
A redirect to /login prompts for credentials and, on success, returns to
the page originally requested.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from rich.console import Console
from rich.prompt import Prompt

from portal.api_client import PortalAPIClient
from portal.auth import Allow, AuthGate, Decision, Loading, NotFound, Redirect
from portal.config import PortalConfig
from portal.dashboard import EntityDashboard
from portal.directory import PublicDirectory
from portal.events import Bucket
from portal.exceptions import ValidationError
from portal.logging_config import logger
from portal.results import LoginResult, OperationResult
from portal.routes import LOGIN_PATH, UNAUTHORIZED_PATH, RouteMatch, match_route
from portal.session import EntityKind, Role
from portal.token_store import TokenStore
from portal.views import PortalRenderer, bucket_title


# Content sections managed from the command line, by the record name the
# dashboard uses in its add_/update_/delete_ methods
CONTENT_SECTIONS = {
    "members": "member",
    "achievements": "achievement",
    "gallery": "gallery_item",
}


def _label(item: str) -> str:
    return item.replace("_", " ").capitalize()


def parse_assignments(tokens: Sequence[str]) -> Dict[str, str]:
    """Turn ``key=value`` tokens into a field dict"""
    fields: Dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key.strip():
            raise ValidationError(f"Expected key=value, got '{token}'")
        fields[key.strip()] = value
    return fields


class PortalApp:
    """One client session against the chapter backend"""

    def __init__(
        self,
        config: PortalConfig,
        console: Optional[Console] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.console = console or Console()
        self.renderer = PortalRenderer(self.console)
        self.api = PortalAPIClient(config.api_base_url, timeout=config.timeout, transport=transport)
        self.token_store = TokenStore(config.credentials_file, key=config.token_key)
        self.gate = AuthGate(self.api, self.token_store)
        self.directory = PublicDirectory(self.api)

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        await self.gate.resolve_existing_session()

    async def close(self) -> None:
        await self.api.aclose()

    # ==================== Auth ====================

    async def login(self, email: Optional[str] = None, password: Optional[str] = None) -> LoginResult:
        """Log in, prompting for whatever was not given"""
        if email is None:
            email = Prompt.ask("Email", console=self.console)
        if password is None:
            password = Prompt.ask("Password", password=True, console=self.console)

        result = await self.gate.login(email, password)
        if result.success:
            self.renderer.render_success(f"Welcome, {result.user.name or result.user.email}!")
        else:
            self.renderer.render_error(result.error)
        return result

    async def logout(self) -> None:
        await self.gate.logout()
        self.renderer.render_success("Logged out successfully")

    def status(self) -> None:
        self.renderer.render_status(self.gate.session)

    async def change_password(
        self,
        current: Optional[str] = None,
        new: Optional[str] = None,
        confirm: Optional[str] = None,
    ) -> OperationResult:
        if not self.gate.session.is_authenticated:
            self.renderer.render_error("Please login first")
            return OperationResult.fail("Please login first")

        if current is None:
            current = Prompt.ask("Current password", password=True, console=self.console)
        if new is None:
            new = Prompt.ask("New password", password=True, console=self.console)
        if confirm is None:
            confirm = Prompt.ask("Confirm new password", password=True, console=self.console)

        result = await self.gate.change_password(current, new, confirm)
        if result.success:
            self.renderer.render_success("Password changed successfully")
        else:
            self.renderer.render_error(result.error)
        return result

    # ==================== Navigation ====================

    async def open(self, path: str, interactive: bool = True) -> Decision:
        """Run the gate for `path` and render the page it allows"""
        decision = self.gate.authorize_path(path)

        if isinstance(decision, NotFound):
            self.renderer.render_not_found(decision.path)
        elif isinstance(decision, Loading):
            self.renderer.render_info("Loading...")
        elif isinstance(decision, Redirect):
            if decision.path == LOGIN_PATH:
                if not interactive:
                    self.renderer.render_warning(f"Login required to open {path}")
                    return decision
                result = await self.login()
                if result.success:
                    return await self.open(decision.from_location or result.redirect_to, interactive)
            else:
                self.renderer.render_unauthorized()
        elif isinstance(decision, Allow):
            await self._render(match_route(path), interactive)

        return decision

    async def _render(self, matched: RouteMatch, interactive: bool) -> None:
        name = matched.route.name
        kind = matched.entity_kind

        if name == "landing":
            self.renderer.render_landing()
        elif name == "unauthorized":
            self.renderer.render_unauthorized()
        elif name == "login":
            if self.gate.session.is_authenticated:
                await self.open(self.gate.dashboard_route(), interactive)
            elif interactive:
                result = await self.login()
                if result.success:
                    await self.open(result.redirect_to, interactive)
            else:
                self.renderer.render_info("Run 'chapter-portal login' to log in")
        elif name == "dashboard":
            target = self.gate.dashboard_route()
            if target == UNAUTHORIZED_PATH:
                self.renderer.render_unauthorized()
            else:
                await self.open(target, interactive)
        elif name.endswith(":directory"):
            kind = EntityKind(name.split(":", 1)[0])
            self.renderer.render_entity_list(kind, await self.directory.list_entities(kind))
        elif name.endswith(":detail"):
            profile = await self.directory.get_entity(kind, matched.entity_id)
            if profile is None:
                self.renderer.render_not_found(matched.path)
            else:
                self.renderer.render_entity(kind, profile)
        elif ":public:" in name:
            await self._render_public(kind, matched.entity_id, matched.section)
        elif ":dashboard:" in name:
            await self._render_dashboard(kind, matched.entity_id, matched.section)

    async def _render_public(self, kind: EntityKind, entity_id: str, page: str) -> None:
        if page in ("past-events", "upcoming-events"):
            bucket = Bucket.PAST if page == "past-events" else Bucket.UPCOMING
            events = await self.directory.list_events(kind, entity_id, bucket)
            self.renderer.render_events(bucket_title(bucket.value), events)
        elif page == "achievements":
            self.renderer.render_achievements(await self.directory.list_achievements(kind, entity_id))
        elif page == "gallery":
            self.renderer.render_gallery(await self.directory.list_gallery(kind, entity_id))

    async def _render_dashboard(self, kind: EntityKind, entity_id: str, section: str) -> None:
        dashboard = await self.load_dashboard(kind, entity_id)
        if dashboard is not None:
            self._show_section(dashboard, section)

    def _show_section(self, dashboard: EntityDashboard, section: str) -> None:
        snapshot = dashboard.snapshot

        if section == "overview":
            self.renderer.render_overview(dashboard.kind, dashboard.overview())
        elif section == "events":
            overview = dashboard.overview()
            self.renderer.render_events("Upcoming Events", overview.upcoming)
            self.renderer.render_events("Past Events", overview.past)
        elif section == "members":
            self.renderer.render_members(snapshot.members)
        elif section == "achievements":
            self.renderer.render_achievements(snapshot.achievements)
        elif section == "gallery":
            self.renderer.render_gallery(snapshot.gallery)
        elif section == "settings":
            self.renderer.render_settings(self.gate.session, snapshot.profile)
        elif section == "profile" and snapshot.profile is not None:
            self.renderer.render_entity(dashboard.kind, snapshot.profile)

    async def load_dashboard(self, kind: EntityKind, entity_id: str) -> Optional[EntityDashboard]:
        """Build and load a dashboard; None when nothing could be loaded"""
        dashboard = EntityDashboard(self.api, kind, entity_id, timezone=self.config.timezone)
        result = await dashboard.load()
        if result.data is None:
            self.renderer.render_error(result.error)
            return None
        if result.error:
            self.renderer.render_warning(result.error)
        return dashboard

    # ==================== Dashboard commands ====================

    def _own_entity(self) -> Optional[Tuple[EntityKind, str]]:
        session = self.gate.session
        if session.role is Role.SOCIETY_ADMIN:
            kind = EntityKind.SOCIETY
        elif session.role is Role.COUNCIL_ADMIN:
            kind = EntityKind.COUNCIL
        else:
            self.renderer.render_error("Dashboard commands need a society or council admin login")
            return None

        if not isinstance(self.gate.authorize(kind, session.entity_id), Allow):
            self.renderer.render_unauthorized()
            return None
        return kind, session.entity_id

    async def _own_dashboard(self) -> Optional[EntityDashboard]:
        own = self._own_entity()
        if own is None:
            return None
        return await self.load_dashboard(*own)

    def _report(self, result: OperationResult, message: str) -> OperationResult:
        if result.success:
            self.renderer.render_success(message)
        else:
            self.renderer.render_error(result.error)
        return result

    async def events_list(self) -> Optional[EntityDashboard]:
        dashboard = await self._own_dashboard()
        if dashboard is not None:
            self._show_section(dashboard, "events")
        return dashboard

    async def events_add(self, fields: Dict[str, Any]) -> OperationResult:
        dashboard = await self._own_dashboard()
        if dashboard is None:
            return OperationResult.fail("Dashboard unavailable")
        result = await dashboard.add_event(fields)
        bucket = result.data["bucket"].value if result.success else ""
        return self._report(result, f"Event added to {bucket} events")

    async def events_edit(self, event_id: str, fields: Dict[str, Any],
                          bucket: Optional[str] = None) -> OperationResult:
        dashboard = await self._own_dashboard()
        if dashboard is None:
            return OperationResult.fail("Dashboard unavailable")

        found = self._locate(dashboard, event_id, bucket)
        if found is None:
            return self._report(OperationResult.fail("Event not found"), "")

        result = await dashboard.update_event(event_id, found, fields)
        if result.success and result.data["moved"]:
            return self._report(result, f"Event saved and moved to {result.data['bucket'].value} events")
        return self._report(result, "Event saved")

    async def events_delete(self, event_id: str, bucket: Optional[str] = None) -> OperationResult:
        dashboard = await self._own_dashboard()
        if dashboard is None:
            return OperationResult.fail("Dashboard unavailable")

        found = self._locate(dashboard, event_id, bucket)
        if found is None:
            return self._report(OperationResult.fail("Event not found"), "")
        return self._report(await dashboard.delete_event(event_id, found), "Event deleted")

    async def events_reclassify(self) -> Optional[EntityDashboard]:
        """Load the dashboard, which moves drifted events, and report what moved"""
        dashboard = await self._own_dashboard()
        if dashboard is not None:
            snapshot = dashboard.snapshot
            if snapshot.moved_to_past or snapshot.moved_to_upcoming:
                self.renderer.render_success(
                    f"Moved {snapshot.moved_to_past} event(s) to past and "
                    f"{snapshot.moved_to_upcoming} to upcoming"
                )
            else:
                self.renderer.render_info("All events are already in the right list")
        return dashboard

    @staticmethod
    def _locate(dashboard: EntityDashboard, event_id: str, bucket: Optional[str]) -> Optional[Bucket]:
        buckets: List[Bucket] = [Bucket(bucket)] if bucket else [Bucket.UPCOMING, Bucket.PAST]
        for candidate in buckets:
            if any(record.same_id(event_id) for record in dashboard.snapshot.bucket(candidate)):
                return candidate
        logger.debug(f"Event {event_id} not found in {[b.value for b in buckets]}")
        return None

    # ==================== Content commands ====================

    @staticmethod
    def _content_item(section: str) -> str:
        if section not in CONTENT_SECTIONS:
            raise ValidationError(
                f"Unknown section '{section}'. Use one of: {', '.join(CONTENT_SECTIONS)}",
                field="section",
            )
        return CONTENT_SECTIONS[section]

    async def content_list(self, section: str) -> Optional[EntityDashboard]:
        self._content_item(section)
        dashboard = await self._own_dashboard()
        if dashboard is not None:
            self._show_section(dashboard, section)
        return dashboard

    async def content_add(self, section: str, fields: Dict[str, Any]) -> OperationResult:
        item = self._content_item(section)
        dashboard = await self._own_dashboard()
        if dashboard is None:
            return OperationResult.fail("Dashboard unavailable")
        result = await getattr(dashboard, f"add_{item}")(fields)
        return self._report(result, f"{_label(item)} added")

    async def content_edit(self, section: str, record_id: str, fields: Dict[str, Any]) -> OperationResult:
        item = self._content_item(section)
        if not hasattr(EntityDashboard, f"update_{item}"):
            return self._report(OperationResult.fail(f"{_label(item)}s cannot be edited"), "")
        dashboard = await self._own_dashboard()
        if dashboard is None:
            return OperationResult.fail("Dashboard unavailable")
        result = await getattr(dashboard, f"update_{item}")(record_id, fields)
        return self._report(result, f"{_label(item)} saved")

    async def content_delete(self, section: str, record_id: str) -> OperationResult:
        item = self._content_item(section)
        dashboard = await self._own_dashboard()
        if dashboard is None:
            return OperationResult.fail("Dashboard unavailable")
        result = await getattr(dashboard, f"delete_{item}")(record_id)
        return self._report(result, f"{_label(item)} deleted")

    async def profile_show(self) -> Optional[EntityDashboard]:
        dashboard = await self._own_dashboard()
        if dashboard is not None:
            self._show_section(dashboard, "profile")
        return dashboard

    async def profile_edit(self, fields: Dict[str, Any]) -> OperationResult:
        dashboard = await self._own_dashboard()
        if dashboard is None:
            return OperationResult.fail("Dashboard unavailable")
        return self._report(await dashboard.update_profile(fields), "Profile updated")
