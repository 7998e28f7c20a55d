"""
Portal Authentication and Route Gate
====================================

AuthGate owns the current Session for the lifetime of the client:

    resolve_existing_session()   at startup, turn a persisted token into a session
    login(email, password)       authenticate and pick the admin's dashboard
    logout()                     always ends the session, even if the backend call fails
    authorize(...)               decide whether a protected view may render

Every backend failure (bad credentials, expired token, network error,
malformed response) is treated the same way: the operation failed, nothing
is retried, and the caller gets a message string rather than an exception.
"""

from dataclasses import dataclass
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from portal.api_client import PortalAPIClient
from portal.exceptions import BackendError, InvalidTokenError, PortalError
from portal.logging_config import logger, set_entity_id, set_user_email
from portal.results import LoginResult, OperationResult
from portal.routes import LOGIN_PATH, UNAUTHORIZED_PATH, dashboard_path, match_route
from portal.schemas import LoginResponse, UserProfile
from portal.session import EntityKind, Role, Session
from portal.token_store import TokenStore

MIN_PASSWORD_LENGTH = 8


# ==================== Authorization decisions ====================

@dataclass(frozen=True)
class Loading:
    """Session resolution still in flight; render a loading state"""


@dataclass(frozen=True)
class Allow:
    """Render the requested view"""


@dataclass(frozen=True)
class Redirect:
    """Go to `path` instead; `from_location` is where login should return to"""
    path: str
    from_location: Optional[str] = None


@dataclass(frozen=True)
class NotFound:
    """No route matches the requested path"""
    path: str


Decision = Union[Loading, Allow, Redirect, NotFound]


class AuthGate:
    """Session/identity gate for the portal"""

    def __init__(self, api: PortalAPIClient, token_store: TokenStore):
        self.api = api
        self.token_store = token_store
        self.session = Session()

    # ==================== Session lifecycle ====================

    async def resolve_existing_session(self) -> None:
        """
        Resolve a persisted token into a session.

        Any failure discards the token and leaves the client logged out;
        nothing is shown to the user.
        """
        try:
            token = await self.token_store.load()
            if not token:
                return

            self.api.set_token(token)
            try:
                profile = UserProfile.model_validate(await self.api.get_profile())
                if not profile.role:
                    raise InvalidTokenError()
            except (PortalError, PydanticValidationError) as e:
                logger.log_auth_event("resolve", False, reason=str(e))
                await self._discard()
                return

            self._apply(token, profile)
            logger.log_auth_event("resolve", True, user_email=profile.email)
        finally:
            self.session.loading = False

    async def login(self, email: str, password: str) -> LoginResult:
        """Authenticate with email and password"""
        if not email or not email.strip() or not password:
            return LoginResult(success=False, error="Please fill in all fields")

        try:
            data = await self.api.login(email.strip(), password)
        except PortalError as e:
            return await self._login_failed(email, e.message or "Login failed")

        try:
            response = LoginResponse.model_validate(data)
        except PydanticValidationError:
            return await self._login_failed(email, "Invalid response from server")

        self._apply(response.token, response.user)
        try:
            await self.token_store.save(response.token)
        except OSError as e:
            logger.log_error_with_context(e, context="saving auth token")

        logger.log_auth_event("login", True, user_email=response.user.email)
        return LoginResult(
            success=True,
            user=response.user,
            redirect_to=self.dashboard_route(response.user),
        )

    async def logout(self) -> None:
        """End the session; local state is cleared whatever the backend says"""
        email = self.session.email
        try:
            if self.api.token:
                await self.api.logout()
        except PortalError as e:
            logger.debug(f"Backend logout failed, clearing local session anyway: {e}")
        finally:
            await self._discard()
            logger.log_auth_event("logout", True, user_email=email or None)

    async def change_password(self, current_password: str, new_password: str,
                              confirm_password: str) -> OperationResult:
        """Validate the password form, then ask the backend to change it"""
        if not current_password:
            return OperationResult.fail("Current password is required")
        if not new_password:
            return OperationResult.fail("New password is required")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            return OperationResult.fail(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if new_password != confirm_password:
            return OperationResult.fail("New password and confirm password do not match")

        try:
            await self.api.change_password(current_password, new_password)
        except BackendError as e:
            if e.status_code == 400:
                return OperationResult.fail("Current password is incorrect")
            return OperationResult.fail("Failed to change password. Please try again.")
        except PortalError:
            return OperationResult.fail("Failed to change password. Please try again.")

        logger.log_auth_event("change_password", True, user_email=self.session.email or None)
        return OperationResult.ok()

    def _apply(self, token: str, profile: UserProfile) -> None:
        self.api.set_token(token)
        self.session.populate(
            token=token,
            role=profile.role,
            entity_id=profile.entity_id,
            name=profile.name,
            email=profile.email,
        )
        set_user_email(self.session.email)
        set_entity_id(self.session.entity_id or "")

    async def _discard(self) -> None:
        self.session.clear()
        self.api.set_token(None)
        set_user_email("")
        set_entity_id("")
        await self.token_store.clear()

    async def _login_failed(self, email: str, message: str) -> LoginResult:
        logger.log_auth_event("login", False, user_email=email, reason=message)
        await self._discard()
        return LoginResult(success=False, error=message)

    # ==================== Routing ====================

    def dashboard_route(self, user: Optional[UserProfile] = None) -> str:
        """Where an admin lands after login"""
        if user is None:
            if not self.session.is_authenticated:
                return LOGIN_PATH
            role, entity_id = self.session.role, self.session.entity_id
        else:
            role, entity_id = Role.parse(user.role), user.entity_id

        if role is Role.SOCIETY_ADMIN and entity_id:
            return dashboard_path(EntityKind.SOCIETY, entity_id)
        if role is Role.COUNCIL_ADMIN and entity_id:
            return dashboard_path(EntityKind.COUNCIL, entity_id)
        return UNAUTHORIZED_PATH

    def authorize(
        self,
        required_role: Optional[Union[EntityKind, str]],
        requested_entity_id: Optional[str],
        location: Optional[str] = None,
    ) -> Decision:
        """Decide whether a protected view may render for the current session"""
        session = self.session

        if session.loading:
            return Loading()

        if not session.is_authenticated:
            return Redirect(LOGIN_PATH, from_location=location)

        if required_role is None and requested_entity_id is None:
            return Allow()

        if required_role is not None:
            kind = EntityKind(required_role)
            if session.role is not kind.admin_role:
                logger.info(
                    f"Access denied: role {session.raw_role} cannot open a {kind.value} dashboard"
                )
                return Redirect(UNAUTHORIZED_PATH)

        if requested_entity_id is not None and str(requested_entity_id) != session.entity_id:
            logger.info(
                f"Access denied: entity {session.entity_id} cannot manage {requested_entity_id}"
            )
            return Redirect(UNAUTHORIZED_PATH)

        return Allow()

    def authorize_path(self, path: str) -> Decision:
        """Run the gate for a portal path; public routes are always allowed"""
        matched = match_route(path)
        if matched is None:
            return NotFound(path)
        if not matched.route.protected:
            return Allow()
        return self.authorize(matched.route.required_role, matched.entity_id, location=matched.path)
