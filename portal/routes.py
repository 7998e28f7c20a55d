"""
Portal route table

Paths mirror the chapter website. Dashboard routes are protected: opening
one runs the AuthGate check with the route's required entity kind and the
entity id taken from the path.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from portal.session import EntityKind

LOGIN_PATH = "/login"
UNAUTHORIZED_PATH = "/unauthorized"

_PARAM = re.compile(r"\{(\w+)\}")

ENTITY_PARAMS = {
    EntityKind.SOCIETY: "societyId",
    EntityKind.COUNCIL: "councilId",
}

# Dashboard sections; "" is the overview
DASHBOARD_SECTIONS = ["", "events", "members", "achievements", "gallery", "settings"]


@dataclass(frozen=True)
class Route:
    pattern: str
    name: str
    protected: bool = False
    required_role: Optional[EntityKind] = None
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        regex = "^" + _PARAM.sub(r"(?P<\1>[^/]+)", self.pattern) + "$"
        object.__setattr__(self, "_regex", re.compile(regex))

    def match(self, path: str) -> Optional[Dict[str, str]]:
        m = self._regex.match(path)
        return m.groupdict() if m else None


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]
    path: str

    @property
    def entity_id(self) -> Optional[str]:
        return self.params.get("societyId") or self.params.get("councilId")

    @property
    def entity_kind(self) -> Optional[EntityKind]:
        if "societyId" in self.params:
            return EntityKind.SOCIETY
        if "councilId" in self.params:
            return EntityKind.COUNCIL
        return None

    @property
    def section(self) -> str:
        """Dashboard section name, or the last path segment for public pages"""
        return self.route.name.rsplit(":", 1)[-1]


def _build_routes() -> List[Route]:
    routes = [
        Route("/", "landing"),
        Route(LOGIN_PATH, "login"),
        Route(UNAUTHORIZED_PATH, "unauthorized"),
        Route("/dashboard", "dashboard", protected=True),
    ]
    for kind, param in ENTITY_PARAMS.items():
        prefix = kind.public_prefix
        routes += [
            Route(prefix, f"{kind.value}:directory"),
            Route(f"{prefix}/{{{param}}}", f"{kind.value}:detail"),
        ]
        if kind is EntityKind.SOCIETY:
            for page in ("past-events", "upcoming-events", "achievements", "gallery"):
                routes.append(Route(f"{prefix}/{{{param}}}/{page}", f"{kind.value}:public:{page}"))
        for section in DASHBOARD_SECTIONS:
            suffix = f"/{section}" if section else ""
            routes.append(Route(
                f"{prefix}/{{{param}}}/dashboard{suffix}",
                f"{kind.value}:dashboard:{section or 'overview'}",
                protected=True,
                required_role=kind,
            ))
    return routes


ROUTES: List[Route] = _build_routes()


def normalize_path(path: str) -> str:
    path = path.split("?", 1)[0].split("#", 1)[0].strip()
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"


def match_route(path: str) -> Optional[RouteMatch]:
    """Find the route for `path`, or None if no route matches"""
    path = normalize_path(path)
    for route in ROUTES:
        params = route.match(path)
        if params is not None:
            return RouteMatch(route=route, params=params, path=path)
    return None


def dashboard_path(kind: EntityKind, entity_id: str, section: str = "") -> str:
    path = f"{kind.public_prefix}/{entity_id}/dashboard"
    return f"{path}/{section}" if section and section != "overview" else path
