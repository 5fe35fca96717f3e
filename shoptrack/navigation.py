"""
Route registry and navigation shell.

The five destinations of the bottom navigation bar are a fixed ``Route``
enum, known at import time.  ``NavigationShell`` tracks which route is
current, keeps the opaque per-screen state of routes the user has left,
and notifies observers after every transition.

This module has no Kivy dependency; ``app.main`` binds it to the
ScreenManager and the nav bar buttons.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Tuple

from shoptrack.errors import UnknownRouteError
from shoptrack.logutil import get_logger

log = get_logger("navigation")


class Icon(Enum):
    HOME = "home"
    LIST = "list"
    ACCOUNT_BOX = "account-box"
    INFO = "info"
    SETTINGS = "settings"


class Route(Enum):
    """A top-level destination: ``(identifier, title, icon)``."""

    HOME = ("home", "Checkout", Icon.HOME)
    INVENTORY = ("inventory", "Inventory", Icon.LIST)
    EXPENSES = ("expenses", "Expenses", Icon.ACCOUNT_BOX)
    REPORTS = ("reports", "Reports", Icon.INFO)
    SETTINGS = ("settings", "Settings", Icon.SETTINGS)

    def __init__(self, identifier, title, icon):
        self.identifier = identifier
        self.title = title
        self.icon = icon


ROUTES: Tuple[Route, ...] = tuple(Route)
START_ROUTE = Route.HOME

_BY_IDENTIFIER = {r.identifier: r for r in ROUTES}

if len(_BY_IDENTIFIER) != len(ROUTES):
    raise RuntimeError("Duplicate route identifiers")
if {r.icon for r in ROUTES} != set(Icon):
    raise RuntimeError("Route icon mapping is not exhaustive")


def route_for(identifier: str) -> Route:
    """Look up a route by identifier; unknown identifiers are a caller bug."""
    try:
        return _BY_IDENTIFIER[identifier]
    except KeyError:
        raise UnknownRouteError(f"No route with identifier {identifier!r}") from None


def check_exhaustive(mapping, what="mapping"):
    """Raise if ``mapping`` does not cover every route exactly."""
    missing = [r.identifier for r in ROUTES if r not in mapping]
    extra = [k for k in mapping if not isinstance(k, Route)]
    if missing or extra:
        raise RuntimeError(f"Route {what} incomplete: missing={missing} extra={extra}")
    return mapping


def build_screens(screen_classes, repository):
    """One screen per route, in bar order, all sharing ``repository``.

    Each class is called as ``cls(repository, name=route.identifier)``.
    """
    check_exhaustive(screen_classes, "screens")
    return {route: screen_classes[route](repository, name=route.identifier)
            for route in ROUTES}


@dataclass(frozen=True)
class NavigationState:
    current: Route = START_ROUTE
    saved: Mapping[Route, Any] = field(default_factory=lambda: MappingProxyType({}))
    history: Tuple[Route, ...] = (START_ROUTE,)


class NavigationShell:
    """Single-selection navigation over ``ROUTES``.

    ``capture`` is called with the outgoing route and returns the opaque
    state to keep for it (``None`` keeps nothing).  ``select`` returns the
    saved state of the target route, or ``None`` when the screen should
    start fresh.
    """

    def __init__(self, capture: Optional[Callable[[Route], Any]] = None):
        self._capture = capture
        self._state = NavigationState()
        self._listeners: List[Callable[[NavigationState], None]] = []

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def current(self) -> Route:
        return self._state.current

    def add_listener(self, render: Callable[[NavigationState], None]):
        self._listeners.append(render)

    def remove_listener(self, render):
        if render in self._listeners:
            self._listeners.remove(render)

    def select(self, route) -> Optional[Any]:
        if isinstance(route, str):
            route = route_for(route)
        elif not isinstance(route, Route):
            raise UnknownRouteError(f"Not a route: {route!r}")

        old = self._state
        if route is old.current:
            return old.saved.get(route)

        saved = dict(old.saved)
        if self._capture is not None:
            outgoing = self._capture(old.current)
            if outgoing is not None:
                saved[old.current] = outgoing
        restored = saved.get(route)

        history = (START_ROUTE,) if route is START_ROUTE else (START_ROUTE, route)
        self._state = NavigationState(current=route,
                                      saved=MappingProxyType(saved),
                                      history=history)
        log.info("Navigate %s -> %s%s", old.current.identifier, route.identifier,
                 " (restored)" if restored is not None else "")
        for render in list(self._listeners):
            render(self._state)
        return restored

    def back(self) -> bool:
        """Go back to the start route; False when already there."""
        if self._state.current is START_ROUTE:
            return False
        self.select(START_ROUTE)
        return True
