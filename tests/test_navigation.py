# test_navigation.py
# Description: Route registry and navigation shell tests
#
"""
test_navigation.py
------------------

The navigation shell is pure Python, so its rules are tested without any
Kivy widgets: single selection, per-route state retention, start-route
back behaviour and listener notification.
"""

import pytest

from shoptrack.errors import UnknownRouteError
from shoptrack.navigation import (
    ROUTES, START_ROUTE, Icon, NavigationShell, Route, build_screens,
    check_exhaustive, route_for,
)


class TestRouteRegistry:

    def test_five_routes_in_bar_order(self):
        assert [r.identifier for r in ROUTES] == [
            "home", "inventory", "expenses", "reports", "settings"]

    def test_titles_and_icons(self):
        assert Route.HOME.title == "Checkout"
        assert Route.HOME.icon is Icon.HOME
        assert Route.INVENTORY.icon is Icon.LIST
        assert Route.EXPENSES.icon is Icon.ACCOUNT_BOX
        assert Route.REPORTS.icon is Icon.INFO
        assert Route.SETTINGS.icon is Icon.SETTINGS

    def test_identifiers_are_unique(self):
        identifiers = [r.identifier for r in ROUTES]
        assert len(identifiers) == len(set(identifiers))

    def test_start_route_is_home(self):
        assert START_ROUTE is Route.HOME

    def test_route_for(self):
        assert route_for("reports") is Route.REPORTS

    def test_route_for_unknown(self):
        with pytest.raises(UnknownRouteError):
            route_for("payroll")

    def test_check_exhaustive_accepts_complete_mapping(self):
        mapping = {r: r.title for r in ROUTES}
        assert check_exhaustive(mapping) is mapping

    def test_check_exhaustive_rejects_missing_route(self):
        mapping = {r: r.title for r in ROUTES if r is not Route.SETTINGS}
        with pytest.raises(RuntimeError, match="settings"):
            check_exhaustive(mapping, "screens")

    def test_check_exhaustive_rejects_foreign_keys(self):
        mapping = {r: r.title for r in ROUTES}
        mapping["payroll"] = "Payroll"
        with pytest.raises(RuntimeError):
            check_exhaustive(mapping)


class TestNavigationShell:

    @pytest.fixture
    def screen_state(self):
        """Stand-in for each screen's live UI state."""
        return {}

    @pytest.fixture
    def shell(self, screen_state):
        return NavigationShell(capture=lambda route: screen_state.get(route))

    def test_starts_on_home(self, shell):
        assert shell.current is Route.HOME
        assert shell.state.history == (Route.HOME,)

    def test_exactly_one_route_selected(self, shell):
        for route in ROUTES:
            shell.select(route)
            assert shell.current is route
            assert sum(1 for r in ROUTES if r is shell.current) == 1

    def test_select_by_identifier(self, shell):
        shell.select("expenses")
        assert shell.current is Route.EXPENSES

    def test_select_unknown_identifier_leaves_state_alone(self, shell):
        shell.select(Route.REPORTS)
        before = shell.state
        with pytest.raises(UnknownRouteError):
            shell.select("payroll")
        assert shell.state is before

    def test_select_non_route_object(self, shell):
        with pytest.raises(UnknownRouteError):
            shell.select(3)

    def test_state_is_kept_for_left_route(self, shell, screen_state):
        screen_state[Route.INVENTORY] = {"query": "cola"}
        shell.select(Route.INVENTORY)
        shell.select(Route.REPORTS)

        restored = shell.select(Route.INVENTORY)

        assert restored == {"query": "cola"}

    def test_state_survives_round_trip_through_home(self, shell, screen_state):
        screen_state[Route.INVENTORY] = {"query": "cola"}
        screen_state[Route.SETTINGS] = {"shop_name": "Corner"}
        for route in (Route.INVENTORY, Route.SETTINGS, Route.HOME):
            shell.select(route)

        assert shell.select(Route.INVENTORY) == {"query": "cola"}
        assert shell.select(Route.SETTINGS) == {"shop_name": "Corner"}

    def test_unvisited_route_starts_fresh(self, shell):
        assert shell.select(Route.SETTINGS) is None

    def test_capture_returning_none_keeps_nothing(self, shell):
        shell.select(Route.EXPENSES)
        shell.select(Route.HOME)
        assert Route.EXPENSES not in shell.state.saved

    def test_reselecting_current_route_is_a_no_op(self, shell, screen_state):
        calls = []
        shell.add_listener(calls.append)
        screen_state[Route.HOME] = "draft"

        shell.select(Route.HOME)

        assert calls == []
        assert Route.HOME not in shell.state.saved

    def test_history_never_deeper_than_start_plus_one(self, shell):
        for route in (Route.INVENTORY, Route.REPORTS, Route.SETTINGS, Route.EXPENSES):
            shell.select(route)
            assert shell.state.history == (Route.HOME, route)
        shell.select(Route.HOME)
        assert shell.state.history == (Route.HOME,)

    def test_back_returns_to_start(self, shell):
        shell.select(Route.REPORTS)
        shell.select(Route.SETTINGS)

        assert shell.back() is True
        assert shell.current is Route.HOME

    def test_back_on_start_route_is_not_handled(self, shell):
        assert shell.back() is False
        assert shell.current is Route.HOME

    def test_back_captures_outgoing_state(self, shell, screen_state):
        screen_state[Route.REPORTS] = ("daily", "2026-10-01")
        shell.select(Route.REPORTS)
        shell.back()
        assert shell.select(Route.REPORTS) == ("daily", "2026-10-01")

    def test_saved_state_is_read_only(self, shell, screen_state):
        screen_state[Route.HOME] = "cart"
        shell.select(Route.INVENTORY)
        with pytest.raises(TypeError):
            shell.state.saved[Route.HOME] = "other"

    def test_listeners_see_new_state(self, shell):
        seen = []
        shell.add_listener(lambda state: seen.append(state.current))

        shell.select(Route.INVENTORY)
        shell.back()

        assert seen == [Route.INVENTORY, Route.HOME]

    def test_removed_listener_is_not_called(self, shell):
        seen = []
        shell.add_listener(seen.append)
        shell.remove_listener(seen.append)
        shell.select(Route.SETTINGS)
        assert seen == []

    def test_shell_without_capture(self):
        shell = NavigationShell()
        shell.select(Route.INVENTORY)
        assert shell.select(Route.HOME) is None


class _StubScreen:
    """Records what a screen constructor receives."""

    def __init__(self, repository, name):
        self.repository = repository
        self.name = name


class TestBuildScreens:

    def test_every_screen_shares_one_repository(self):
        repo = object()
        screens = build_screens({route: _StubScreen for route in ROUTES}, repo)

        assert list(screens) == list(ROUTES)
        assert all(screen.repository is repo for screen in screens.values())
        assert [s.name for s in screens.values()] == [r.identifier for r in ROUTES]

    def test_one_instance_per_route(self):
        screens = build_screens({route: _StubScreen for route in ROUTES}, object())
        assert len({id(s) for s in screens.values()}) == len(ROUTES)

    def test_missing_screen_class(self):
        classes = {route: _StubScreen for route in ROUTES}
        del classes[Route.EXPENSES]
        with pytest.raises(RuntimeError):
            build_screens(classes, object())
