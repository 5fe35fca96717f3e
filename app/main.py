"""
ShopTrack Lite – Kivy application entry point.

Point-of-sale app with five screens behind a bottom navigation bar.
"""

import os
import sys

# Make `shoptrack` and `app` importable however the app is launched
# (python main.py, an IDE, a frozen build or Buildozer).
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

# Windowed frozen builds have no console: give Kivy's logger somewhere
# to write instead of a None stream.
if getattr(sys, "frozen", False) and sys.stderr is None:
    sys.stderr = open(os.devnull, "w")
if getattr(sys, "frozen", False) and sys.stdout is None:
    sys.stdout = open(os.devnull, "w")

# Kivy settings must be applied before the first other kivy import.
from kivy.config import Config  # noqa: E402

Config.set("graphics", "width", "960")
Config.set("graphics", "height", "600")
Config.set("graphics", "resizable", "1")
Config.set("kivy", "exit_on_escape", "0")

from kivy.app import App  # noqa: E402
from kivy.clock import Clock  # noqa: E402
from kivy.core.window import Window  # noqa: E402
from kivy.lang import Builder  # noqa: E402
from kivy.uix.boxlayout import BoxLayout  # noqa: E402
from kivy.uix.screenmanager import SlideTransition  # noqa: E402
from kivy.properties import ListProperty  # noqa: E402

from shoptrack.logutil import setup_logging, get_logger  # noqa: E402
from shoptrack.config import (  # noqa: E402
    ON_ANDROID, android_storage_base, load_preferences, resolve_db_path,
    save_preferences,
)
from shoptrack.database import open_database  # noqa: E402
from shoptrack.errors import StorageOpenError, UnknownRouteError  # noqa: E402
from shoptrack.event_bus import EventBus  # noqa: E402
from shoptrack.navigation import (  # noqa: E402
    ROUTES, Route, NavigationShell, build_screens, check_exhaustive, route_for,
)
from shoptrack.repository import ShopTrackRepository  # noqa: E402
from app.theme import get_color, set_theme, DEFAULT_THEME  # noqa: E402
from app.widgets import NavButton  # noqa: E402
from app.home_screen import HomeScreen  # noqa: E402
from app.inventory_screen import InventoryScreen  # noqa: E402
from app.expenses_screen import ExpensesScreen  # noqa: E402
from app.reports_screen import ReportsScreen  # noqa: E402
from app.settings_screen import SettingsScreen  # noqa: E402

setup_logging()
log = get_logger("app")

KEY_BACK = 27  # Android back button / desktop Escape

# Frozen builds unpack data files under sys._MEIPASS.
if getattr(sys, "frozen", False):
    _KV_PATH = os.path.join(sys._MEIPASS, "app", "app.kv")
else:
    _KV_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "app.kv")

# One screen class per route; checked against the registry at import time.
SCREEN_CLASSES = check_exhaustive({
    Route.HOME: HomeScreen,
    Route.INVENTORY: InventoryScreen,
    Route.EXPENSES: ExpensesScreen,
    Route.REPORTS: ReportsScreen,
    Route.SETTINGS: SettingsScreen,
}, "screens")

# Palette entries mirrored into `theme_<name>` properties.
THEME_KEYS = (
    "bg_root", "bg_navbar", "bg_card", "bg_input", "bg_spinner", "bg_header",
    "text_primary", "text_title", "text_label", "text_dim", "text_header",
    "text_feedback", "btn_primary", "btn_checkout", "btn_action", "btn_danger",
    "btn_clear", "btn_toggle_on", "btn_toggle_off", "nav_active", "nav_inactive",
)


# ═══════════════════════════════════════════════════════════════════════════
# Root widget
# ═══════════════════════════════════════════════════════════════════════════

class ShopTrackRoot(BoxLayout):
    """Header, ScreenManager (``sm``) and bottom nav bar (``nav_bar``)."""
    pass


# The rules in app.kv refer to the classes above by name.
Builder.load_file(_KV_PATH)


# ═══════════════════════════════════════════════════════════════════════════
# App
# ═══════════════════════════════════════════════════════════════════════════

class ShopTrackApp(App):
    title = "ShopTrack Lite"

    # Colours used by app.kv through `app.theme_*`; apply_theme() copies
    # the active palette in, and Kivy bindings repaint the widgets.
    theme_bg_root = ListProperty([0.95, 0.95, 0.96, 1])
    theme_bg_navbar = ListProperty([1, 1, 1, 1])
    theme_bg_card = ListProperty([1, 1, 1, 1])
    theme_bg_input = ListProperty([1, 1, 1, 1])
    theme_bg_spinner = ListProperty([0.9, 0.9, 0.92, 1])
    theme_bg_header = ListProperty([0.38, 0.0, 0.93, 1])
    theme_text_primary = ListProperty([0.1, 0.1, 0.12, 1])
    theme_text_title = ListProperty([0.2, 0.1, 0.45, 1])
    theme_text_label = ListProperty([0.3, 0.3, 0.35, 1])
    theme_text_dim = ListProperty([0.55, 0.55, 0.6, 1])
    theme_text_header = ListProperty([1, 1, 1, 1])
    theme_text_feedback = ListProperty([0.1, 0.5, 0.2, 1])
    theme_btn_primary = ListProperty([0.38, 0.0, 0.93, 1])
    theme_btn_checkout = ListProperty([0.15, 0.6, 0.3, 1])
    theme_btn_action = ListProperty([0.25, 0.45, 0.75, 1])
    theme_btn_danger = ListProperty([0.8, 0.2, 0.2, 1])
    theme_btn_clear = ListProperty([0.55, 0.55, 0.6, 1])
    theme_btn_toggle_on = ListProperty([0.15, 0.6, 0.3, 1])
    theme_btn_toggle_off = ListProperty([0.7, 0.7, 0.72, 1])
    theme_nav_active = ListProperty([0.38, 0.0, 0.93, 1])
    theme_nav_inactive = ListProperty([0.45, 0.45, 0.5, 1])

    def apply_theme(self):
        for key in THEME_KEYS:
            setattr(self, f"theme_{key}", list(get_color(key)))

    def set_app_theme(self, name):
        """Switch palette, remember it in the preference file, repaint."""
        set_theme(name)
        self.preferences["theme"] = name
        self._save_preferences()
        self.apply_theme()
        # Row and tile colours set from code are picked up on the next load.
        current = self.current_screen()
        for screen in self.screens.values():
            screen._stale = screen is not current
        current.refresh()

    def _save_preferences(self):
        try:
            save_preferences(self.preferences)
        except OSError:
            log.exception("Could not save preferences")

    def build(self):
        # Device preferences (theme, last screen, database location)
        self.preferences = load_preferences()

        # The palette has to be in place before the kv rules build widgets
        set_theme(self.preferences.get("theme", DEFAULT_THEME))
        self.apply_theme()

        # The event bus carries data-change notifications from the
        # repository to every screen; the repository is the one shared
        # persistence facade handed to all of them.
        self.event_bus = EventBus()
        db_path = resolve_db_path(self.preferences)
        try:
            db = open_database(db_path)
        except StorageOpenError:
            log.critical("Cannot open database at %s", db_path)
            raise
        self.db = db
        self.repository = ShopTrackRepository.from_database(db, self.event_bus)

        self.screens = {}
        self.shell = NavigationShell(capture=self._capture_state)
        self.shell.add_listener(self._render_navigation)

        root = ShopTrackRoot()
        for route in ROUTES:
            btn = NavButton(text=route.title, route_id=route.identifier)
            btn.bind(on_release=lambda b: self.switch_screen(b.route_id))
            root.ids.nav_bar.add_widget(btn)
        return root

    def on_start(self):
        """Create one screen per route, in nav bar order, then show the
        route the user left the app on."""
        sm = self.root.ids.sm
        sm.transition = SlideTransition(duration=0.2)
        self.screens = build_screens(SCREEN_CLASSES, self.repository)
        for screen in self.screens.values():
            sm.add_widget(screen)
        self.sm = sm
        self._render_navigation(self.shell.state)

        last = self.preferences.get("last_route") or Route.HOME.identifier
        try:
            self.shell.select(last)
        except UnknownRouteError:
            log.warning("Ignoring unknown last route %r", last)

        Window.bind(on_keyboard=self._on_keyboard)

        # Ask for storage access one frame later, once the first screen
        # is on display.
        if ON_ANDROID:
            Clock.schedule_once(self._request_android_permissions, 0)

    # ── Navigation ────────────────────────────────────────────────────

    def _capture_state(self, route):
        screen = self.screens.get(route)
        return screen.save_state() if screen is not None else None

    def _render_navigation(self, state):
        """Shell observer: show the current route's screen and mark its tab."""
        route = state.current
        sm = self.root.ids.sm
        if sm.current != route.identifier and route in self.screens:
            old_index = ROUTES.index(route_for(sm.current)) if sm.current else 0
            sm.transition.direction = (
                "left" if ROUTES.index(route) > old_index else "right")
            self.screens[route].restore_state(state.saved.get(route))
            sm.current = route.identifier
        for btn in self.root.ids.nav_bar.children:
            btn.active = btn.route_id == route.identifier
        self.root.ids.title_label.text = f"{self.title}  |  {route.title}"

    def switch_screen(self, name):
        self.shell.select(name)

    def current_screen(self):
        return self.screens[self.shell.current]

    def _on_keyboard(self, window, key, *args):
        if key == KEY_BACK:
            # Let the platform close the app only from the start route.
            return self.shell.back()
        return False

    # ── Android ───────────────────────────────────────────────────────

    def _request_android_permissions(self, dt):
        """Storage permission for logs and exports.

        Skips the system dialog when a previous run already got the grant.
        """
        try:
            from android.permissions import (  # type: ignore
                request_permissions, check_permission, Permission,
            )
            if check_permission(Permission.WRITE_EXTERNAL_STORAGE):
                log.info("Storage permission already granted")
                self._on_storage_ready()
            else:
                log.info("Asking for storage permission")
                request_permissions(
                    [Permission.WRITE_EXTERNAL_STORAGE,
                     Permission.READ_EXTERNAL_STORAGE],
                    callback=self._permission_callback,
                )
        except Exception:
            log.exception("Storage permission request failed")

    def _permission_callback(self, permissions, grant_results):
        # Runs on an Android thread; hop back to the Kivy thread.
        if all(grant_results):
            log.info("Storage permission granted")
            Clock.schedule_once(lambda dt: self._on_storage_ready(), 0)
        else:
            log.warning("Storage permission denied, using app-private storage")

    def _on_storage_ready(self):
        """Create logs/, exports/ and settings/ under ShopTrackLite/."""
        base = android_storage_base()
        for sub in ("logs", "exports", "settings"):
            try:
                os.makedirs(os.path.join(base, sub), exist_ok=True)
            except OSError:
                log.exception("Could not create %s", os.path.join(base, sub))
        log.info("Shop folders ready under %s", base)

    # ── Lifecycle ─────────────────────────────────────────────────────

    def on_pause(self):
        # Keep the cart and open forms when the phone switches apps.
        return True

    def on_resume(self):
        pass

    def on_stop(self):
        log.info("Closing ShopTrack Lite")
        if getattr(self, "shell", None) is not None:
            self.preferences["last_route"] = self.shell.current.identifier
            self._save_preferences()
        if getattr(self, "db", None) is not None:
            self.db.close()


def main():
    ShopTrackApp().run()


if __name__ == "__main__":
    main()
