"""
Platform paths and app preferences.

Preferences that belong to the device rather than the shop (theme, last
screen, database location) are persisted in a single JSON file.  On
Android the file lives in external storage so it survives app updates;
on desktop it lives in the repo root for easy access.

Shop settings (currency, wholesale mode, shop name, CR number) are not
here; they are stored in the database ``settings`` table.
"""

import json
import os

from shoptrack.logutil import get_logger

log = get_logger("config")

APP_DIR_NAME = "ShopTrackLite"
DB_FILENAME = "shoptrack.db"
DB_PATH_ENV = "SHOPTRACK_DB_PATH"

_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

try:
    import android  # noqa: F401
    ON_ANDROID = True
except ImportError:
    ON_ANDROID = False

DEFAULT_PREFERENCES = {
    "theme": "light",
    "last_route": "home",
    "db_path": None,
}


def android_storage_base():
    """Return the user-visible storage base on Android, with fallback.

    Tries external storage first (user-accessible), falls back to
    app-private storage, and finally a hardcoded /sdcard path.
    """
    try:
        from android.storage import primary_external_storage_path  # type: ignore
        return os.path.join(primary_external_storage_path(), APP_DIR_NAME)
    except ImportError:
        pass
    try:
        from android.storage import app_storage_path  # type: ignore
        return os.path.join(app_storage_path(), APP_DIR_NAME)
    except ImportError:
        pass
    return f"/sdcard/{APP_DIR_NAME}"


def android_private_base():
    """App-private storage on Android; writable without any permission."""
    try:
        from android.storage import app_storage_path  # type: ignore
        return os.path.join(app_storage_path(), APP_DIR_NAME)
    except ImportError:
        return os.path.join(os.path.expanduser("~"), APP_DIR_NAME)


def storage_base():
    return android_storage_base() if ON_ANDROID else _REPO_ROOT


def storage_dir(name):
    """``logs``, ``exports``, ``data`` or ``settings`` under the storage base."""
    return os.path.join(storage_base(), name)


def preferences_path():
    if ON_ANDROID:
        return os.path.join(storage_dir("settings"), "settings.json")
    return os.path.join(_REPO_ROOT, "settings.json")


def load_preferences(path=None):
    """Load preferences, filling gaps with defaults.

    A missing or unreadable file means all defaults are used.
    """
    path = path or preferences_path()
    prefs = dict(DEFAULT_PREFERENCES)
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                prefs.update(data)
            else:
                log.warning("Ignoring preferences in %s: not an object", path)
        except (OSError, ValueError) as e:
            log.warning("Could not read preferences %s: %s", path, e)
    return prefs


def save_preferences(data, path=None):
    path = path or preferences_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def resolve_db_path(prefs=None):
    """Database location: env override, then preference, then the default.

    On Android the default is app-private storage: the database is opened
    before the external-storage permission can be requested.
    """
    override = os.environ.get(DB_PATH_ENV)
    if override:
        return override
    if prefs and prefs.get("db_path"):
        return prefs["db_path"]
    base = android_private_base() if ON_ANDROID else storage_base()
    return os.path.join(base, "data", DB_FILENAME)
