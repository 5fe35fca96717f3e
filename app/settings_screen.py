"""
Settings screen: shop settings (stored in the database) and the app theme
(stored in the preference file).
"""

from dataclasses import replace

from app.theme import THEME_NAMES, get_theme_name
from app.widgets import ShopScreen
from shoptrack.currency import CURRENCY_CODES, currency_name, currency_symbol


def currency_label(code):
    return f"{code} - {currency_name(code)} ({currency_symbol(code)})"


CURRENCY_LABELS = [currency_label(c) for c in CURRENCY_CODES]


class SettingsScreen(ShopScreen):
    """Edits are kept in the form until Save; the unsaved form is the
    route state, so leaving and returning does not lose typing."""

    watches = ("settings",)

    def __init__(self, repository, **kwargs):
        self._draft = None
        super().__init__(repository, **kwargs)

    def save_state(self):
        if "shop_name_input" not in self.ids:
            return None
        return self._read_form()

    def restore_state(self, state):
        self._draft = state
        self._stale = True

    def refresh(self):
        if "shop_name_input" not in self.ids:
            return
        form = self._draft or self._from_settings()
        self._draft = None
        self.ids.shop_name_input.text = form["shop_name"]
        self.ids.cr_number_input.text = form["cr_number"]
        self.ids.currency_spinner.values = CURRENCY_LABELS
        self.ids.currency_spinner.text = currency_label(form["currency_code"])
        self.ids.wholesale_check.active = form["wholesale_mode_enabled"]
        self.ids.theme_spinner.values = list(THEME_NAMES.values())
        self.ids.theme_spinner.text = THEME_NAMES.get(get_theme_name(), "Light")

    def _from_settings(self):
        settings = self.repository.get_settings()
        return {"shop_name": settings.shop_name, "cr_number": settings.cr_number,
                "currency_code": settings.currency_code,
                "wholesale_mode_enabled": settings.wholesale_mode_enabled}

    def _read_form(self):
        code = self.ids.currency_spinner.text.split(" - ", 1)[0]
        return {"shop_name": self.ids.shop_name_input.text.strip(),
                "cr_number": self.ids.cr_number_input.text.strip(),
                "currency_code": code if code in CURRENCY_CODES else "USD",
                "wholesale_mode_enabled": self.ids.wholesale_check.active}

    def save_settings(self):
        settings = replace(self.repository.get_settings(), **self._read_form())
        self.repository.update_settings(settings)
        self.feedback("Settings saved")

    def on_theme_selected(self, text):
        for key, name in THEME_NAMES.items():
            if name == text and key != get_theme_name():
                self.app().set_app_theme(key)
                self.feedback(f"{name} theme applied")
