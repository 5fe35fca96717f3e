"""
Theme definitions for ShopTrack Lite.

Each theme is a dict mapping semantic color names to RGBA tuples.

Two themes are provided:
  - "light": default, white cards on a pale background; readable on a
    shop counter in daylight.
  - "dark": low-brightness theme for evening use.

Colors use semantic names (e.g. "btn_checkout", "text_loss") so widgets
reference intent, not raw color values.
"""

THEMES = {
    # ── Light theme ──────────────────────────────────────────────────
    "light": {
        # -- Backgrounds --
        "bg_root":          (0.95, 0.95, 0.96, 1),
        "bg_navbar":        (1, 1, 1, 1),
        "bg_card":          (1, 1, 1, 1),
        "bg_row_alt":       (0.97, 0.97, 0.98, 1),
        "bg_input":         (1, 1, 1, 1),
        "bg_spinner":       (0.9, 0.9, 0.92, 1),
        "bg_header":        (0.38, 0.0, 0.93, 1),

        # -- Text --
        "text_primary":     (0.1, 0.1, 0.12, 1),
        "text_title":       (0.2, 0.1, 0.45, 1),
        "text_label":       (0.3, 0.3, 0.35, 1),
        "text_dim":         (0.55, 0.55, 0.6, 1),
        "text_header":      (1, 1, 1, 1),
        "text_feedback":    (0.1, 0.5, 0.2, 1),
        "text_error":       (0.8, 0.15, 0.15, 1),
        "text_profit":      (0.1, 0.55, 0.2, 1),
        "text_loss":        (0.8, 0.15, 0.15, 1),

        # -- Status --
        "status_low_stock": (0.95, 0.6, 0.1, 1),
        "status_out":       (0.85, 0.2, 0.2, 1),
        "status_balanced":  (0.1, 0.55, 0.2, 1),
        "status_over":      (0.15, 0.4, 0.75, 1),
        "status_short":     (0.85, 0.2, 0.2, 1),

        # -- Buttons --
        "btn_primary":      (0.38, 0.0, 0.93, 1),
        "btn_checkout":     (0.15, 0.6, 0.3, 1),
        "btn_action":       (0.25, 0.45, 0.75, 1),
        "btn_danger":       (0.8, 0.2, 0.2, 1),
        "btn_clear":        (0.55, 0.55, 0.6, 1),
        "btn_favorite":     (0.95, 0.7, 0.1, 1),
        "btn_toggle_on":    (0.15, 0.6, 0.3, 1),
        "btn_toggle_off":   (0.7, 0.7, 0.72, 1),
        "nav_active":       (0.38, 0.0, 0.93, 1),
        "nav_inactive":     (0.45, 0.45, 0.5, 1),
    },

    # ── Dark theme ───────────────────────────────────────────────────
    "dark": {
        # -- Backgrounds --
        "bg_root":          (0.1, 0.1, 0.12, 1),
        "bg_navbar":        (0.15, 0.15, 0.18, 1),
        "bg_card":          (0.18, 0.18, 0.22, 1),
        "bg_row_alt":       (0.15, 0.15, 0.19, 1),
        "bg_input":         (0.2, 0.2, 0.25, 1),
        "bg_spinner":       (0.25, 0.25, 0.3, 1),
        "bg_header":        (0.25, 0.15, 0.5, 1),

        # -- Text --
        "text_primary":     (1, 1, 1, 1),
        "text_title":       (0.8, 0.78, 0.95, 1),
        "text_label":       (0.7, 0.7, 0.72, 1),
        "text_dim":         (0.45, 0.45, 0.5, 1),
        "text_header":      (1, 1, 1, 1),
        "text_feedback":    (0.5, 0.8, 0.55, 1),
        "text_error":       (0.95, 0.45, 0.4, 1),
        "text_profit":      (0.4, 0.85, 0.5, 1),
        "text_loss":        (0.95, 0.45, 0.4, 1),

        # -- Status --
        "status_low_stock": (0.9, 0.6, 0.1, 1),
        "status_out":       (0.8, 0.25, 0.25, 1),
        "status_balanced":  (0.3, 0.75, 0.4, 1),
        "status_over":      (0.35, 0.6, 0.9, 1),
        "status_short":     (0.9, 0.35, 0.3, 1),

        # -- Buttons --
        "btn_primary":      (0.45, 0.3, 0.85, 1),
        "btn_checkout":     (0.2, 0.55, 0.3, 1),
        "btn_action":       (0.25, 0.35, 0.5, 1),
        "btn_danger":       (0.7, 0.25, 0.2, 1),
        "btn_clear":        (0.4, 0.4, 0.45, 1),
        "btn_favorite":     (0.8, 0.6, 0.1, 1),
        "btn_toggle_on":    (0.15, 0.5, 0.2, 1),
        "btn_toggle_off":   (0.35, 0.35, 0.4, 1),
        "nav_active":       (0.7, 0.6, 1, 1),
        "nav_inactive":     (0.5, 0.5, 0.55, 1),
    },
}

# Display names for the settings UI spinner
THEME_NAMES = {"light": "Light", "dark": "Dark"}

DEFAULT_THEME = "light"

_current_theme = DEFAULT_THEME


def set_theme(name):
    """Set the current theme by name; unknown names are ignored."""
    global _current_theme
    if name in THEMES:
        _current_theme = name


def get_theme_name():
    return _current_theme


def get_color(name):
    """Return RGBA tuple for semantic color name in current theme."""
    return THEMES[_current_theme].get(name, (1, 0, 1, 1))  # magenta = missing
