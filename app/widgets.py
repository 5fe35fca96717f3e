"""
Shared widgets and the screen base class.

Layout rules for ``SummaryTile``, ``ItemRow`` and ``NavButton`` live in
app.kv; the popups are built in code.
"""

from kivy.app import App
from kivy.metrics import dp
from kivy.properties import BooleanProperty, ListProperty, StringProperty
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.checkbox import CheckBox
from kivy.uix.label import Label
from kivy.uix.popup import Popup
from kivy.uix.screenmanager import Screen
from kivy.uix.scrollview import ScrollView
from kivy.uix.textinput import TextInput

from app.theme import get_color
from shoptrack.errors import InputError, ShopTrackError
from shoptrack.event_bus import EventType
from shoptrack.logutil import get_logger

log = get_logger("ui")


class SummaryTile(BoxLayout):
    """Labelled figure on a report or checkout header."""
    label_text = StringProperty('')
    value_text = StringProperty('-')
    value_color = ListProperty([0.1, 0.1, 0.12, 1])


class ItemRow(BoxLayout):
    """One line in a list: title, detail line, value, optional action buttons.

    Tapping the row body dispatches ``on_select``; the two buttons
    dispatch ``on_action`` and ``on_secondary``.
    """
    title_text = StringProperty('')
    detail_text = StringProperty('')
    value_text = StringProperty('')
    action_text = StringProperty('')
    secondary_text = StringProperty('')
    highlight = BooleanProperty(False)
    highlight_color = ListProperty([0.95, 0.6, 0.1, 1])

    def __init__(self, **kwargs):
        self.register_event_type('on_select')
        self.register_event_type('on_action')
        self.register_event_type('on_secondary')
        super().__init__(**kwargs)

    def on_select(self):
        pass

    def on_action(self):
        pass

    def on_secondary(self):
        pass


def make_row(container, title, detail='', value='', action=None, secondary=None,
             on_select=None, highlight=False, highlight_color=None):
    """Build an ``ItemRow`` and add it to ``container``.

    ``action`` / ``secondary`` are ``(label, callback)`` pairs.
    """
    row = ItemRow(title_text=title, detail_text=detail, value_text=value,
                  highlight=highlight)
    if highlight_color is not None:
        row.highlight_color = list(highlight_color)
    if action:
        row.action_text = action[0]
        row.bind(on_action=lambda *_, cb=action[1]: cb())
    if secondary:
        row.secondary_text = secondary[0]
        row.bind(on_secondary=lambda *_, cb=secondary[1]: cb())
    if on_select:
        row.bind(on_select=lambda *_, cb=on_select: cb())
    container.add_widget(row)
    return row


class NavButton(Button):
    """Bottom navigation item bound to a route identifier."""
    route_id = StringProperty('')
    active = BooleanProperty(False)


def parse_float(text, default=None):
    try:
        return float((text or "").strip().replace(",", "."))
    except ValueError:
        return default


def parse_int(text, default=None):
    try:
        return int((text or "").strip())
    except ValueError:
        return default


# ═══════════════════════════════════════════════════════════════════════════
# Popups
# ═══════════════════════════════════════════════════════════════════════════

def _button_row(buttons):
    row = BoxLayout(size_hint_y=None, height=dp(44), spacing=dp(10))
    for b in buttons:
        row.add_widget(b)
    return row


def confirm_popup(title, message, on_yes, yes_text='Confirm', danger=False):
    content = BoxLayout(orientation='vertical', padding=dp(10), spacing=dp(10))
    content.add_widget(Label(
        text=message, font_size='14sp', halign='center',
        color=get_color("text_label")))

    popup = Popup(title=title, content=content,
                  size_hint=(0.85, 0.35), auto_dismiss=False)

    yes_btn = Button(text=yes_text, background_color=list(
        get_color("btn_danger" if danger else "btn_checkout")))
    no_btn = Button(text='Cancel', background_color=list(get_color("btn_clear")))

    yes_btn.bind(on_release=lambda *_: (popup.dismiss(), on_yes()))
    no_btn.bind(on_release=lambda *_: popup.dismiss())

    content.add_widget(_button_row([yes_btn, no_btn]))
    popup.open()
    return popup


def text_popup(title, text, actions=None):
    """Scrollable read-only text (receipts, report previews).

    ``actions`` is a list of ``(label, callback)`` shown next to Close;
    pressing one closes the popup first.
    """
    content = BoxLayout(orientation='vertical', padding=dp(10), spacing=dp(10))
    scroll = ScrollView(do_scroll_x=False)
    lbl = Label(text=text, font_size='13sp', size_hint_y=None,
                halign='left', valign='top', color=get_color("text_primary"))
    lbl.bind(width=lambda inst, w: setattr(inst, 'text_size', (w, None)),
             texture_size=lambda inst, ts: setattr(inst, 'height', ts[1]))
    scroll.add_widget(lbl)
    content.add_widget(scroll)

    popup = Popup(title=title, content=content, size_hint=(0.9, 0.8))
    buttons = []
    for label, callback in actions or []:
        btn = Button(text=label, background_color=list(get_color("btn_action")))
        btn.bind(on_release=lambda *_, cb=callback: (popup.dismiss(), cb()))
        buttons.append(btn)
    close_btn = Button(text='Close', background_color=list(get_color("btn_clear")))
    close_btn.bind(on_release=lambda *_: popup.dismiss())
    buttons.append(close_btn)
    content.add_widget(_button_row(buttons))
    popup.open()
    return popup


def form_popup(title, fields, on_submit, submit_text='Save'):
    """Simple form of labelled inputs.

    ``fields`` is a list of ``(key, label, initial, kind)`` where ``kind`` is
    ``None`` (free text), ``'float'``, ``'int'`` or ``'bool'`` (checkbox).
    ``on_submit`` receives ``{key: text_or_bool}`` and may raise
    ``InputError`` / ``ShopTrackError``; the message is shown and the popup
    stays open.
    """
    content = BoxLayout(orientation='vertical', padding=dp(10), spacing=dp(6))
    inputs = {}
    for key, label, initial, kind in fields:
        row = BoxLayout(size_hint_y=None, height=dp(40), spacing=dp(8))
        row.add_widget(Label(text=label, size_hint_x=0.4, font_size='13sp',
                             halign='left', color=get_color("text_label")))
        if kind == 'bool':
            inp = CheckBox(active=bool(initial))
        else:
            inp = TextInput(text='' if initial is None else str(initial),
                            multiline=False, input_filter=kind, font_size='14sp',
                            background_color=list(get_color("bg_input")),
                            foreground_color=list(get_color("text_primary")))
        row.add_widget(inp)
        content.add_widget(row)
        inputs[key] = inp

    error_lbl = Label(text='', size_hint_y=None, height=dp(24), font_size='12sp',
                      color=get_color("text_error"))
    content.add_widget(error_lbl)

    popup = Popup(title=title, content=content, size_hint=(0.9, None),
                  height=dp(140 + 46 * len(fields)), auto_dismiss=False)

    def _submit(*_):
        values = {k: (inp.active if isinstance(inp, CheckBox) else inp.text)
                  for k, inp in inputs.items()}
        try:
            on_submit(values)
        except (InputError, ShopTrackError) as e:
            error_lbl.text = str(e)
            return
        popup.dismiss()

    ok_btn = Button(text=submit_text, background_color=list(get_color("btn_checkout")))
    ok_btn.bind(on_release=_submit)
    cancel_btn = Button(text='Cancel', background_color=list(get_color("btn_clear")))
    cancel_btn.bind(on_release=lambda *_: popup.dismiss())
    content.add_widget(_button_row([ok_btn, cancel_btn]))
    popup.open()
    return popup


# ═══════════════════════════════════════════════════════════════════════════
# Screen base
# ═══════════════════════════════════════════════════════════════════════════

class ShopScreen(Screen):
    """Base for the five route screens.

    Every screen gets the shared repository as its only dependency and
    refreshes when one of the entities in ``watches`` changes.  While a
    screen is hidden, changes only mark it stale; it reloads on enter.
    """

    watches = ()

    def __init__(self, repository, **kwargs):
        # Set before the kv rule applies; its handlers may run during it.
        self.repository = repository
        self._stale = True
        super().__init__(**kwargs)
        bus = repository.event_bus
        if bus is not None:
            bus.subscribe(EventType.DATA_CHANGED, self._on_data_changed)
            bus.subscribe(EventType.SETTINGS_CHANGED, self._on_settings_changed)

    # ── State hooks used by the navigation shell ──

    def save_state(self):
        """Opaque state to keep while another route is shown."""
        return None

    def restore_state(self, state):
        """Apply saved state, or reset when ``state`` is None."""
        pass

    # ── Refresh ──

    def refresh(self):
        pass

    def on_enter(self):
        if self._stale:
            self._stale = False
            self.refresh()

    def _on_data_changed(self, entity):
        if entity not in self.watches:
            return
        if self.manager is not None and self.manager.current == self.name:
            self._stale = False
            self.refresh()
        else:
            self._stale = True

    def _on_settings_changed(self, _settings):
        self._stale = True
        if self.manager is not None and self.manager.current == self.name:
            self._stale = False
            self.refresh()

    # ── Helpers ──

    @property
    def currency_code(self):
        return self.repository.get_settings().currency_code

    def feedback(self, message, error=False):
        fb = self.ids.get("feedback")
        if fb:
            fb.text = message
            fb.color = get_color("text_error" if error else "text_feedback")
        if error:
            log.warning("%s: %s", self.name, message)

    def run_action(self, action, success=None):
        """Run a user action, reporting expected failures in the feedback label."""
        try:
            result = action()
        except (InputError, ShopTrackError) as e:
            self.feedback(str(e), error=True)
            return None
        if success:
            self.feedback(success)
        return result

    @staticmethod
    def app():
        return App.get_running_app()
