"""Keyboard routing.

Priority on every key press: command buffer, then the current input mode.
Keys are abstract: a single character, or one of the names in ``NAMED_KEYS``.
"""

import logging
from dataclasses import dataclass

from .app import App
from .focus import Focus, InputMode

logger = logging.getLogger(__name__)

UP = "up"
DOWN = "down"
LEFT = "left"
RIGHT = "right"
TAB = "tab"
BACKTAB = "backtab"
ENTER = "enter"
ESC = "esc"
BACKSPACE = "backspace"

NAMED_KEYS = (UP, DOWN, LEFT, RIGHT, TAB, BACKTAB, ENTER, ESC, BACKSPACE)

_NAV_KEYS = {
    UP: "up",
    DOWN: "down",
    LEFT: "left",
    RIGHT: "right",
    "k": "up",
    "j": "down",
    "h": "left",
    "l": "right",
}

COMMANDS = {
    "/help": "help",
    "/h": "help",
    "/edit": "edit",
    "/e": "edit",
    "/quit": "quit",
    "/q": "quit",
    "/reset": "reset",
    "/r": "reset",
    "/refresh": "refresh",
}


@dataclass(frozen=True)
class KeyEvent:
    code: str
    pressed: bool = True

    @property
    def is_char(self) -> bool:
        return len(self.code) == 1

    @property
    def is_digit(self) -> bool:
        return self.is_char and self.code in "0123456789"


def handle_key(app: App, event: KeyEvent) -> None:
    if not event.pressed or not event.code:
        return
    if app.command_buffer:
        _handle_command_input(app, event)
    elif app.input_mode is InputMode.NORMAL:
        _handle_normal_input(app, event)
    elif app.input_mode is InputMode.EDITING_CURRENCY:
        _handle_currency_input(app, event)
    elif app.input_mode is InputMode.EDITING_TIME:
        _handle_time_input(app, event)


def _handle_command_input(app: App, event: KeyEvent) -> None:
    if event.code == ESC:
        app.command_buffer = ""
    elif event.code == ENTER:
        execute_command(app, app.command_buffer)
        app.command_buffer = ""
    elif event.code == BACKSPACE:
        app.command_buffer = app.command_buffer[:-1]
    elif event.is_char:
        app.command_buffer += event.code


def execute_command(app: App, buffer: str) -> None:
    verb = COMMANDS.get(buffer.strip().lower())
    logger.debug("command %r -> %s", buffer, verb)
    if verb == "help":
        app.show_help = True
    elif verb == "edit":
        app.edit_config_requested = True
    elif verb == "quit":
        app.running = False
    elif verb == "reset":
        app.reset_to_defaults()
    elif verb == "refresh":
        app.request_weather_refresh("Refreshing...")
    else:
        app.set_status(f"Unknown command: {buffer}")


def _handle_normal_input(app: App, event: KeyEvent) -> None:
    key = event.code
    focus = app.focus
    tc = app.time_converter

    if key in _NAV_KEYS:
        app.focus = focus.move(_NAV_KEYS[key])
    elif key == TAB:
        app.focus = focus.next()
    elif key == BACKTAB:
        app.focus = focus.prev()
    elif key == ENTER:
        _enter_edit_mode(app)
    elif key == "q":
        app.running = False
    elif key == "s":
        _swap(app)
    elif key == "n" and focus is Focus.TIME_CONVERT:
        tc.set_to_now()
        app.update_time_conversion()
    elif key == "r":
        if focus is Focus.WEATHER:
            app.request_weather_refresh()
        elif focus is Focus.TIME_CONVERT:
            tc.reset()
            app.update_time_conversion()
    elif event.is_digit and focus is Focus.CURRENCY:
        app.input_mode = InputMode.EDITING_CURRENCY
        app.currency.clear_input()
        app.currency.handle_input(key)
    elif event.is_digit and focus is Focus.TIME_CONVERT:
        tc.handle_digit(key)
        app.update_time_conversion()
    elif key == BACKSPACE and focus is Focus.TIME_CONVERT and tc.is_typing:
        tc.handle_backspace()
        app.update_time_conversion()
    elif key == ESC and focus is Focus.TIME_CONVERT and tc.is_typing:
        tc.clear_input_buffer()
    elif key == "c" and focus is Focus.CURRENCY:
        app.cycle_currency_pair()
    elif key == " ":
        _cycle_subject(app)
    elif key == "e" and focus is Focus.WEATHER:
        app.weather_expanded = not app.weather_expanded
    elif key == "?":
        app.show_help = not app.show_help
    elif key == "R":
        app.reset_to_defaults()
    elif key == "E":
        app.edit_config_requested = True
    elif key == "/":
        app.command_buffer = "/"


def _enter_edit_mode(app: App) -> None:
    if app.focus is Focus.CURRENCY:
        app.input_mode = InputMode.EDITING_CURRENCY
    elif app.focus is Focus.TIME_CONVERT:
        app.input_mode = InputMode.EDITING_TIME


def _swap(app: App) -> None:
    if app.focus is Focus.CURRENCY:
        app.swap_currency()
    elif app.focus is Focus.TIME_CONVERT:
        app.time_converter.swap_cities()
        app.update_time_conversion()


def _cycle_subject(app: App) -> None:
    if app.focus is Focus.WEATHER:
        app.cycle_weather_location()
    elif app.focus is Focus.TIME_CONVERT:
        app.cycle_destination()
    elif app.focus is Focus.CURRENCY:
        app.cycle_currency_pair()


def _handle_currency_input(app: App, event: KeyEvent) -> None:
    key = event.code
    if key in (ESC, ENTER):
        app.input_mode = InputMode.NORMAL
    elif event.is_digit or key == ".":
        app.currency.handle_input(key)
    elif key == BACKSPACE:
        app.currency.handle_backspace()


def _handle_time_input(app: App, event: KeyEvent) -> None:
    key = event.code
    tc = app.time_converter
    if key in (ESC, ENTER):
        app.input_mode = InputMode.NORMAL
        return
    if key in ("k", UP):
        tc.increment_hour()
    elif key in ("j", DOWN):
        tc.decrement_hour()
    elif key in ("l", RIGHT):
        tc.increment_minute()
    elif key in ("h", LEFT):
        tc.decrement_minute()
    else:
        return
    app.update_time_conversion()
