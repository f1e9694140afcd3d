import curses
import logging
import os
import subprocess
import sys
import time
from typing import List, Optional

from .app import App, Snapshot
from .config import Config, get_config_path
from .focus import Focus, InputMode
from .keys import BACKSPACE, BACKTAB, DOWN, ENTER, ESC, LEFT, RIGHT, TAB, UP, KeyEvent, handle_key
from .timecalc import format_time_delta

logger = logging.getLogger(__name__)

MIN_ROWS = 20
MIN_COLS = 72
HEADER_LINES = 1
FOOTER_LINES = 1
MAP_WIDTH_RATIO = 0.4
SPINNER = "|/-\\"

HELP_LINES = [
    "Controls",
    "",
    "Tab / Shift+Tab   next / previous panel",
    "arrows / hjkl     move between panels",
    "Enter             edit time or amount",
    "0-9               type time or amount",
    "s                 swap from/to",
    "space             cycle city / zone / pair",
    "c                 next currency pair",
    "n                 time converter: now",
    "r                 refresh weather / reset time",
    "e                 expand weather forecast",
    "R / E             reset config / edit config",
    "/help /edit /refresh /reset /quit",
    "?                 toggle this help",
    "q                 quit",
]

_CURSES_KEYS = {
    curses.KEY_UP: UP,
    curses.KEY_DOWN: DOWN,
    curses.KEY_LEFT: LEFT,
    curses.KEY_RIGHT: RIGHT,
    curses.KEY_BTAB: BACKTAB,
    curses.KEY_ENTER: ENTER,
    curses.KEY_BACKSPACE: BACKSPACE,
}

_CONTROL_CHARS = {
    "\t": TAB,
    "\n": ENTER,
    "\r": ENTER,
    "\x1b": ESC,
    "\x7f": BACKSPACE,
    "\b": BACKSPACE,
}


def decode_key(ch) -> Optional[KeyEvent]:
    if isinstance(ch, int):
        name = _CURSES_KEYS.get(ch)
        if name is None and 0 <= ch <= 255:
            return decode_key(chr(ch))
        logger.debug("key int=%r -> %s", ch, name)
        return KeyEvent(name) if name else None
    if isinstance(ch, str) and len(ch) == 1:
        name = _CONTROL_CHARS.get(ch)
        if name is not None:
            return KeyEvent(name)
        if ch.isprintable():
            return KeyEvent(ch)
    logger.debug("ignored key %r", ch)
    return None


def _put(canvas, row: int, col: int, text: str, limit: Optional[int] = None) -> None:
    if not (0 <= row < len(canvas)):
        return
    if limit is not None:
        text = text[: max(0, limit)]
    for i, ch in enumerate(text):
        x = col + i
        if 0 <= x < len(canvas[0]):
            canvas[row][x] = ch


def _draw_box(canvas, x: int, y: int, width: int, height: int, title: str, focused: bool) -> None:
    top = y
    bottom = y + height - 1
    left = x
    right = x + width - 1
    horiz = "=" if focused else "-"
    vert = "!" if focused else "|"
    corner = "*" if focused else "+"

    for col in range(left + 1, right):
        _put(canvas, top, col, horiz)
        _put(canvas, bottom, col, horiz)
    for corner_row in (top, bottom):
        _put(canvas, corner_row, left, corner)
        _put(canvas, corner_row, right, corner)
    for row in range(top + 1, bottom):
        _put(canvas, row, left, vert)
        _put(canvas, row, right, vert)
    _put(canvas, top, left + 2, f" {title} ", width - 4)


def _fill_box(canvas, x: int, y: int, width: int, height: int, lines: List[str]) -> None:
    for i, line in enumerate(lines[: max(0, height - 2)]):
        _put(canvas, y + 1 + i, x + 2, line, width - 4)


def _header_line(app: App, snap: Snapshot) -> str:
    prefs = snap.display
    parts = []
    for resolved in (snap.current_time, snap.home_time):
        if resolved is not None:
            parts.append(f"{resolved.location_name} {resolved.time_string(prefs.use_24_hour, prefs.show_seconds)}")
    if snap.current_time is not None and snap.home_time is not None:
        parts.append(f"({format_time_delta(snap.current_time, snap.home_time)})")
    online = "online" if snap.is_online else "offline"
    return f"nzi | {'  '.join(parts)} | {online}"


def _map_lines(snap: Snapshot) -> List[str]:
    prefs = snap.display
    lines = []
    anchor = snap.current_time
    spinner = SPINNER[snap.animation_frame % len(SPINNER)] if prefs.show_animations else " "
    for resolved in snap.times:
        marker = "*" if resolved.is_daytime else "."
        delta = format_time_delta(anchor, resolved) if anchor is not None else ""
        time_str = resolved.time_string(prefs.use_24_hour, prefs.show_seconds)
        lines.append(f"{marker} {resolved.location_code:<4} {resolved.location_name[:14]:<14} {time_str:>11} {delta:>6}")
    lines.extend(["", f"{spinner} {len(snap.times)} locations"])
    return lines


def _weather_lines(snap: Snapshot) -> List[str]:
    view = snap.weather
    lines = [f"{view.location.code} {view.location.name} [{view.index}/{view.count}]"]
    if view.state == "loading":
        lines.extend(["", "Loading weather..."])
        return lines
    if view.state == "offline":
        lines.extend(["", "OFFLINE", "No weather data available", f"Error: {(view.error or '')[:30]}"])
        return lines

    w = view.weather
    lines.append(f"{w.description}  {w.temp_string()} (feels {w.feels_like_string()})")
    lines.append(f"humidity {w.humidity}%  wind {w.wind_kmph} km/h {w.wind_dir}")
    for day in w.forecast:
        lines.append(f"{day.date}  {day.temp_min}..{day.temp_max}°C  wind {day.wind_max}  {day.condition}")
        if snap.weather_expanded:
            for period in day.periods:
                lines.append(f"   {period.period:<8} {period.temp:>3}°C {period.wind:>3} {period.wind_dir:<2} {period.condition}")
    lines.append("Open-Meteo " + ("[stale/offline]" if view.stale else "[live]"))
    return lines


def _time_lines(app: App, snap: Snapshot) -> List[str]:
    tc = snap.time_converter
    lines = [
        f"{app.location_name(tc.from_code)} ({tc.from_code})",
        f"  {tc.format_input_display()}",
        f"{app.location_name(tc.to_code)} ({tc.to_code})",
        f"  {tc.format_result()}" + ("  [invalid time]" if tc.invalid else ""),
    ]
    if snap.focus is Focus.TIME_CONVERT:
        lines.append("[0-9] time [s] swap [spc] zone")
    if snap.input_mode is InputMode.EDITING_TIME:
        lines.append("EDITING: hjkl adjust, Enter done")
    return lines


def _currency_lines(snap: Snapshot) -> List[str]:
    conv = snap.currency
    lines = [
        f"{conv.from_amount:>10.2f} {conv.from_currency}",
        f"  v {conv.rate_display()}",
        f"{conv.to_amount:>10.2f} {conv.to_currency}",
    ]
    if conv.reverse_rate is not None:
        lines.append(f"1 {conv.to_currency} ~ {conv.reverse_rate:.2f} {conv.from_currency}")
    lines.append(f"exchangerate-api {conv.source_tag()}".rstrip())
    if snap.focus is Focus.CURRENCY:
        lines.append("[0-9] amt [s] swap [c] pair")
    if snap.input_mode is InputMode.EDITING_CURRENCY:
        lines.append("EDITING: Esc/Enter done")
    return lines


def _footer_line(snap: Snapshot) -> str:
    if snap.command_buffer:
        return snap.command_buffer + "_"
    if snap.status is not None:
        return snap.status.text
    return "? help  / command  q quit"


def _compact_view(canvas, app: App, snap: Snapshot, cols: int) -> None:
    lines = [_header_line(app, snap)]
    lines.extend(_map_lines(snap))
    lines.extend(_time_lines(app, snap))
    lines.extend(_currency_lines(snap))
    lines.append(_footer_line(snap))
    for idx, line in enumerate(lines[: len(canvas)]):
        _put(canvas, idx, 0, line, cols)


def _draw_dashboard(canvas, app: App, snap: Snapshot, rows: int, cols: int) -> None:
    _put(canvas, 0, 0, _header_line(app, snap), cols)
    _put(canvas, rows - 1, 0, _footer_line(snap), cols)

    body_top = HEADER_LINES
    body_height = rows - HEADER_LINES - FOOTER_LINES
    map_width = int(cols * MAP_WIDTH_RATIO)
    right_x = map_width
    right_width = cols - map_width
    weather_height = body_height // 2 + 1
    lower_top = body_top + weather_height
    lower_height = body_height - weather_height
    time_width = right_width // 2

    panels = [
        (Focus.MAP, "World", 0, body_top, map_width, body_height, _map_lines(snap)),
        (Focus.WEATHER, "Weather", right_x, body_top, right_width, weather_height, _weather_lines(snap)),
        (Focus.TIME_CONVERT, "Time", right_x, lower_top, time_width, lower_height, _time_lines(app, snap)),
        (Focus.CURRENCY, "Currency", right_x + time_width, lower_top, right_width - time_width, lower_height, _currency_lines(snap)),
    ]
    for focus, title, x, y, width, height, lines in panels:
        _draw_box(canvas, x, y, width, height, title, snap.focus is focus)
        _fill_box(canvas, x, y, width, height, lines)


def _draw_help(stdscr, rows: int, cols: int) -> None:
    lines = HELP_LINES
    width = min(cols - 2, max(len(line) for line in lines) + 4)
    height = min(rows, len(lines) + 2)
    start_y = max(0, (rows - height) // 2)
    start_x = max(0, (cols - width) // 2)

    for y in range(height):
        for x in range(width):
            ch = " "
            if y == 0 or y == height - 1:
                ch = "-"
            if x == 0 or x == width - 1:
                ch = "|"
            if (y == 0 or y == height - 1) and (x == 0 or x == width - 1):
                ch = "+"
            try:
                stdscr.addch(start_y + y, start_x + x, ch)
            except curses.error:
                pass

    for i, line in enumerate(lines[: max(0, height - 2)]):
        try:
            stdscr.addstr(start_y + 1 + i, start_x + 2, line[: max(0, width - 4)])
        except curses.error:
            pass


def _draw(stdscr, app: App) -> None:
    snap = app.snapshot()
    rows, cols = stdscr.getmaxyx()
    canvas = [[" " for _ in range(cols)] for _ in range(rows)]
    if rows < MIN_ROWS or cols < MIN_COLS:
        _compact_view(canvas, app, snap, cols)
    else:
        _draw_dashboard(canvas, app, snap, rows, cols)

    stdscr.erase()
    for y in range(rows):
        try:
            stdscr.addstr(y, 0, "".join(canvas[y]))
        except curses.error:
            pass
    if snap.show_help:
        _draw_help(stdscr, rows, cols)
    stdscr.refresh()


def _setup_screen():
    stdscr = curses.initscr()
    sys.stdout.write("\x1b[?1049h")
    sys.stdout.flush()
    curses.noecho()
    curses.cbreak()
    stdscr.keypad(True)
    stdscr.nodelay(True)
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    return stdscr


def _teardown_screen(stdscr) -> None:
    curses.nocbreak()
    stdscr.keypad(False)
    curses.echo()
    curses.endwin()
    sys.stdout.write("\x1b[?1049l")
    sys.stdout.flush()


def open_editor(app: App, stdscr):
    editor = app.get_editor()
    path = get_config_path()
    result = None
    error: Optional[OSError] = None
    _teardown_screen(stdscr)
    try:
        result = subprocess.run([editor, str(path)])
    except OSError as e:
        error = e
    stdscr = _setup_screen()
    if result is None:
        logger.warning("failed to launch %s: %s", editor, error)
        app.set_status(f"Failed to open {editor}: {error}")
    elif result.returncode == 0:
        app.reload_config()
    else:
        app.set_status(f"Editor exited with: {result.returncode}")
    return stdscr


def _read_key(stdscr):
    try:
        return stdscr.get_wch()
    except curses.error:
        return None


def run(config: Config) -> None:
    os.environ.setdefault("ESCDELAY", "25")
    app = App(config)
    app.tick()
    app.run_pending_refreshes()

    stdscr = _setup_screen()
    try:
        while app.running:
            _draw(stdscr, app)

            ch = _read_key(stdscr)
            if ch is None:
                time.sleep(min(app.clock.seconds_until_tick(), app.clock.tick_interval) or 0.01)
            else:
                event = decode_key(ch)
                if event is not None:
                    handle_key(app, event)

            if app.clock.tick_due():
                app.tick()
                app.clock.mark_tick()

            app.run_pending_refreshes()

            if app.edit_config_requested:
                app.edit_config_requested = False
                stdscr = open_editor(app, stdscr)

            if app.clock.refresh_due():
                app.periodic_refresh()
                app.clock.mark_refresh()
    finally:
        _teardown_screen(stdscr)
        app.close()
