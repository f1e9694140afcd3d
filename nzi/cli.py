import argparse
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from . import __version__
from .config import Config, ConfigError, load_config
from .logging_config import setup_logging
from .timecalc import ConversionError, TimeService, format_time_delta

logger = logging.getLogger(__name__)


def _headless_snapshot(config: Config, now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    prefs = config.display
    service = TimeService()
    service.update(config.all_locations(), now)
    anchor = service.get(config.current_location.code)

    lines = [f"now (UTC): {now.strftime('%Y-%m-%d %H:%M:%S')}"]
    for resolved in service.times:
        delta = format_time_delta(anchor, resolved) if anchor is not None else ""
        time_str = resolved.time_string(prefs.use_24_hour, prefs.show_seconds)
        lines.append(f"{resolved.location_code:<4} {resolved.location_name:<14} {time_str:>11} {delta:>6}")

    if anchor is not None:
        source = config.current_location
        target = config.home_location
        try:
            result = service.convert(source.code, target.code, anchor.civil_datetime.hour, 0)
        except ConversionError as e:
            lines.append(f"convert: {e}")
        else:
            lines.append(
                f"convert: {anchor.civil_datetime.hour:02d}:00 {source.code} -> {result.format()} {target.code}"
            )
    return "\n".join(lines)


def parse_args(argv=None):
    epilog = (
        "Controls (interactive): Tab/arrows move between panels, Enter edits, "
        "space cycles, ? help, / commands, q quit."
    )
    parser = argparse.ArgumentParser(
        prog="nzi",
        description="Terminal dashboard: local vs world time, currency and weather",
        epilog=epilog,
    )
    parser.add_argument("--headless", action="store_true", help="print a times-only snapshot and exit")
    parser.add_argument("--debug", action="store_true", help="log at DEBUG level")
    parser.add_argument("--version", action="version", version=f"nzi {__version__}")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    setup_logging(logging.DEBUG if args.debug else logging.INFO, console=args.headless and args.debug)

    try:
        config = load_config()
    except ConfigError as e:
        logger.error("config error: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.headless:
        print(_headless_snapshot(config))
        return 0

    try:
        from .ui import run

        run(config)
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
