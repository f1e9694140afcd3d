import json
import logging
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

LOCATION_FIELDS = ("name", "code", "country", "timezone", "currency")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Location:
    name: str
    code: str
    country: str
    timezone: str
    currency: str


@dataclass
class DisplayPrefs:
    show_seconds: bool = True
    use_24_hour: bool = True
    show_animations: bool = True
    animation_speed_ms: int = 100
    editor: Optional[str] = None

    def get_editor(self) -> str:
        if self.editor:
            return self.editor
        return os.environ.get("EDITOR") or "nvim"


@dataclass
class Config:
    current_location: Location
    home_location: Location
    tracked_locations: List[Location] = field(default_factory=list)
    display: DisplayPrefs = field(default_factory=DisplayPrefs)

    def all_locations(self) -> List[Location]:
        return [self.current_location, self.home_location, *self.tracked_locations]


WELLINGTON = Location("Wellington", "WLG", "New Zealand", "Pacific/Auckland", "NZD")
BOSTON = Location("Boston", "BOS", "USA", "America/New_York", "USD")

DEFAULT_TRACKED = [
    Location("London", "LDN", "United Kingdom", "Europe/London", "GBP"),
    Location("Los Angeles", "LAX", "USA", "America/Los_Angeles", "USD"),
    Location("Austin", "AUS", "USA", "America/Chicago", "USD"),
    Location("Paris", "PAR", "France", "Europe/Paris", "EUR"),
    Location("Berlin", "BER", "Germany", "Europe/Berlin", "EUR"),
    Location("Sydney", "SYD", "Australia", "Australia/Sydney", "AUD"),
    Location("Tokyo", "TYO", "Japan", "Asia/Tokyo", "JPY"),
    Location("Singapore", "SIN", "Singapore", "Asia/Singapore", "SGD"),
    Location("Kuala Lumpur", "KL", "Malaysia", "Asia/Kuala_Lumpur", "MYR"),
    Location("Rio", "RIO", "Brazil", "America/Sao_Paulo", "BRL"),
    Location("Addis Ababa", "ADD", "Ethiopia", "Africa/Addis_Ababa", "ETB"),
    Location("Dhaka", "DAC", "Bangladesh", "Asia/Dhaka", "BDT"),
    Location("Beijing", "BJS", "China", "Asia/Shanghai", "CNY"),
]


def default_config() -> Config:
    return Config(
        current_location=WELLINGTON,
        home_location=BOSTON,
        tracked_locations=list(DEFAULT_TRACKED),
        display=DisplayPrefs(),
    )


class LocationRegistry:
    """Ordered, read-only view of the configured locations keyed by code."""

    def __init__(self, locations: List[Location]) -> None:
        self._locations = dedupe_locations(locations)
        self._by_code: Dict[str, Location] = {loc.code.upper(): loc for loc in self._locations}

    @classmethod
    def from_config(cls, config: Config) -> "LocationRegistry":
        return cls(config.all_locations())

    @property
    def locations(self) -> List[Location]:
        return list(self._locations)

    def codes(self) -> List[str]:
        return [loc.code for loc in self._locations]

    def find(self, code: str) -> Optional[Location]:
        return self._by_code.get(code.upper())

    def __len__(self) -> int:
        return len(self._locations)


def get_config_path() -> Path:
    system = platform.system().lower()
    if system == "darwin":
        base = Path.home() / "Library" / "Application Support"
    elif system == "windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            base = Path(appdata)
        else:
            base = Path.home() / "AppData" / "Roaming"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "nzi" / "config.json"


def _location_from_dict(raw: Any, where: str) -> Location:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: expected an object")
    values = {}
    for key in LOCATION_FIELDS:
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"{where}: missing or invalid '{key}'")
        values[key] = value.strip()
    return Location(**values)


def _display_from_dict(raw: Any) -> DisplayPrefs:
    if raw is None:
        return DisplayPrefs()
    if not isinstance(raw, dict):
        raise ConfigError("display: expected an object")
    prefs = DisplayPrefs()
    for key in ("show_seconds", "use_24_hour", "show_animations"):
        if key in raw:
            if not isinstance(raw[key], bool):
                raise ConfigError(f"display: '{key}' must be true or false")
            setattr(prefs, key, raw[key])
    if "animation_speed_ms" in raw:
        speed = raw["animation_speed_ms"]
        if isinstance(speed, bool) or not isinstance(speed, int) or speed <= 0:
            raise ConfigError("display: 'animation_speed_ms' must be a positive integer")
        prefs.animation_speed_ms = speed
    editor = raw.get("editor")
    if editor is not None and not isinstance(editor, str):
        raise ConfigError("display: 'editor' must be a string")
    prefs.editor = editor or None
    return prefs


def dedupe_locations(locations: List[Location]) -> List[Location]:
    seen = set()
    result = []
    for loc in locations:
        key = loc.code.upper()
        if key in seen:
            continue
        seen.add(key)
        result.append(loc)
    return result


def config_from_dict(data: Any) -> Config:
    if not isinstance(data, dict):
        raise ConfigError("config root must be an object")
    current = _location_from_dict(data.get("current_location"), "current_location")
    home = _location_from_dict(data.get("home_location"), "home_location")
    raw_tracked = data.get("tracked_locations", [])
    if not isinstance(raw_tracked, list):
        raise ConfigError("tracked_locations: expected a list")
    tracked = [_location_from_dict(item, f"tracked_locations[{idx}]") for idx, item in enumerate(raw_tracked)]
    deduped = dedupe_locations(tracked)
    if len(deduped) != len(tracked):
        logger.info("dropped %d duplicate tracked location(s)", len(tracked) - len(deduped))
    return Config(
        current_location=current,
        home_location=home,
        tracked_locations=deduped,
        display=_display_from_dict(data.get("display")),
    )


def config_to_dict(config: Config) -> Dict[str, Any]:
    return {
        "current_location": asdict(config.current_location),
        "home_location": asdict(config.home_location),
        "tracked_locations": [asdict(loc) for loc in config.tracked_locations],
        "display": asdict(config.display),
    }


def load_config() -> Config:
    path = get_config_path()
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        config = default_config()
        save_config(config)
        return config
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"{path}: {exc.strerror or exc}") from exc
    return config_from_dict(data)


def save_config(config: Config) -> None:
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(config_to_dict(config), f, indent=2, sort_keys=True)
