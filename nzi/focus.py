from enum import Enum


class Focus(Enum):
    MAP = "map"
    WEATHER = "weather"
    TIME_CONVERT = "time_convert"
    CURRENCY = "currency"

    def next(self) -> "Focus":
        return _RING[(_RING.index(self) + 1) % len(_RING)]

    def prev(self) -> "Focus":
        return _RING[(_RING.index(self) - 1) % len(_RING)]

    def move(self, direction: str) -> "Focus":
        return _MOVES[direction].get(self, self)

    def up(self) -> "Focus":
        return self.move("up")

    def down(self) -> "Focus":
        return self.move("down")

    def left(self) -> "Focus":
        return self.move("left")

    def right(self) -> "Focus":
        return self.move("right")

    @property
    def editable(self) -> bool:
        return self in (Focus.TIME_CONVERT, Focus.CURRENCY)


class InputMode(Enum):
    NORMAL = "normal"
    EDITING_CURRENCY = "editing_currency"
    EDITING_TIME = "editing_time"


_RING = [Focus.MAP, Focus.WEATHER, Focus.TIME_CONVERT, Focus.CURRENCY]

# Map on the left, weather top-right, time + currency side by side below it.
# Missing entries are no-ops.
_MOVES = {
    "up": {
        Focus.TIME_CONVERT: Focus.WEATHER,
        Focus.CURRENCY: Focus.WEATHER,
    },
    "down": {
        Focus.MAP: Focus.TIME_CONVERT,
        Focus.WEATHER: Focus.TIME_CONVERT,
    },
    "left": {
        Focus.WEATHER: Focus.MAP,
        Focus.TIME_CONVERT: Focus.MAP,
        Focus.CURRENCY: Focus.TIME_CONVERT,
    },
    "right": {
        Focus.MAP: Focus.WEATHER,
        Focus.TIME_CONVERT: Focus.CURRENCY,
    },
}

DIRECTIONS = tuple(_MOVES)
