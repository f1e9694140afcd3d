import time
from typing import Callable

DEFAULT_TICK_MS = 100
DATA_REFRESH_SECONDS = 300.0


class AppClock:
    """Fast animation tick and slow data refresh, both on a monotonic clock."""

    def __init__(
        self,
        tick_ms: int = DEFAULT_TICK_MS,
        refresh_seconds: float = DATA_REFRESH_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self.tick_interval = max(1, int(tick_ms)) / 1000.0
        self.refresh_interval = refresh_seconds
        start = clock()
        self.last_tick = start
        self.last_refresh = start

    def now(self) -> float:
        return self._clock()

    def set_tick_ms(self, tick_ms: int) -> None:
        self.tick_interval = max(1, int(tick_ms)) / 1000.0

    def tick_due(self) -> bool:
        return self._clock() - self.last_tick >= self.tick_interval

    def mark_tick(self) -> None:
        self.last_tick = self._clock()

    def refresh_due(self) -> bool:
        return self._clock() - self.last_refresh > self.refresh_interval

    def mark_refresh(self) -> None:
        self.last_refresh = self._clock()

    def seconds_until_tick(self) -> float:
        return max(0.0, self.tick_interval - (self._clock() - self.last_tick))
