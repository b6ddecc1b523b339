"""
Metrics tracking for Rhythmo
"""
import time
from typing import Dict, Optional, Union

Number = Union[int, float]


def _initial_counters() -> Dict[str, Number]:
    return {
        "songs_played": 0,
        "commands_run": 0,
        "queue_add": 0,
        "queue_clear": 0,
        "skips": 0,
        "resolve_attempts": 0,
        "resolve_success": 0,
        "resolve_fail": 0,
        "playback_finish": 0,
        "playback_error": 0,
        "voice_connect_attempts": 0,
        "voice_connect_failures": 0,
        "resolve_time_total_seconds": 0.0,
        "resolve_time_count": 0,
    }


class Metrics:
    """Process-wide counters. Monotonic, kept in memory only."""

    def __init__(self, started_at: Optional[float] = None) -> None:
        self.started_at: float = time.time() if started_at is None else started_at
        self._values: Dict[str, Number] = _initial_counters()

    def inc(self, name: str, delta: int = 1) -> None:
        """Increment a counter by delta."""
        self._values[name] = self._values.get(name, 0) + delta

    def add_time(self, name: str, seconds: float) -> None:
        """Add an observation to the *_total_seconds / *_count pair."""
        self._values[f"{name}_total_seconds"] = self._values.get(f"{name}_total_seconds", 0.0) + float(seconds)
        self._values[f"{name}_count"] = self._values.get(f"{name}_count", 0) + 1

    def get(self, name: str) -> Number:
        return self._values.get(name, 0)

    def average(self, name: str) -> float:
        """Average of a timing series in seconds."""
        total = self._values.get(f"{name}_total_seconds", 0.0)
        count = self._values.get(f"{name}_count", 0) or 0
        return (total / count) if count else 0.0

    def uptime_seconds(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return max(0.0, now - self.started_at)

    def snapshot(self) -> Dict[str, Number]:
        """Get a snapshot of current metrics."""
        return dict(self._values)
