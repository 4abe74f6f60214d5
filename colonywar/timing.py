"""Per-phase timing instrumentation for warfare updates."""

from dataclasses import dataclass


@dataclass
class TickTiming:
    """Timing breakdown for a single update."""

    tick: int = 0
    registration_ms: float = 0.0
    borders_ms: float = 0.0
    conflicts_ms: float = 0.0
    diplomacy_ms: float = 0.0
    trade_ms: float = 0.0
    alliances_ms: float = 0.0
    total_ms: float = 0.0


class PerformanceMonitor:
    """Collects TickTiming records and summarizes them."""

    def __init__(self):
        self._tick_timings: list[TickTiming] = []

    def record_tick(self, timing: TickTiming) -> None:
        self._tick_timings.append(timing)

    @property
    def timings(self) -> list[TickTiming]:
        return list(self._tick_timings)

    @property
    def summary(self) -> dict:
        if not self._tick_timings:
            return {}
        n = len(self._tick_timings)
        slowest = max(self._tick_timings, key=lambda t: t.total_ms)
        return {
            "total_ticks": n,
            "avg_tick_ms": sum(t.total_ms for t in self._tick_timings) / n,
            "avg_registration_ms": sum(t.registration_ms for t in self._tick_timings) / n,
            "avg_borders_ms": sum(t.borders_ms for t in self._tick_timings) / n,
            "avg_conflicts_ms": sum(t.conflicts_ms for t in self._tick_timings) / n,
            "avg_diplomacy_ms": sum(t.diplomacy_ms for t in self._tick_timings) / n,
            "avg_trade_ms": sum(t.trade_ms for t in self._tick_timings) / n,
            "avg_alliances_ms": sum(t.alliances_ms for t in self._tick_timings) / n,
            "slowest_tick": slowest.tick,
            "slowest_tick_ms": slowest.total_ms,
        }
