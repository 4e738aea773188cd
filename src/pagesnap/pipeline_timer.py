# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Stage timer for one extraction pass.

Created before the first CDP call so that a caller-level timeout can still
report which stage was running when the pass was abandoned.
"""

from __future__ import annotations

import time
from collections.abc import Callable

_STAGE_HINTS = {
    "capture": "Snapshot or accessibility tree capture is stalling; the page may still be loading.",
    "decode": "DOM snapshot is very large.",
    "geometry": "Too many nodes for box-model lookups. Try a smaller box batch size.",
    "listeners": "Too many nodes for event listener lookups.",
    "synthesis": "Embedded frames are slow to populate their accessibility trees.",
}


def _ms(start_ns: int, end_ns: int) -> float:
    return round((end_ns - start_ns) / 1e6, 1)


class PipelineTimer:
    """Wall-clock time per extraction stage.

    Stages are sequential: starting one closes the previous one. A stage
    name used twice keeps only its latest duration.
    """

    __slots__ = ("_clock", "_start_ns", "_done", "_current")

    def __init__(self, clock: Callable[[], int] = time.monotonic_ns) -> None:
        self._clock = clock
        self._start_ns = clock()
        self._done: dict[str, float] = {}
        self._current: tuple[str, int] | None = None

    def stage(self, name: str) -> None:
        now = self._clock()
        self._close(now)
        self._current = (name, now)

    def finalize(self) -> None:
        """Close the running stage, if any. Safe to call more than once."""
        self._close(self._clock())

    def _close(self, now: int) -> None:
        if self._current is not None:
            name, started = self._current
            self._done[name] = _ms(started, now)
            self._current = None

    @property
    def current_stage(self) -> str | None:
        return self._current[0] if self._current else None

    def elapsed_per_stage(self) -> dict[str, float]:
        """{stage: ms} in start order; a running stage counts up to now."""
        result = dict(self._done)
        if self._current is not None:
            name, started = self._current
            result[name] = _ms(started, self._clock())
        return result

    def total_ms(self) -> float:
        return _ms(self._start_ns, self._clock())

    def timeout_report(self) -> dict:
        """Where an abandoned pass spent its time, plus a hint for the stalled stage."""
        now = self._clock()
        stalled = self.current_stage or "unknown"
        return {
            "error": "timeout",
            "completed_stages": [{"stage": name, "ms": ms} for name, ms in self._done.items()],
            "timed_out_at": stalled,
            "timed_out_stage_ms": _ms(self._current[1], now) if self._current else 0,
            "total_ms": _ms(self._start_ns, now),
            "hint": self.hint_for_stage(stalled),
        }

    @staticmethod
    def hint_for_stage(stage: str) -> str:
        return _STAGE_HINTS.get(stage, f"Timed out during '{stage}' stage.")
