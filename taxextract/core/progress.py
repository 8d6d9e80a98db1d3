"""Progress events and stage timings for a pipeline run.

Uploads of long returns take minutes; callers (the CLI, a server streaming
status to a browser) get coarse progress through an optional callback.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Literal

ProgressPhase = Literal[
    "start",
    "pdf_loaded",
    "classifying",
    "classification_done",
    "classification_fallback",
    "chunk_progress",
    "merging",
    "parsed",
]


@dataclass(frozen=True)
class ProgressEvent:
    """One progress update. ``percent`` is 0-100 and never decreases within a run."""

    phase: ProgressPhase
    percent: float
    message: str = ""
    meta: dict[str, Any] = field(default_factory=dict)


ProgressHandler = Callable[[ProgressEvent], None]


class ProgressEmitter:
    """Forwards events to a handler, clamping percent to 0-100 and keeping it monotonic."""

    def __init__(self, handler: ProgressHandler | None = None):
        self.handler = handler
        self._last = 0.0

    def emit(self, phase: ProgressPhase, percent: float, message: str = "", **meta):
        if self.handler is None:
            return
        clamped = max(0.0, min(100.0, float(percent)))
        self._last = max(self._last, clamped)
        self.handler(ProgressEvent(phase=phase, percent=self._last, message=message, meta=meta))


@contextmanager
def timed(timings: dict[str, float], key: str) -> Iterator[None]:
    """Add the elapsed wall time of the block, in ms, to ``timings[key]``.

    Repeated blocks under the same key accumulate (one entry per chunk call
    would be noise).
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        timings[key] = timings.get(key, 0.0) + elapsed_ms
