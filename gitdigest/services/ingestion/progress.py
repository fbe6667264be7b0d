from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

PROGRESS_TOTAL = 100

# stage boundaries on the 0..100 scale
CONNECT = 0
CLONE = 10
CLONED = 50
FILES_DONE = 90
DONE = 100

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class ProgressEvent:
    current: int
    total: int
    stage: str


class ProgressReporter:
    """
    Coarse percentage progress for one ingestion request.

    Values are clamped so that observers only ever see a non-decreasing
    sequence ending at 100. Events go to an optional callback and/or an
    asyncio queue that a consumer drains as an event stream.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        queue: Optional[asyncio.Queue] = None,
        total: int = PROGRESS_TOTAL,
    ) -> None:
        self.callback = callback
        self.queue = queue
        self.total = total
        self.current = 0
        self.stage = "starting"

    def report(self, current: float, stage: Optional[str] = None) -> ProgressEvent:
        value = min(max(int(current), self.current), self.total)
        self.current = value
        if stage:
            self.stage = stage

        event = ProgressEvent(current=value, total=self.total, stage=self.stage)
        if self.callback is not None:
            try:
                self.callback(value, self.total)
            except Exception:
                logger.exception("Progress callback failed")
        if self.queue is not None:
            self.queue.put_nowait(event)
        return event

    def span(self, start: int, end: int, done: int, count: int, stage: Optional[str] = None) -> ProgressEvent:
        """Report `done` of `count` units mapped linearly into [start, end]."""
        if count <= 0:
            return self.report(end, stage)
        return self.report(start + (end - start) * done / count, stage)
