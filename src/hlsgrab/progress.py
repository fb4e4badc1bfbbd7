"""Console progress reporting for segment downloads."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Optional

import click

logger = logging.getLogger(__name__)

ProgressEmitter = Callable[[Optional[int], int], None]


def echo_progress(value: Optional[int], maximum: int) -> None:
    """Rewrite the current console line with ``(value/maximum)``.

    ``None`` terminates the line.
    """
    if value is None:
        click.echo()
    else:
        click.echo(f"\r({value}/{maximum})", nl=False)


class ProgressCounter:
    """Monotonic counter written by the downloader and read by the reporter."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self, amount: int = 1) -> None:
        if amount < 1:
            return
        with self._lock:
            self._value += amount


class ProgressReporter:
    """Polls a :class:`ProgressCounter` and emits a status line on change."""

    def __init__(
        self,
        counter: ProgressCounter,
        maximum: int,
        *,
        interval: float = 0.25,
        emit: ProgressEmitter = echo_progress,
    ) -> None:
        self.counter = counter
        self.maximum = maximum
        self.interval = interval
        self._emit = emit
        self._task: Optional[asyncio.Task] = None
        self._finished = False
        self._stopped = False

    def start(self) -> None:
        """Start the background polling task."""
        if self._task is not None or self._stopped:
            return
        self._task = asyncio.create_task(self._run(), name="hlsgrab-progress")

    async def stop(self, finish: bool = True) -> None:
        """Stop polling; with ``finish`` print the completed state."""
        if self._stopped:
            return
        self._stopped = True

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if finish and not self._finished:
            self._finished = True
            self._emit(self.maximum, self.maximum)
            self._emit(None, self.maximum)

    async def _run(self) -> None:
        last_value = -1
        while True:
            value = self.counter.value
            if value != last_value:
                self._emit(value, self.maximum)
                last_value = value
            if last_value >= self.maximum:
                self._finished = True
                self._emit(None, self.maximum)
                logger.debug("Progress reporter reached %d", self.maximum)
                return
            await asyncio.sleep(self.interval)
