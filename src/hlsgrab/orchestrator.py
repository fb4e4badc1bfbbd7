"""Sequential download of an ordered segment task list."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

import aiohttp

from .downloader import SegmentDownloader
from .errors import HlsGrabError, SegmentDownloadError
from .models import SegmentTask
from .progress import ProgressCounter

logger = logging.getLogger(__name__)


class DownloadOrchestrator:
    """Fetch every task one at a time, aborting on the first failure."""

    def __init__(
        self,
        downloader: SegmentDownloader,
        work_dir: Path,
        counter: Optional[ProgressCounter] = None,
    ) -> None:
        self.downloader = downloader
        self.work_dir = work_dir
        self.counter = counter or ProgressCounter()

    async def run(self, tasks: Sequence[SegmentTask]) -> int:
        """
        Download ``tasks`` in order into the working directory.

        Segments already present on disk are skipped, so an interrupted run
        can be resumed.

        Returns:
            Number of segments actually transferred

        Raises:
            SegmentDownloadError: on the first failed segment
        """
        transferred = 0
        for task in tasks:
            destination = task.work_path(self.work_dir)
            try:
                if await self.downloader.fetch(task.url, destination):
                    transferred += 1
            except asyncio.CancelledError:
                raise
            except (HlsGrabError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                logger.error("Download of %s segment %s failed: %s", task.kind.value, task.name, exc)
                raise SegmentDownloadError(task, exc) from exc
            self.counter.increment()

        logger.info(
            "Downloaded %d of %d segments (%d already present)",
            transferred,
            len(tasks),
            len(tasks) - transferred,
        )
        return transferred
