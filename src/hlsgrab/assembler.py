"""Concatenate downloaded segments into one output file per stream kind."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Dict, Mapping, Sequence

import aiofiles

from .models import OutputKind, SegmentTask

logger = logging.getLogger(__name__)


class OutputAssembler:
    """Stream-copies segment files, in task order, into final outputs."""

    CHUNK_SIZE = 1024 * 1024

    def __init__(self, work_dir: Path, chunk_size: int = CHUNK_SIZE) -> None:
        self.work_dir = work_dir
        self.chunk_size = chunk_size

    async def assemble(
        self,
        tasks: Sequence[SegmentTask],
        destinations: Mapping[OutputKind, Path],
    ) -> Dict[OutputKind, Path]:
        """
        Write each kind's segments, in the order given, to its destination.

        The working directory is removed once every output is closed.

        Args:
            tasks: Fetched segment tasks in manifest order
            destinations: Output file per kind

        Returns:
            The destinations that were written
        """
        unknown = {task.kind for task in tasks} - set(destinations)
        if unknown:
            raise KeyError(f"No destination for kinds: {sorted(kind.value for kind in unknown)}")

        for kind, destination in destinations.items():
            count = await self._write_kind(kind, destination, tasks)
            logger.info("Wrote %d %s segments to %s", count, kind.value, destination)

        await asyncio.to_thread(shutil.rmtree, self.work_dir)
        logger.debug("Removed working directory %s", self.work_dir)
        return dict(destinations)

    async def _write_kind(
        self,
        kind: OutputKind,
        destination: Path,
        tasks: Sequence[SegmentTask],
    ) -> int:
        count = 0
        async with aiofiles.open(destination, "wb") as output:
            for task in tasks:
                if task.kind != kind:
                    continue
                async with aiofiles.open(task.work_path(self.work_dir), "rb") as segment:
                    while True:
                        chunk = await segment.read(self.chunk_size)
                        if not chunk:
                            break
                        await output.write(chunk)
                count += 1
            await output.flush()
        return count
