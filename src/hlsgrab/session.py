"""Download session handling for HLS media sets."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from .assembler import OutputAssembler
from .downloader import SegmentDownloader
from .errors import DiscoveryError
from .hls_parser import parse_master_manifest, parse_media_manifest
from .models import AudioRendition, DownloadConfig, OutputKind, SegmentTask, VideoRendition
from .orchestrator import DownloadOrchestrator
from .progress import ProgressCounter, ProgressEmitter, ProgressReporter, echo_progress

logger = logging.getLogger(__name__)


def matching_video_renditions(
    videos: Sequence[VideoRendition],
    audio: AudioRendition,
) -> List[VideoRendition]:
    """Videos usable with ``audio``, highest bandwidth first.

    When the audio rendition names a group, only videos referencing that group
    are kept.
    """
    if audio.group_id is None:
        candidates = list(videos)
    else:
        candidates = [video for video in videos if video.audio_group_id == audio.group_id]
    return sorted(candidates, key=lambda video: video.bandwidth, reverse=True)


def build_segment_tasks(
    kind: OutputKind,
    playlist_url: str,
    segment_names: Sequence[str],
) -> List[SegmentTask]:
    """Resolve segment names against their media manifest URL."""
    return [
        SegmentTask(kind=kind, name=name, url=urljoin(playlist_url, name))
        for name in segment_names
    ]


class DownloadSession:
    """Manages the end-to-end lifecycle of one HLS download."""

    def __init__(
        self,
        config: DownloadConfig,
        *,
        downloader: Optional[SegmentDownloader] = None,
        emit: ProgressEmitter = echo_progress,
    ) -> None:
        self.config = config
        self.downloader = downloader or SegmentDownloader(
            timeout=config.timeout,
            max_redirects=config.max_redirects,
            chunk_size=config.chunk_size,
            headers=config.headers,
        )
        self._emit = emit

    async def __aenter__(self) -> "DownloadSession":
        await self.downloader.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.downloader.__aexit__(exc_type, exc_val, exc_tb)

    async def discover(self) -> Tuple[List[AudioRendition], List[VideoRendition]]:
        """Download and parse the master manifest."""
        logger.info("Downloading master manifest %s", self.config.manifest_url)
        text = await self.downloader.download_text(self.config.manifest_url)
        audio, video = parse_master_manifest(text)
        if not audio or not video:
            raise DiscoveryError("No audio or video tracks found.")
        return audio, video

    async def download(
        self,
        audio: AudioRendition,
        video: VideoRendition,
    ) -> Dict[OutputKind, Path]:
        """
        Fetch and assemble the selected renditions.

        Args:
            audio: Selected audio rendition
            video: Selected video rendition

        Returns:
            Final output file per kind
        """
        work_dir = self.config.work_dir
        for kind in OutputKind:
            (work_dir / kind.value).mkdir(parents=True, exist_ok=True)

        tasks = await self.collect_tasks(audio, video)
        logger.info("Downloading %d segments", len(tasks))

        counter = ProgressCounter()
        reporter = ProgressReporter(
            counter,
            len(tasks),
            interval=self.config.progress_interval,
            emit=self._emit,
        )
        orchestrator = DownloadOrchestrator(self.downloader, work_dir, counter)

        reporter.start()
        try:
            await orchestrator.run(tasks)
        except BaseException:
            await reporter.stop(finish=False)
            raise
        await reporter.stop(finish=True)

        assembler = OutputAssembler(work_dir)
        destinations = {kind: self.config.output_path(kind) for kind in OutputKind}
        return await assembler.assemble(tasks, destinations)

    async def collect_tasks(
        self,
        audio: AudioRendition,
        video: VideoRendition,
    ) -> List[SegmentTask]:
        """Fetch both media manifests concurrently and build the task list."""
        audio_url = urljoin(self.config.manifest_url, audio.uri)
        video_url = urljoin(self.config.manifest_url, video.uri)

        audio_text, video_text = await asyncio.gather(
            self.downloader.download_text(audio_url),
            self.downloader.download_text(video_url),
        )

        tasks = build_segment_tasks(OutputKind.AUDIO, audio_url, parse_media_manifest(audio_text))
        tasks += build_segment_tasks(OutputKind.VIDEO, video_url, parse_media_manifest(video_text))
        return tasks
