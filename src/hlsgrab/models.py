"""Dataclasses and enums for hlsgrab runtime."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, Optional


class OutputKind(str, Enum):
    """Kind of elementary stream a segment belongs to."""

    AUDIO = "audio"
    VIDEO = "video"


@dataclass(frozen=True)
class AudioRendition:
    """An ``#EXT-X-MEDIA`` audio entry of a master manifest."""

    uri: str
    group_id: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class VideoRendition:
    """An ``#EXT-X-STREAM-INF`` variant of a master manifest."""

    bandwidth: int
    resolution: str
    uri: str
    video_range: Optional[str] = None
    audio_group_id: Optional[str] = None


@dataclass(frozen=True)
class SegmentTask:
    """A single segment to fetch, in output byte order."""

    kind: OutputKind
    name: str
    url: str

    def work_path(self, work_dir: Path) -> Path:
        """Location of the segment below ``work_dir/<kind>/``.

        The name is mapped to a relative path: a leading root and ``.``
        components are dropped and ``..`` is escaped, so no segment name can
        point outside the kind's working directory.
        """
        parts = []
        for part in PurePosixPath(self.name).parts:
            if part == "." or part.startswith("/"):
                continue
            parts.append("%2E%2E" if part == ".." else part)
        if not parts:
            parts = ["_"]
        return work_dir.joinpath(self.kind.value, *parts)


@dataclass
class DownloadConfig:
    """Configuration for a download run."""

    manifest_url: str
    output_dir: Path
    headers: Dict[str, str] | None = None
    timeout: float = 15.0
    max_redirects: int = 16
    chunk_size: int = 64 * 1024
    progress_interval: float = 0.25
    extension: str = "mp4"

    @property
    def work_dir(self) -> Path:
        return self.output_dir / "work"

    def output_path(self, kind: OutputKind) -> Path:
        return self.output_dir / f"{kind.value}.{self.extension}"
