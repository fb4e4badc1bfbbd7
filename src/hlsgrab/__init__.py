"""hlsgrab: Download the audio and video renditions of an HLS media set."""

from .models import AudioRendition, DownloadConfig, OutputKind, SegmentTask, VideoRendition
from .session import DownloadSession

__all__ = [
    "AudioRendition",
    "DownloadConfig",
    "DownloadSession",
    "OutputKind",
    "SegmentTask",
    "VideoRendition",
]
