"""Parse HLS master and media manifests into renditions and segment names."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .models import AudioRendition, VideoRendition

logger = logging.getLogger(__name__)

M3U8_HEADER = "#EXTM3U"
EXT_MEDIA = "#EXT-X-MEDIA:"
EXT_STREAM_INF = "#EXT-X-STREAM-INF:"
EXT_MAP = "#EXT-X-MAP:"
# Marks "next line is a segment URI" in the manifests this tool targets.
SEGMENT_INDICATOR = "#EXT-X-BITRATE:"

_ATTRIBUTE_RE = re.compile(r'([A-Z0-9-]+)=("[^"]*"|[^,]*)')
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class ParserState(Enum):
    """States shared by the master and media manifest scanners."""

    READY = "ready"
    HEADER_FOUND = "header_found"
    GET_STREAM_URL = "get_stream_url"


def parse_attribute_list(text: str) -> Dict[str, str]:
    """Parse ``KEY=VALUE,KEY="VALUE"`` attribute lists.

    Quoted values keep embedded commas and lose their quotes. A repeated key
    keeps its last value.
    """
    attributes: Dict[str, str] = {}
    for match in _ATTRIBUTE_RE.finditer(text):
        key, value = match.group(1), match.group(2)
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        attributes[key] = value
    return attributes


def _parse_integer(value: str) -> Optional[int]:
    if not _INTEGER_RE.fullmatch(value):
        return None
    return int(value)


class _MasterScanner:
    """Line-driven state machine for master manifests."""

    def __init__(self) -> None:
        self.state = ParserState.READY
        self.audio: List[AudioRendition] = []
        self.video: List[VideoRendition] = []
        self._pending: Optional[dict] = None
        self._handlers: Dict[ParserState, Callable[[str], ParserState]] = {
            ParserState.READY: self._on_ready,
            ParserState.HEADER_FOUND: self._on_header_found,
            ParserState.GET_STREAM_URL: self._on_get_stream_url,
        }

    def feed(self, line: str) -> None:
        self.state = self._handlers[self.state](line)

    def _on_ready(self, line: str) -> ParserState:
        if line == M3U8_HEADER:
            return ParserState.HEADER_FOUND
        return ParserState.READY

    def _on_header_found(self, line: str) -> ParserState:
        if line.startswith(EXT_MEDIA):
            self._add_audio(parse_attribute_list(line[len(EXT_MEDIA):]))
        elif line.startswith(EXT_STREAM_INF):
            pending = self._start_variant(parse_attribute_list(line[len(EXT_STREAM_INF):]))
            if pending is not None:
                self._pending = pending
                return ParserState.GET_STREAM_URL
        return ParserState.HEADER_FOUND

    def _on_get_stream_url(self, line: str) -> ParserState:
        if not line.strip():
            return ParserState.GET_STREAM_URL
        if self._pending is not None:
            self.video.append(VideoRendition(uri=line, **self._pending))
        self._pending = None
        return ParserState.HEADER_FOUND

    def _add_audio(self, attributes: Dict[str, str]) -> None:
        if attributes.get("TYPE") != "AUDIO":
            return
        uri = attributes.get("URI")
        if uri is None:
            return
        self.audio.append(
            AudioRendition(
                uri=uri,
                group_id=attributes.get("GROUP-ID"),
                description=attributes.get("NAME"),
            )
        )

    @staticmethod
    def _start_variant(attributes: Dict[str, str]) -> Optional[dict]:
        raw_bandwidth = attributes.get("AVERAGE-BANDWIDTH", attributes.get("BANDWIDTH"))
        if raw_bandwidth is None:
            return None
        bandwidth = _parse_integer(raw_bandwidth)
        if bandwidth is None:
            logger.warning("Bandwidth value of '%s' is not an integer", raw_bandwidth)
            return None
        resolution = attributes.get("RESOLUTION")
        if resolution is None:
            return None
        return {
            "bandwidth": bandwidth,
            "resolution": resolution,
            "video_range": attributes.get("VIDEO-RANGE"),
            "audio_group_id": attributes.get("AUDIO"),
        }


class _MediaScanner:
    """Line-driven state machine for media (segment) manifests."""

    def __init__(self) -> None:
        self.state = ParserState.READY
        self.segments: List[str] = []
        self._handlers: Dict[ParserState, Callable[[str], ParserState]] = {
            ParserState.READY: self._on_ready,
            ParserState.HEADER_FOUND: self._on_header_found,
            ParserState.GET_STREAM_URL: self._on_get_stream_url,
        }

    def feed(self, line: str) -> None:
        self.state = self._handlers[self.state](line)

    def _on_ready(self, line: str) -> ParserState:
        if line == M3U8_HEADER:
            return ParserState.HEADER_FOUND
        return ParserState.READY

    def _on_header_found(self, line: str) -> ParserState:
        if line.startswith(EXT_MAP):
            uri = parse_attribute_list(line[len(EXT_MAP):]).get("URI")
            if uri is not None:
                self.segments.append(uri)
        elif line.startswith(SEGMENT_INDICATOR):
            return ParserState.GET_STREAM_URL
        return ParserState.HEADER_FOUND

    def _on_get_stream_url(self, line: str) -> ParserState:
        self.segments.append(line)
        return ParserState.HEADER_FOUND


def parse_master_manifest(text: str) -> Tuple[List[AudioRendition], List[VideoRendition]]:
    """Return the audio and video renditions listed in a master manifest.

    Malformed entries are dropped; the scan always runs to the end of the text.
    """
    scanner = _MasterScanner()
    for line in text.splitlines():
        scanner.feed(line)
    logger.debug(
        "Master manifest: %d audio, %d video renditions",
        len(scanner.audio),
        len(scanner.video),
    )
    return scanner.audio, scanner.video


def parse_media_manifest(text: str) -> List[str]:
    """Return segment names of a media manifest in playback order."""
    scanner = _MediaScanner()
    for line in text.splitlines():
        scanner.feed(line)
    return scanner.segments
