"""Exception hierarchy for hlsgrab."""

from __future__ import annotations

from typing import Optional


class HlsGrabError(RuntimeError):
    """Base class for all hlsgrab failures."""


class FetchError(HlsGrabError):
    """Raised when a remote resource answers with a non-success status."""

    def __init__(self, url: str, status: Optional[int], reason: str = "") -> None:
        self.url = url
        self.status = status
        detail = f"HTTP {status}" if status is not None else "no response"
        if reason:
            detail = f"{detail} {reason}"
        super().__init__(f"Failed to fetch {url}: {detail}")


class RedirectError(HlsGrabError):
    """Raised when a redirect chain loops or exceeds the hop limit."""


class ManifestDecodeError(HlsGrabError):
    """Raised when manifest bytes cannot be decoded as text."""


class DiscoveryError(HlsGrabError):
    """Raised when the master manifest yields nothing usable."""


class SegmentDownloadError(HlsGrabError):
    """Raised when a segment fetch aborts the download run."""

    def __init__(self, task, cause: BaseException) -> None:
        self.task = task
        self.cause = cause
        super().__init__(f"Segment {task.kind.value}/{task.name} ({task.url}) failed: {cause}")
