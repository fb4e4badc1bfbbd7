"""Command-line interface for hlsgrab."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence
from urllib.parse import urlparse

import aiohttp
import click

from .errors import DiscoveryError, HlsGrabError
from .models import AudioRendition, DownloadConfig, VideoRendition
from .session import DownloadSession, matching_video_renditions

logger = logging.getLogger(__name__)


def format_byte_rate(bits_per_second: int) -> str:
    """Format a bandwidth as a binary byte rate, e.g. ``'1.2 MB/s'``."""
    size = bits_per_second / 8
    units = ["B", "KB", "MB", "GB"]
    i = 0
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    if i == 0:
        return f"{int(size)} B/s"
    return f"{size:.1f} {units[i]}/s"


def describe_audio(audio: AudioRendition) -> str:
    description = audio.description or "(unknown description)"
    if audio.group_id:
        return f"{audio.group_id}: {description}"
    return description


def describe_video(video: VideoRendition) -> str:
    details = format_byte_rate(video.bandwidth)
    if video.video_range:
        details = f"{details} {video.video_range}"
    return f"{video.resolution} ({details})"


def _plural(count: int) -> str:
    return "s" if count > 1 else ""


def choose(kind: str, labels: Sequence[str], preset: Optional[int]) -> Optional[int]:
    """Return the zero-based index picked by the user, or None on cancel."""
    click.echo(f"The following {kind} track{_plural(len(labels))} are available:")
    for index, label in enumerate(labels, start=1):
        click.echo(f"  {index}. {label}")

    if preset is not None:
        if not 1 <= preset <= len(labels):
            raise click.BadParameter(
                f"{kind} index must be between 1 and {len(labels)}",
                param_hint=f"--{kind}-index",
            )
        selection = preset
    else:
        selection = click.prompt(
            "Enter selection (0 to cancel)",
            type=click.IntRange(0, len(labels)),
        )
    if selection == 0:
        return None
    return selection - 1


def _parse_headers(entries: Sequence[str]) -> Dict[str, str]:
    headers = {}
    for entry in entries:
        if ":" not in entry:
            raise click.BadParameter("Headers must be in the form Name:Value", param_hint="--header")
        name, value = entry.split(":", 1)
        headers[name.strip()] = value.strip()
    return headers


async def run_download(
    config: DownloadConfig,
    audio_index: Optional[int] = None,
    video_index: Optional[int] = None,
) -> bool:
    """Discover, select and download; False if the user cancelled."""
    async with DownloadSession(config) as session:
        click.echo("Downloading main playlist ...")
        audio_tracks, video_tracks = await session.discover()

        selected = choose("audio", [describe_audio(a) for a in audio_tracks], audio_index)
        if selected is None:
            return False
        audio = audio_tracks[selected]

        videos = matching_video_renditions(video_tracks, audio)
        if not videos:
            raise DiscoveryError(
                f"No matching video track for the selected audio group ID '{audio.group_id or '(none)'}'"
            )
        selected = choose("video", [describe_video(v) for v in videos], video_index)
        if selected is None:
            return False
        video = videos[selected]

        click.echo("Downloading segments ...")
        outputs = await session.download(audio, video)

    for kind, path in outputs.items():
        click.echo(f"{kind.value}: {path}")
    return True


@click.command()
@click.argument("url")
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--audio-index", type=int, help="1-based audio track to download, skipping the prompt")
@click.option("--video-index", type=int, help="1-based video track to download, skipping the prompt")
@click.option("--header", multiple=True, help="Additional HTTP header as Name:Value")
@click.option("--timeout", type=float, default=15.0, show_default=True, help="Per-request timeout in seconds")
@click.option("--extension", default="mp4", show_default=True, help="Extension of the output files")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(url, output_dir, audio_index, video_index, header, timeout, extension, verbose):
    """Download the audio and video of the HLS master manifest URL into OUTPUT_DIR."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        click.echo("Invalid URL", err=True)
        sys.exit(1)

    config = DownloadConfig(
        manifest_url=url,
        output_dir=output_dir,
        headers=_parse_headers(header),
        timeout=timeout,
        extension=extension,
    )

    try:
        completed = asyncio.run(run_download(config, audio_index, video_index))
    except (HlsGrabError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        logger.debug("Full traceback:", exc_info=True)
        sys.exit(1)

    click.echo("Done!" if completed else "Cancelled.")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
