#!/usr/bin/env python3
"""Test the hlsgrab command-line interface."""

import sys

import click
import pytest
from click.testing import CliRunner

import hlsgrab.cli as cli_module
from hlsgrab.cli import _parse_headers, cli, describe_audio, describe_video, format_byte_rate
from hlsgrab.errors import FetchError
from hlsgrab.models import AudioRendition, OutputKind, VideoRendition


class StubSession:
    """Stands in for DownloadSession without touching the network."""

    audio = [AudioRendition(uri="a.m3u8", group_id="aac", description="Main")]
    video = [
        VideoRendition(bandwidth=1000000, resolution="1280x720", uri="720.m3u8", audio_group_id="aac"),
        VideoRendition(bandwidth=4000000, resolution="1920x1080", uri="1080.m3u8", audio_group_id="aac"),
    ]
    downloaded = []
    fail = False

    def __init__(self, config):
        self.config = config

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def discover(self):
        if self.fail:
            raise FetchError(self.config.manifest_url, 404)
        return self.audio, self.video

    async def download(self, audio, video):
        StubSession.downloaded.append((audio, video))
        return {kind: self.config.output_path(kind) for kind in OutputKind}


@pytest.fixture
def stub_session(monkeypatch):
    StubSession.downloaded = []
    StubSession.fail = False
    monkeypatch.setattr(cli_module, "DownloadSession", StubSession)
    return StubSession


def test_format_helpers():
    assert format_byte_rate(8000) == "1000 B/s"
    assert format_byte_rate(8 * 1536) == "1.5 KB/s"
    assert format_byte_rate(8 * 3 * 1024 * 1024) == "3.0 MB/s"
    assert describe_audio(AudioRendition(uri="x")) == "(unknown description)"
    assert describe_audio(AudioRendition(uri="x", group_id="aac", description="English")) == "aac: English"
    video = VideoRendition(bandwidth=8 * 2048, resolution="640x360", uri="v", video_range="SDR")
    assert describe_video(video) == "640x360 (2.0 KB/s SDR)"


def test_header_parsing():
    assert _parse_headers(["X-Token: abc", "Referer:https://example.com/"]) == {
        "X-Token": "abc",
        "Referer": "https://example.com/",
    }
    with pytest.raises(click.BadParameter):
        _parse_headers(["no-separator"])


def test_invalid_url_exits_nonzero(tmp_path):
    result = CliRunner().invoke(cli, ["not a url", str(tmp_path)])
    assert result.exit_code == 1
    assert "Invalid URL" in result.output


def test_interactive_selection(tmp_path, stub_session):
    result = CliRunner().invoke(cli, ["https://example.com/master.m3u8", str(tmp_path)], input="1\n5\n1\n")

    assert result.exit_code == 0, result.output
    assert "  1. aac: Main" in result.output
    assert "  1. 1920x1080 (488.3 KB/s)" in result.output
    assert "Done!" in result.output
    (audio, video), = stub_session.downloaded
    assert video.resolution == "1920x1080"


def test_preset_indexes_and_cancel(tmp_path, stub_session):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["https://example.com/master.m3u8", str(tmp_path), "--audio-index", "1", "--video-index", "2"],
    )
    assert result.exit_code == 0, result.output
    assert stub_session.downloaded[0][1].resolution == "1280x720"

    result = runner.invoke(cli, ["https://example.com/master.m3u8", str(tmp_path)], input="0\n")
    assert result.exit_code == 0
    assert "Cancelled." in result.output
    assert len(stub_session.downloaded) == 1

    result = runner.invoke(cli, ["https://example.com/master.m3u8", str(tmp_path), "--audio-index", "3"])
    assert result.exit_code == 2


def test_no_matching_video_exits_nonzero(tmp_path, stub_session, monkeypatch):
    monkeypatch.setattr(StubSession, "audio", [AudioRendition(uri="a.m3u8", group_id="ec3")])
    result = CliRunner().invoke(cli, ["https://example.com/master.m3u8", str(tmp_path), "--audio-index", "1"])
    assert result.exit_code == 1
    assert "No matching video track" in result.output
    assert stub_session.downloaded == []


def test_network_error_exits_nonzero(tmp_path, stub_session):
    stub_session.fail = True
    result = CliRunner().invoke(cli, ["https://example.com/master.m3u8", str(tmp_path)])
    assert result.exit_code == 1
    assert "HTTP 404" in result.output


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))
