#!/usr/bin/env python3
"""Test HLS master and media manifest parsing."""

import logging
import sys

from hlsgrab.hls_parser import parse_attribute_list, parse_master_manifest, parse_media_manifest
from hlsgrab.models import AudioRendition, VideoRendition


SAMPLE_MASTER = """# generated
#EXT-X-STREAM-INF:BANDWIDTH=1,RESOLUTION=1x1
before-header.m3u8
#EXTM3U
#EXT-X-VERSION:7
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aac",NAME="English, stereo",LANGUAGE="en",URI="audio/en.m3u8"
#EXT-X-MEDIA:TYPE=SUBTITLES,GROUP-ID="subs",NAME="English",URI="subs/en.m3u8"
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="ac3",NAME="Surround"
#EXT-X-MEDIA:TYPE=AUDIO,URI="audio/plain.m3u8"
#EXT-X-STREAM-INF:BANDWIDTH=2000000,AVERAGE-BANDWIDTH=1500000,RESOLUTION=1920x1080,VIDEO-RANGE=PQ,AUDIO="aac",CODECS="avc1.640028,mp4a.40.2"

video/1080.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=1280x720,AUDIO="aac"
video/720.m3u8
"""


def test_master_manifest_parsing():
    audio, video = parse_master_manifest(SAMPLE_MASTER)

    assert audio == [
        AudioRendition(uri="audio/en.m3u8", group_id="aac", description="English, stereo"),
        AudioRendition(uri="audio/plain.m3u8"),
    ]
    assert video == [
        VideoRendition(
            bandwidth=1500000,
            resolution="1920x1080",
            uri="video/1080.m3u8",
            video_range="PQ",
            audio_group_id="aac",
        ),
        VideoRendition(bandwidth=800000, resolution="1280x720", uri="video/720.m3u8", audio_group_id="aac"),
    ]
    print("✓ Master manifest parsing test passed")


def test_missing_mandatory_attribute_drops_only_that_entry():
    text = "\n".join(
        [
            "#EXTM3U",
            "#EXT-X-STREAM-INF:BANDWIDTH=100,RESOLUTION=320x180",
            "low.m3u8",
            "#EXT-X-STREAM-INF:BANDWIDTH=200",
            "#EXT-X-STREAM-INF:RESOLUTION=640x360",
            "#EXT-X-STREAM-INF:BANDWIDTH=300,RESOLUTION=960x540",
            "high.m3u8",
        ]
    )
    _, video = parse_master_manifest(text)
    assert [(v.bandwidth, v.uri) for v in video] == [(100, "low.m3u8"), (300, "high.m3u8")]


def test_non_integer_bandwidth_is_dropped_with_warning(caplog):
    text = "\n".join(
        [
            "#EXTM3U",
            "#EXT-X-STREAM-INF:BANDWIDTH=abc,RESOLUTION=1280x720",
            "#EXT-X-STREAM-INF:BANDWIDTH=1000000,RESOLUTION=1280x720,AUDIO=aac",
            "v.m3u8",
        ]
    )
    with caplog.at_level(logging.WARNING, logger="hlsgrab.hls_parser"):
        _, video = parse_master_manifest(text)

    assert video == [VideoRendition(bandwidth=1000000, resolution="1280x720", uri="v.m3u8", audio_group_id="aac")]
    assert any("abc" in record.getMessage() for record in caplog.records)
    assert all(record.levelno == logging.WARNING for record in caplog.records)


def test_manifest_without_header_is_empty():
    audio, video = parse_master_manifest('#EXT-X-MEDIA:TYPE=AUDIO,URI="a.m3u8"\n')
    assert audio == [] and video == []
    assert parse_media_manifest("#EXT-X-BITRATE:100\nseg.ts\n") == []


def test_attribute_list_grammar():
    attributes = parse_attribute_list('TYPE=AUDIO,NAME="a, b",X-CUSTOM=1,TYPE=VIDEO,EMPTY=""')
    assert attributes == {"TYPE": "VIDEO", "NAME": "a, b", "X-CUSTOM": "1", "EMPTY": ""}


def test_media_manifest_parsing():
    text = "\r\n".join(
        [
            "#EXTM3U",
            "#EXT-X-TARGETDURATION:6",
            '#EXT-X-MAP:URI="init.mp4"',
            "#EXTINF:6.0,",
            "ignored.m4s",
            "#EXT-X-BITRATE:1200",
            "seg-1.m4s",
            "#EXT-X-BITRATE:1100",
            "seg-2.m4s",
            "#EXT-X-ENDLIST",
        ]
    )
    segments = parse_media_manifest(text)
    assert segments == ["init.mp4", "seg-1.m4s", "seg-2.m4s"]
    assert parse_media_manifest(text) == segments
    print("✓ Media manifest parsing test passed")


def test_media_manifest_takes_next_line_verbatim():
    text = "#EXTM3U\n#EXT-X-BITRATE:1\n\n#EXT-X-BITRATE:2\n seg.m4s\n"
    assert parse_media_manifest(text) == ["", " seg.m4s"]


if __name__ == "__main__":
    test_master_manifest_parsing()
    test_media_manifest_parsing()
    sys.exit(0)
