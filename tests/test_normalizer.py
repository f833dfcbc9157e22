"""Tests for turning engine messages into snapshots."""

import pytest

from tabtorrent.core.normalizer import normalize, percent
from tabtorrent.models.session import UNKNOWN, ByteProgress, RawText, Snapshot


def test_full_snapshot():
    result = normalize(
        {
            "bytes": {"downloaded": 250, "total": 1000},
            "peers": {
                "1.2.3.4:6881": {
                    "origin": "tracker",
                    "client": "qBittorrent 4.6",
                    "download": {"bytes_received": 100},
                    "upload": {"bytes_sent": 20},
                }
            },
        }
    )

    assert result.progress == ByteProgress(250, 1000)
    peer = result.peers["1.2.3.4:6881"]
    assert peer.origin == "tracker"
    assert peer.client == "qBittorrent 4.6"
    assert peer.downloaded_bytes == 100
    assert peer.uploaded_bytes == 20


def test_missing_fields_become_unknown():
    result = normalize({"peers": {"5.6.7.8:51413": {}}})

    assert isinstance(result, Snapshot)
    assert result.progress == ByteProgress(None, None)
    peer = result.peers["5.6.7.8:51413"]
    assert peer.origin == UNKNOWN
    assert peer.client == UNKNOWN
    assert peer.downloaded_bytes is None
    assert peer.uploaded_bytes is None


def test_malformed_values_do_not_hide_valid_ones():
    result = normalize(
        {
            "bytes": {"downloaded": "lots", "total": 4096.0},
            "peers": {
                "a": "not a peer",
                "b": {"client": 42, "download": [1, 2], "upload": {"bytes_sent": -5}},
            },
        }
    )

    assert result.progress == ByteProgress(None, 4096)
    assert set(result.peers) == {"a", "b"}
    assert result.peers["a"].client == UNKNOWN
    assert result.peers["b"].client == UNKNOWN
    assert result.peers["b"].downloaded_bytes is None
    assert result.peers["b"].uploaded_bytes is None


def test_booleans_are_not_counters():
    result = normalize({"bytes": {"downloaded": True, "total": 10}})

    assert result.progress.downloaded is None


def test_non_mapping_sections_are_tolerated():
    result = normalize({"bytes": "n/a", "peers": ["x"]})

    assert result.progress == ByteProgress(None, None)
    assert result.peers == {}


@pytest.mark.parametrize(
    "value, text",
    [
        ("Engine started", "Engine started"),
        (None, "null"),
        ([1, 2], "[1, 2]"),
        ({"status": "ok"}, '{"status": "ok"}'),
        (3.5, "3.5"),
    ],
)
def test_other_messages_become_raw_text(value, text):
    assert normalize(value) == RawText(text)


def test_unserializable_objects_still_become_text():
    result = normalize(object())

    assert isinstance(result, RawText)
    assert result.text


@pytest.mark.parametrize(
    "progress, expected",
    [
        (ByteProgress(0, 0), 0.0),
        (ByteProgress(10, None), 0.0),
        (ByteProgress(None, 100), 0.0),
        (ByteProgress(50, 200), 25.0),
        (ByteProgress(100, 100), 100.0),
        (ByteProgress(150, 100), 100.0),
    ],
)
def test_percent(progress, expected):
    assert percent(progress) == expected
