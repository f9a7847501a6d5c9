"""Tests for FeedClient; HTTP is faked through a mocked requests.Session."""
from unittest.mock import MagicMock

import pytest
import requests

from x_relay.feed import API_HEADERS, DETAIL_API_BASE, FeedClient, parse_posts


def _response(status=200, payload=None, json_error=False, content=b""):
    resp = MagicMock()
    resp.status_code = status
    resp.content = content
    if json_error:
        resp.json.side_effect = requests.exceptions.JSONDecodeError("bad", "doc", 0)
    else:
        resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status}")
    return resp


def _client(tmp_path, *responses):
    session = MagicMock()
    session.get.side_effect = list(responses)
    sleeps = []
    client = FeedClient("https://api-neo.bullx.io/feed", tmp_path / "cache", session=session, sleep_fn=sleeps.append)
    return client, session, sleeps


# ── fetch_batch ──────────────────────────────────────────────────────────────

def test_fetch_batch_parses_posts(tmp_path):
    payload = {"data": [{"id": "1", "text": "a", "user": {"username": "u"}}, {"id": "2"}]}
    client, session, _ = _client(tmp_path, _response(payload=payload))

    posts = client.fetch_batch()

    assert [p.id for p in posts] == ["1", "2"]
    _, kwargs = session.get.call_args
    assert kwargs["headers"] == API_HEADERS
    assert kwargs["timeout"] == 10


def test_fetch_batch_unexpected_shape_is_empty(tmp_path):
    client, _, sleeps = _client(tmp_path, _response(payload={"items": []}))
    assert client.fetch_batch() == []
    assert sleeps == []


def test_fetch_batch_invalid_json_is_empty(tmp_path):
    client, _, _ = _client(tmp_path, _response(json_error=True))
    assert client.fetch_batch() == []


def test_fetch_batch_retries_non_200(tmp_path):
    client, session, sleeps = _client(
        tmp_path,
        _response(status=503),
        _response(status=502),
        _response(payload={"data": [{"id": "7"}]}),
    )
    posts = client.fetch_batch()
    assert [p.id for p in posts] == ["7"]
    assert session.get.call_count == 3
    assert sleeps == [1.0, 1.0]


def test_fetch_batch_raises_after_three_failures(tmp_path):
    client, session, sleeps = _client(
        tmp_path,
        _response(status=500),
        requests.ConnectionError("down"),
        _response(status=429),
    )
    with pytest.raises(RuntimeError, match="HTTP 429"):
        client.fetch_batch()
    assert session.get.call_count == 3
    assert len(sleeps) == 2


def test_parse_posts_skips_invalid_items():
    posts = parse_posts([{"id": "1"}, "junk", {"text": "no id"}, {"id": ""}])
    assert [p.id for p in posts] == ["1"]


# ── fetch_detail ─────────────────────────────────────────────────────────────

def test_fetch_detail_returns_data(tmp_path):
    detail = {"video": {"variants": []}}
    client, session, _ = _client(tmp_path, _response(payload={"data": detail}))
    assert client.fetch_detail("55") == detail
    args, _ = session.get.call_args
    assert args[0] == f"{DETAIL_API_BASE}55"


def test_fetch_detail_missing_data_is_none(tmp_path):
    client, _, _ = _client(tmp_path, _response(payload={"error": "nope"}))
    assert client.fetch_detail("55") is None


# ── download_media ───────────────────────────────────────────────────────────

def test_download_media_writes_cache_file(tmp_path):
    client, session, _ = _client(tmp_path, _response(content=b"\x00\x01mp4"))
    path = client.download_media("https://video.twimg.com/v.mp4", "video_1.mp4")
    assert path == tmp_path / "cache" / "video_1.mp4"
    assert path.read_bytes() == b"\x00\x01mp4"
    _, kwargs = session.get.call_args
    assert kwargs["timeout"] == 15


def test_download_media_raises_after_retries(tmp_path):
    client, _, sleeps = _client(tmp_path, _response(status=404), _response(status=404), _response(status=404))
    with pytest.raises(requests.HTTPError):
        client.download_media("https://video.twimg.com/v.mp4", "video_1.mp4")
    assert len(sleeps) == 2
    assert not (tmp_path / "cache" / "video_1.mp4").exists()
