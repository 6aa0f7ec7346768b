"""Test configuration and fixtures"""

import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from mixtape_matcher.core.database import CacheDatabase
from mixtape_matcher.youtube.models import MatchResult, TrackQuery


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def database(temp_dir):
    """Durable cache database in a temporary directory"""
    db = CacheDatabase(temp_dir / "cache" / "cache.db")
    yield db
    db.close()


@pytest.fixture
def sample_query():
    """A track query for testing"""
    return TrackQuery(name="Never Gonna Give You Up", artist="Rick Astley", duration_ms=213000)


@pytest.fixture
def sample_match():
    """A resolved video for testing"""
    return MatchResult(
        video_id="dQw4w9WgXcQ",
        title="Rick Astley - Never Gonna Give You Up (Official Music Video)",
        duration_ms=213000,
        thumbnail_url="https://i.ytimg.com/vi/dQw4w9WgXcQ/mqdefault.jpg",
        channel_title="Rick Astley",
    )


class FakeClock:
    """Manually advanced clock; sleep() moves time forward instead of blocking"""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Fake clock for RateLimiter tests"""
    return FakeClock()


def make_response(status_code=200, payload=None, json_error=False):
    """Build a Mock shaped like requests.Response"""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    return response


def quota_response(reason="quotaExceeded"):
    """403 response with a Data API quota error body"""
    return make_response(403, {
        "error": {
            "code": 403,
            "message": "The request cannot be completed because you have exceeded your quota.",
            "errors": [{"reason": reason, "domain": "youtube.quota"}],
        }
    })


def search_response(*video_ids):
    """Data API `search` response listing the given ids"""
    return make_response(200, {
        "items": [{"id": {"kind": "youtube#video", "videoId": vid}} for vid in video_ids]
    })


def videos_response(*items):
    """Data API `videos` response; items are (video_id, title, iso_duration) tuples"""
    return make_response(200, {
        "items": [
            {
                "id": vid,
                "snippet": {
                    "title": title,
                    "channelTitle": "Channel",
                    "thumbnails": {"medium": {"url": f"https://i.ytimg.com/vi/{vid}/mqdefault.jpg"}},
                },
                "contentDetails": {"duration": duration},
            }
            for vid, title, duration in items
        ]
    })


def connection_error():
    return requests.ConnectionError("Connection refused")
