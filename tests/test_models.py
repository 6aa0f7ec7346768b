"""Test resolution data models"""

import pytest

from mixtape_matcher.youtube.models import (
    CacheKey,
    MatchResult,
    ResolvedTrack,
    TrackQuery,
    VideoCandidate,
    parse_iso8601_duration,
)


class TestParseDuration:
    """Test ISO 8601 duration parsing"""

    @pytest.mark.parametrize("duration, expected", [
        ("PT4M13S", 253000),
        ("PT1H", 3600000),
        ("PT1H2M3S", 3723000),
        ("PT45S", 45000),
        ("PT10M", 600000),
    ])
    def test_valid_durations(self, duration, expected):
        """Test well-formed durations"""
        assert parse_iso8601_duration(duration) == expected

    @pytest.mark.parametrize("duration", ["PT", "", None, "4:13", "garbage"])
    def test_unparseable_durations_are_zero(self, duration):
        """Test empty or malformed durations yield 0"""
        assert parse_iso8601_duration(duration) == 0


class TestTrackQuery:
    """Test TrackQuery validation and construction"""

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError):
            TrackQuery(name="Song", artist="Artist", duration_ms=-1)

    def test_non_integer_duration_rejected(self):
        with pytest.raises(ValueError):
            TrackQuery(name="Song", artist="Artist", duration_ms=200.5)
        with pytest.raises(ValueError):
            TrackQuery(name="Song", artist="Artist", duration_ms=True)

    def test_zero_duration_allowed(self):
        assert TrackQuery(name="Song", artist="Artist", duration_ms=0).duration_ms == 0

    def test_from_dict_accepts_camel_case_duration(self):
        """Test durationMs is accepted as an alias"""
        query = TrackQuery.from_dict({"name": "Song", "artist": "Artist", "durationMs": 180000})
        assert query == TrackQuery("Song", "Artist", 180000)

    def test_from_dict_missing_duration_defaults_to_zero(self):
        query = TrackQuery.from_dict({"name": "Song", "artist": "Artist"})
        assert query.duration_ms == 0

    def test_from_dict_requires_name_and_artist(self):
        with pytest.raises(ValueError):
            TrackQuery.from_dict({"name": "Song"})


class TestCacheKey:
    """Test cache key normalization"""

    def test_case_insensitive(self):
        """Test queries differing only in case share a key"""
        assert CacheKey.for_track("Song Title", "The ARTIST") == CacheKey.for_track("song title", "the artist")

    def test_whitespace_preserved(self):
        assert CacheKey.for_track("Song", "Artist ") != CacheKey.for_track("Song", "Artist")

    def test_display_form(self):
        assert str(CacheKey.for_track("Song", "Artist")) == "artist - song"


class TestVideoCandidate:
    """Test provider result normalization"""

    def test_from_api_item(self):
        item = {
            "id": "abc123",
            "snippet": {
                "title": "Artist - Song (Official Audio)",
                "channelTitle": "ArtistVEVO",
                "thumbnails": {
                    "default": {"url": "https://example.com/default.jpg"},
                    "medium": {"url": "https://example.com/medium.jpg"},
                },
            },
            "contentDetails": {"duration": "PT3M30S"},
        }
        candidate = VideoCandidate.from_api_item(item)

        assert candidate.video_id == "abc123"
        assert candidate.duration_ms == 210000
        assert candidate.thumbnail_url == "https://example.com/medium.jpg"
        assert candidate.channel_title == "ArtistVEVO"

    def test_from_api_item_falls_back_to_default_thumbnail(self):
        item = {
            "id": "abc123",
            "snippet": {"title": "t", "thumbnails": {"default": {"url": "https://example.com/d.jpg"}}},
            "contentDetails": {"duration": "PT1S"},
        }
        assert VideoCandidate.from_api_item(item).thumbnail_url == "https://example.com/d.jpg"

    def test_from_mirror_item(self):
        item = {"videoId": "xyz789", "title": "Song", "lengthSeconds": 215, "author": "Uploader"}
        candidate = VideoCandidate.from_mirror_item(item)

        assert candidate.duration_ms == 215000
        assert candidate.thumbnail_url == "https://i.ytimg.com/vi/xyz789/mqdefault.jpg"
        assert candidate.channel_title == "Uploader"


class TestResolvedTrack:
    """Test ResolvedTrack construction"""

    def test_matched(self, sample_query, sample_match):
        track = ResolvedTrack.from_match(sample_query, sample_match)

        assert track.matched is True
        assert track.video_id == "dQw4w9WgXcQ"
        assert track.video_title == sample_match.title
        assert track.name == sample_query.name

    def test_unmatched(self, sample_query):
        track = ResolvedTrack.from_match(sample_query, None)

        assert track.matched is False
        assert track.video_id is None
        assert track.to_dict()["video_id"] is None

    def test_match_result_round_trip_through_cache_row(self, sample_match):
        row = {
            "video_id": sample_match.video_id,
            "video_title": sample_match.title,
            "video_duration": sample_match.duration_ms,
            "thumbnail_url": sample_match.thumbnail_url,
            "channel_title": sample_match.channel_title,
        }
        assert MatchResult.from_cache_row(row) == sample_match
        assert sample_match.watch_url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
