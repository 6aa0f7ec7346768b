"""
Data models for track resolution.

This module defines the immutable dataclasses that flow through the
resolver: the query coming in, provider candidates, the match stored in
cache, and the annotated track handed back to callers.

Design:
    All models are frozen. A MatchResult is created once per unique
    (artist, track) pair and never mutated afterwards.
"""

import re
from dataclasses import asdict, dataclass
from typing import Any


# PT[nH][nM][nS], every component optional
_ISO8601_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")

MIRROR_THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/mqdefault.jpg"


def parse_iso8601_duration(duration: str | None) -> int:
    """
    Parse an ISO 8601 duration to milliseconds.

    Args:
        duration: Duration such as "PT4M13S", or None.

    Returns:
        Duration in milliseconds, or 0 if the string does not match.

    Examples:
        "PT4M13S" -> 253000
        "PT1H" -> 3600000
        "PT" -> 0
        "4:13" -> 0
    """
    if not duration:
        return 0

    match = _ISO8601_DURATION.search(duration)
    if not match:
        return 0

    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)

    return (hours * 3600 + minutes * 60 + seconds) * 1000


@dataclass(frozen=True)
class TrackQuery:
    """
    A track to resolve.

    Attributes:
        name: Track title. Example: "Never Gonna Give You Up"
        artist: Primary artist. Example: "Rick Astley"
        duration_ms: Track duration in milliseconds, >= 0.
    """

    name: str
    artist: str
    duration_ms: int

    def __post_init__(self) -> None:
        if isinstance(self.duration_ms, bool) or not isinstance(self.duration_ms, int):
            raise ValueError(f"duration_ms must be an integer, got {self.duration_ms!r}")
        if self.duration_ms < 0:
            raise ValueError(f"duration_ms must be >= 0, got {self.duration_ms}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackQuery":
        """
        Create a TrackQuery from a plain dict.

        Accepts either 'duration_ms' or 'durationMs'. Missing duration
        defaults to 0.

        Raises:
            ValueError: If name/artist are missing or duration is invalid.
        """
        name = data.get("name")
        artist = data.get("artist")
        if not isinstance(name, str) or not isinstance(artist, str):
            raise ValueError("track entries need string 'name' and 'artist' fields")

        duration = data.get("duration_ms", data.get("durationMs", 0))
        return cls(name=name, artist=artist, duration_ms=duration)


@dataclass(frozen=True)
class CacheKey:
    """
    Normalized cache key for an (artist, track) pair.

    Both parts are lowercased; whitespace is kept as-is, so
    "Artist", "Track" and "artist", "track" share a key but
    "Artist " does not.
    """

    artist: str
    track: str

    @classmethod
    def for_track(cls, name: str, artist: str) -> "CacheKey":
        return cls(artist=artist.lower(), track=name.lower())

    @classmethod
    def for_query(cls, query: TrackQuery) -> "CacheKey":
        return cls.for_track(query.name, query.artist)

    def __str__(self) -> str:
        return f"{self.artist} - {self.track}"


@dataclass(frozen=True)
class VideoCandidate:
    """
    A provider search result normalized for scoring.

    Attributes:
        video_id: YouTube video ID (11-character string).
        title: Video title as shown on YouTube.
        duration_ms: Video duration in milliseconds.
        thumbnail_url: Thumbnail URL, or None.
        channel_title: Uploading channel, or None.
    """

    video_id: str
    title: str
    duration_ms: int
    thumbnail_url: str | None = None
    channel_title: str | None = None

    @classmethod
    def from_api_item(cls, item: dict[str, Any]) -> "VideoCandidate":
        """
        Create from a YouTube Data API `videos` item.

        Duration comes from contentDetails.duration (ISO 8601). The thumbnail
        prefers the 'medium' size, then 'default'.
        """
        snippet = item.get("snippet") or {}
        content_details = item.get("contentDetails") or {}
        thumbnails = snippet.get("thumbnails") or {}

        thumbnail_url = None
        for size in ("medium", "default"):
            url = (thumbnails.get(size) or {}).get("url")
            if url:
                thumbnail_url = url
                break

        return cls(
            video_id=item.get("id", ""),
            title=snippet.get("title", ""),
            duration_ms=parse_iso8601_duration(content_details.get("duration")),
            thumbnail_url=thumbnail_url,
            channel_title=snippet.get("channelTitle"),
        )

    @classmethod
    def from_mirror_item(cls, item: dict[str, Any]) -> "VideoCandidate":
        """
        Create from an Invidious search result.

        Mirrors report duration in whole seconds (lengthSeconds) and the
        channel name as 'author'.
        """
        video_id = item.get("videoId", "")
        try:
            duration_ms = int(item.get("lengthSeconds") or 0) * 1000
        except (TypeError, ValueError):
            duration_ms = 0

        return cls(
            video_id=video_id,
            title=item.get("title", ""),
            duration_ms=duration_ms,
            thumbnail_url=MIRROR_THUMBNAIL_URL.format(video_id=video_id),
            channel_title=item.get("author"),
        )


@dataclass(frozen=True)
class MatchResult:
    """
    The chosen video for a track. Stored in cache and returned to callers.

    Attributes:
        video_id: YouTube video ID.
        title: Video title.
        duration_ms: Video duration in milliseconds.
        thumbnail_url: Thumbnail URL, or None.
        channel_title: Channel name, or None.
    """

    video_id: str
    title: str
    duration_ms: int
    thumbnail_url: str | None = None
    channel_title: str | None = None

    @property
    def watch_url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    @classmethod
    def from_candidate(cls, candidate: VideoCandidate) -> "MatchResult":
        return cls(
            video_id=candidate.video_id,
            title=candidate.title,
            duration_ms=candidate.duration_ms,
            thumbnail_url=candidate.thumbnail_url,
            channel_title=candidate.channel_title,
        )

    @classmethod
    def from_cache_row(cls, row: dict[str, Any]) -> "MatchResult":
        """Create from a durable cache row (see core.database)."""
        return cls(
            video_id=row["video_id"],
            title=row.get("video_title") or "",
            duration_ms=row.get("video_duration") or 0,
            thumbnail_url=row.get("thumbnail_url"),
            channel_title=row.get("channel_title"),
        )


@dataclass(frozen=True)
class ResolvedTrack:
    """
    A TrackQuery annotated with its resolution outcome.

    matched is False exactly when video_id is None.
    """

    name: str
    artist: str
    duration_ms: int
    video_id: str | None = None
    video_title: str | None = None
    thumbnail_url: str | None = None
    matched: bool = False

    @classmethod
    def from_match(cls, query: TrackQuery, match: MatchResult | None) -> "ResolvedTrack":
        if match is None:
            return cls.unmatched(query)
        return cls(
            name=query.name,
            artist=query.artist,
            duration_ms=query.duration_ms,
            video_id=match.video_id,
            video_title=match.title,
            thumbnail_url=match.thumbnail_url,
            matched=True,
        )

    @classmethod
    def unmatched(cls, query: TrackQuery) -> "ResolvedTrack":
        return cls(name=query.name, artist=query.artist, duration_ms=query.duration_ms)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
