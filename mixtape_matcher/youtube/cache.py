"""
Two-tier cache of resolved tracks.

Tiers:
    memory:   Process-local dict, filled lazily. Never the source of truth.
    database: Durable CacheDatabase shared between sessions.

Lookups are read-through (memory, then database, promoting database hits
into memory). Stores are write-through to both tiers.

If the database tier fails, the cache logs a warning once and keeps working
with the memory tier only for the rest of the process lifetime. Cache
failures never reach the resolver.
"""

from mixtape_matcher.core.database import CacheDatabase
from mixtape_matcher.core.exceptions import CacheUnavailable, DuplicateCacheEntry
from mixtape_matcher.core.logger import get_logger
from mixtape_matcher.youtube.models import CacheKey, MatchResult


logger = get_logger(__name__)


class TrackCache:
    """
    Read-through / write-through cache for MatchResult objects.

    Attributes:
        _memory: Ephemeral tier, CacheKey -> MatchResult.
        _database: Durable tier, or None when running memory-only.
        _substring_lookup: Use containment instead of equality against
                           the durable tier.

    Example:
        cache = TrackCache(CacheDatabase(path))
        key = CacheKey.for_track("Track", "Artist")
        if cache.lookup(key) is None:
            cache.store(key, result, track_name="Track", artist_name="Artist")
    """

    def __init__(
        self,
        database: CacheDatabase | None = None,
        substring_lookup: bool = False
    ) -> None:
        self._memory: dict[CacheKey, MatchResult] = {}
        self._database = database
        self._substring_lookup = substring_lookup

    @property
    def durable(self) -> bool:
        """Whether the durable tier is still in use."""
        return self._database is not None

    def __len__(self) -> int:
        return len(self._memory)

    def lookup(self, key: CacheKey) -> MatchResult | None:
        """
        Look up a key, memory tier first.

        Returns:
            The cached MatchResult, or None on a miss in both tiers.
        """
        cached = self._memory.get(key)
        if cached is not None:
            logger.debug(f"Memory cache hit: {key}")
            return cached

        if self._database is None:
            return None

        try:
            row = self._database.find(key.artist, key.track, substring=self._substring_lookup)
        except CacheUnavailable as e:
            self._degrade(e)
            return None

        if row is None:
            return None

        result = MatchResult.from_cache_row(row)
        logger.debug(f"Database cache hit: {key}")
        self._memory[key] = result
        return result

    def store(
        self,
        key: CacheKey,
        result: MatchResult,
        track_name: str | None = None,
        artist_name: str | None = None,
        duration_ms: int | None = None
    ) -> None:
        """
        Write a fresh resolution through to both tiers.

        Args:
            key: Normalized key.
            result: The match to cache.
            track_name: Original track spelling for the durable record.
                        Defaults to the key's track part.
            artist_name: Original artist spelling. Defaults to the key's
                         artist part.
            duration_ms: Requested track duration, stored for reference.

        A duplicate durable insert is treated as success.
        """
        self._memory[key] = result

        if self._database is None:
            return

        record = {
            "track_name": track_name if track_name is not None else key.track,
            "artist_name": artist_name if artist_name is not None else key.artist,
            "duration_ms": duration_ms,
            "track_key": key.track,
            "artist_key": key.artist,
            "video_id": result.video_id,
            "video_title": result.title,
            "video_duration": result.duration_ms,
            "thumbnail_url": result.thumbnail_url,
            "channel_title": result.channel_title,
        }

        try:
            self._database.insert(record)
            logger.debug(f"Saved to database cache: {key}")
        except DuplicateCacheEntry:
            logger.debug(f"Already in database cache: {key}")
        except CacheUnavailable as e:
            self._degrade(e)

    def clear_memory(self) -> None:
        """Drop the ephemeral tier. The durable tier is untouched."""
        self._memory.clear()

    def _degrade(self, error: CacheUnavailable) -> None:
        logger.warning(
            f"Database cache unavailable, continuing with memory cache only: {error}"
        )
        self._database = None
