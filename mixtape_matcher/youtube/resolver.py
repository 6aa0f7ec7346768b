"""
Single-track resolution: cache, then live search with key rotation.

Resolution Flow:
    1. Cache check (memory, then database). Hit -> done.
    2. Primary search with the active API key.
       - QuotaExceeded: rotate to the next key and retry. Each key is tried
         at most once per track. No key left -> AllKeysExhausted.
       - TransportError: give up on this track, no retry.
       - Empty result: give up on this track.
    3. AllKeysExhausted or no keys configured: search the mirror pool if
       one is configured.
    4. Fresh match -> write through to the cache.

Nothing raised by a provider escapes resolve(); failures come back as a
Resolution without a match and a human-readable reason.
"""

from dataclasses import dataclass
from typing import Callable

from mixtape_matcher.core.config import Config
from mixtape_matcher.core.exceptions import (
    AllKeysExhausted,
    QuotaExceeded,
    TransportError,
)
from mixtape_matcher.core.logger import format_matched_message, get_logger
from mixtape_matcher.youtube.cache import TrackCache
from mixtape_matcher.youtube.client import (
    MirrorSearchClient,
    YouTubeSearchClient,
    create_clients,
)
from mixtape_matcher.youtube.keys import KeyPool
from mixtape_matcher.youtube.models import CacheKey, MatchResult, TrackQuery


logger = get_logger(__name__)


SOURCE_CACHE = "cache"
SOURCE_YOUTUBE = "youtube"
SOURCE_MIRROR = "mirror"


@dataclass(frozen=True)
class Resolution:
    """
    Outcome of resolving one track.

    Attributes:
        match: The chosen video, or None.
        source: Where the match came from (cache, youtube, mirror), or
                None when unmatched.
        reason: Why the track is unmatched, empty when matched.
    """

    match: MatchResult | None
    source: str | None = None
    reason: str = ""

    @property
    def matched(self) -> bool:
        return self.match is not None

    @property
    def from_cache(self) -> bool:
        return self.source == SOURCE_CACHE


class Resolver:
    """
    Resolves TrackQuery objects to MatchResult objects.

    All collaborators are injected so tests can substitute fakes.

    Attributes:
        cache: Two-tier cache.
        primary: YouTube Data API client.
        key_pool: API keys for the primary client.
        mirror: Optional quota-free fallback.
        before_provider_call: Optional hook run before every live provider
                              request (used for pacing).

    Example:
        resolver = Resolver.from_config(config, cache)
        match = resolver.resolve(TrackQuery("Track", "Artist", 200000))
    """

    def __init__(
        self,
        cache: TrackCache,
        primary: YouTubeSearchClient,
        key_pool: KeyPool,
        mirror: MirrorSearchClient | None = None,
        before_provider_call: Callable[[], object] | None = None
    ) -> None:
        self.cache = cache
        self.primary = primary
        self.key_pool = key_pool
        self.mirror = mirror
        self.before_provider_call = before_provider_call

    @classmethod
    def from_config(
        cls,
        config: Config,
        cache: TrackCache,
        before_provider_call: Callable[[], object] | None = None
    ) -> "Resolver":
        primary, mirror = create_clients(config)
        return cls(
            cache=cache,
            primary=primary,
            key_pool=KeyPool.from_config(config),
            mirror=mirror,
            before_provider_call=before_provider_call,
        )

    def resolve(self, query: TrackQuery) -> MatchResult | None:
        """Resolve a track, returning the match or None."""
        return self.resolve_detailed(query).match

    def resolve_detailed(self, query: TrackQuery) -> Resolution:
        """
        Resolve a track and report where the answer came from.

        Returns:
            Resolution with the match (or None) plus source/reason.
        """
        key = CacheKey.for_query(query)

        cached = self.cache.lookup(key)
        if cached is not None:
            return Resolution(cached, source=SOURCE_CACHE)

        resolution = self._search_live(query)

        if resolution.match is not None:
            self.cache.store(
                key,
                resolution.match,
                track_name=query.name,
                artist_name=query.artist,
                duration_ms=query.duration_ms,
            )
            logger.info(format_matched_message(query.artist, query.name, resolution.match.video_id))

        return resolution

    def _search_live(self, query: TrackQuery) -> Resolution:
        if self.key_pool.current() is None:
            logger.warning("No YouTube API keys configured")
            return self._search_mirror(query, "No API keys configured")

        try:
            match = self._search_primary(query)
        except AllKeysExhausted as e:
            logger.error(f"{e}: {query.artist} - {query.name}")
            return self._search_mirror(query, str(e))
        except TransportError as e:
            logger.error(f"Error searching {query.artist} - {query.name}: {e}")
            return Resolution(None, reason=f"Search failed: {e}")

        if match is None:
            return Resolution(None, reason="No usable candidates")
        return Resolution(match, source=SOURCE_YOUTUBE)

    def _search_primary(self, query: TrackQuery) -> MatchResult | None:
        """
        Search the Data API, rotating keys on quota exhaustion.

        Raises:
            AllKeysExhausted: Every key was tried, or rotation is impossible.
            TransportError: Propagated from the client.
        """
        # Keys this query has spent; the pool cursor may be moved by other workers
        tried: list[str] = []

        while len(tried) < len(self.key_pool):
            key = self.key_pool.current()
            if key is None or key in tried:
                break

            tried.append(key)
            self._pace()

            try:
                return self.primary.search(query.name, query.artist, query.duration_ms, key=key)
            except QuotaExceeded as e:
                e.key_position = self.key_pool.position_of(key)
                logger.warning(f"Quota exceeded on key #{e.key_position}")

                if not self.key_pool.rotate(key):
                    break

        raise AllKeysExhausted(
            "All API keys exhausted",
            details={"attempts": len(tried)}
        )

    def _search_mirror(self, query: TrackQuery, primary_reason: str) -> Resolution:
        if not self.mirror:
            return Resolution(None, reason=primary_reason)

        logger.info(f"Falling back to mirror search: {query.artist} - {query.name}")
        self._pace()
        match = self.mirror.search(query.name, query.artist, query.duration_ms)

        if match is None:
            return Resolution(None, reason=f"{primary_reason}; no mirror match")
        return Resolution(match, source=SOURCE_MIRROR)

    def _pace(self) -> None:
        if self.before_provider_call is not None:
            self.before_provider_call()
