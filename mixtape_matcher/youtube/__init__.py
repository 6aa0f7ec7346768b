"""
YouTube resolution module for mixtape-matcher.

This module turns (title, artist, duration) track queries into YouTube
video references.

Components:
    - TrackQuery / MatchResult / ResolvedTrack: Data models
    - KeyPool: Rotating YouTube Data API keys
    - TrackCache: Memory + database cache of resolved tracks
    - score_candidates: Best-match selection
    - YouTubeSearchClient / MirrorSearchClient: Search providers
    - Resolver: Cache check, search and key rotation for one track
    - BatchPipeline: Ordered, paced resolution of a track list

Usage:
    from mixtape_matcher.youtube import BatchPipeline, Resolver, TrackCache

    resolver = Resolver.from_config(config, TrackCache(database))
    results = BatchPipeline(resolver, limiter).resolve_all(queries)

    matched_count = sum(1 for r in results if r.matched)
    print(f"Matched {matched_count}/{len(queries)} tracks")
"""

from mixtape_matcher.youtube.cache import TrackCache
from mixtape_matcher.youtube.client import (
    MirrorSearchClient,
    YouTubeSearchClient,
    create_clients,
    create_session,
)
from mixtape_matcher.youtube.keys import KeyPool
from mixtape_matcher.youtube.models import (
    CacheKey,
    MatchResult,
    ResolvedTrack,
    TrackQuery,
    VideoCandidate,
    parse_iso8601_duration,
)
from mixtape_matcher.youtube.pipeline import (
    BatchPipeline,
    BatchSummary,
    next_playable_index,
    previous_playable_index,
    summarize,
)
from mixtape_matcher.youtube.resolver import Resolution, Resolver
from mixtape_matcher.youtube.scoring import score_candidate, score_candidates

__all__ = [
    # Models
    "TrackQuery",
    "CacheKey",
    "VideoCandidate",
    "MatchResult",
    "ResolvedTrack",
    "parse_iso8601_duration",
    # Components
    "KeyPool",
    "TrackCache",
    "score_candidate",
    "score_candidates",
    "YouTubeSearchClient",
    "MirrorSearchClient",
    "create_clients",
    "create_session",
    "Resolver",
    "Resolution",
    # Pipeline
    "BatchPipeline",
    "BatchSummary",
    "summarize",
    "next_playable_index",
    "previous_playable_index",
]
