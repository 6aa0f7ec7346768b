"""
Batch resolution of an ordered track list.

The pipeline drives a Resolver over every query in order and returns one
ResolvedTrack per query, in the same order. A failure on one track never
stops the batch: the track is returned unmatched and the next one starts.

Pacing:
    A RateLimiter spaces out calls to protect the API quota.
        throttle_scope="provider": only live provider calls are paced;
                                   cache hits run back to back.
        throttle_scope="all":      every query after the first is paced,
                                   cache hits included.

Cancellation:
    A CancellationToken is checked before each query. When set, the
    results produced so far are returned.

Usage:
    pipeline = BatchPipeline(resolver, RateLimiter.from_milliseconds(100))
    results = pipeline.resolve_all(queries, on_progress=print)
    summary = summarize(results)
"""

from dataclasses import dataclass
from typing import Callable, Sequence

from mixtape_matcher.core.config import THROTTLE_SCOPES
from mixtape_matcher.core.logger import (
    format_cache_hit_message,
    get_logger,
    log_unmatched_track,
)
from mixtape_matcher.core.pacing import CancellationToken, RateLimiter
from mixtape_matcher.core.progress import MatchingProgressBar
from mixtape_matcher.youtube.models import ResolvedTrack, TrackQuery
from mixtape_matcher.youtube.resolver import Resolution, Resolver


logger = get_logger(__name__)


ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class BatchSummary:
    """Counts for a finished batch."""

    total: int
    matched: int
    unmatched: int

    @property
    def match_rate(self) -> float:
        return self.matched / self.total if self.total else 0.0


class BatchPipeline:
    """
    Resolves a list of tracks one at a time, in order.

    Attributes:
        resolver: Resolver used for each track.
        limiter: Pacing limiter, or None for no pacing.
        throttle_scope: "provider" or "all" (see module docstring).

    Example:
        pipeline = BatchPipeline(resolver, limiter, throttle_scope="all")
        results = pipeline.resolve_all(queries)
    """

    def __init__(
        self,
        resolver: Resolver,
        limiter: RateLimiter | None = None,
        throttle_scope: str = "provider"
    ) -> None:
        if throttle_scope not in THROTTLE_SCOPES:
            raise ValueError(f"throttle_scope must be one of {THROTTLE_SCOPES}, got {throttle_scope!r}")

        self.resolver = resolver
        self.limiter = limiter
        self.throttle_scope = throttle_scope

    def resolve_all(
        self,
        queries: Sequence[TrackQuery],
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        progress_bar: MatchingProgressBar | None = None
    ) -> list[ResolvedTrack]:
        """
        Resolve every query in order.

        Args:
            queries: Tracks to resolve.
            on_progress: Called as on_progress(position, total) before each
                         track is resolved. position is 1-based.
            cancel_token: Optional stop signal checked before each track.
            progress_bar: Optional progress bar updated after each track.

        Returns:
            One ResolvedTrack per query, in input order. Shorter than
            queries only if the batch was cancelled.
        """
        if self.limiter is None or self.throttle_scope != "provider":
            return self._run(queries, on_progress, cancel_token, progress_bar)

        # The provider hook is only installed while this batch runs
        previous_hook = self.resolver.before_provider_call
        self.resolver.before_provider_call = self.limiter.acquire
        try:
            return self._run(queries, on_progress, cancel_token, progress_bar)
        finally:
            self.resolver.before_provider_call = previous_hook

    def _run(
        self,
        queries: Sequence[TrackQuery],
        on_progress: ProgressCallback | None,
        cancel_token: CancellationToken | None,
        progress_bar: MatchingProgressBar | None
    ) -> list[ResolvedTrack]:
        total = len(queries)
        results: list[ResolvedTrack] = []

        for index, query in enumerate(queries):
            if cancel_token is not None and cancel_token.cancelled:
                logger.warning(f"Batch cancelled after {len(results)}/{total} tracks")
                break

            position = index + 1
            if on_progress is not None:
                on_progress(position, total)

            # The first acquire never waits
            if self.limiter is not None and self.throttle_scope == "all":
                self.limiter.acquire()

            resolution = self._resolve_one(query, position)
            results.append(ResolvedTrack.from_match(query, resolution.match))

            if progress_bar is not None:
                progress_bar.update(matched=resolution.matched, from_cache=resolution.from_cache)

        return results

    def _resolve_one(self, query: TrackQuery, position: int) -> Resolution:
        try:
            resolution = self.resolver.resolve_detailed(query)
        except Exception as e:
            logger.error(f"Error resolving {query.artist} - {query.name}: {e}")
            resolution = Resolution(None, reason=f"Exception during resolution: {e}")

        if resolution.matched:
            if resolution.from_cache:
                logger.debug(format_cache_hit_message(query.artist, query.name))
        else:
            log_unmatched_track(
                logger,
                track_name=query.name,
                artist=query.artist,
                reason=resolution.reason or "No match found",
                position=position,
            )

        return resolution


def summarize(results: Sequence[ResolvedTrack]) -> BatchSummary:
    matched = sum(1 for track in results if track.matched)
    return BatchSummary(total=len(results), matched=matched, unmatched=len(results) - matched)


def next_playable_index(results: Sequence[ResolvedTrack], index: int) -> int:
    """
    Index of the next matched track after `index`, wrapping around.

    Skips unmatched tracks, checking at most len(results) positions. If
    nothing is playable, the position after `index` is returned.

    Raises:
        ValueError: If results is empty.
    """
    if not results:
        raise ValueError("results is empty")

    count = len(results)
    candidate = (index + 1) % count
    attempts = 0
    while not results[candidate].matched and attempts < count:
        candidate = (candidate + 1) % count
        attempts += 1

    return candidate


def previous_playable_index(results: Sequence[ResolvedTrack], index: int) -> int:
    """
    Index of the previous matched track before `index`, wrapping around.

    Mirror image of next_playable_index().
    """
    if not results:
        raise ValueError("results is empty")

    count = len(results)
    candidate = (index - 1) % count
    attempts = 0
    while not results[candidate].matched and attempts < count:
        candidate = (candidate - 1) % count
        attempts += 1

    return candidate
