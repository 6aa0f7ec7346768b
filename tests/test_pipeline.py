"""Test batch resolution"""

from unittest.mock import Mock

import pytest

from mixtape_matcher.core.pacing import CancellationToken, RateLimiter
from mixtape_matcher.youtube.cache import TrackCache
from mixtape_matcher.youtube.keys import KeyPool
from mixtape_matcher.youtube.models import CacheKey, MatchResult, ResolvedTrack, TrackQuery
from mixtape_matcher.youtube.pipeline import (
    BatchPipeline,
    next_playable_index,
    previous_playable_index,
    summarize,
)
from mixtape_matcher.youtube.resolver import Resolver


Q1 = TrackQuery("First", "Artist", 200000)
Q2 = TrackQuery("Second", "Artist", 200000)
Q3 = TrackQuery("Third", "Artist", 200000)


def match_for(name):
    return MatchResult(video_id=f"vid-{name.lower()}", title=f"Artist - {name}", duration_ms=200000)


@pytest.fixture
def primary():
    """Provider that matches every track except 'Second'"""
    client = Mock()
    client.search.side_effect = lambda name, artist, duration, key: None if name == "Second" else match_for(name)
    return client


@pytest.fixture
def resolver(primary):
    return Resolver(cache=TrackCache(), primary=primary, key_pool=KeyPool(["k1"]))


class TestBatchPipeline:
    """Test BatchPipeline ordering, failure isolation and callbacks"""

    def test_order_preserved_with_failure(self, resolver):
        results = BatchPipeline(resolver).resolve_all([Q1, Q2, Q3])

        assert len(results) == 3
        assert [r.name for r in results] == ["First", "Second", "Third"]
        assert results[0].matched and results[2].matched
        assert results[1].matched is False
        assert results[1].video_id is None

    def test_exception_isolated_to_one_track(self, primary, resolver):
        def search(name, artist, duration, key):
            if name == "Second":
                raise RuntimeError("boom")
            return match_for(name)

        primary.search.side_effect = search

        results = BatchPipeline(resolver).resolve_all([Q1, Q2, Q3])

        assert [r.matched for r in results] == [True, False, True]

    def test_progress_called_before_each_query(self, primary, resolver):
        calls = []
        on_progress = Mock(side_effect=lambda i, total: calls.append(("progress", i, total)))
        original = primary.search.side_effect

        def search(name, artist, duration, key):
            calls.append(("search", name))
            return original(name, artist, duration, key)

        primary.search.side_effect = search

        BatchPipeline(resolver).resolve_all([Q1, Q2, Q3], on_progress=on_progress)

        assert calls == [
            ("progress", 1, 3), ("search", "First"),
            ("progress", 2, 3), ("search", "Second"),
            ("progress", 3, 3), ("search", "Third"),
        ]

    def test_empty_batch(self, resolver):
        on_progress = Mock()

        assert BatchPipeline(resolver).resolve_all([], on_progress=on_progress) == []
        on_progress.assert_not_called()

    def test_cancellation_returns_prefix(self, resolver):
        token = CancellationToken()

        def on_progress(position, total):
            if position == 2:
                token.cancel()

        results = BatchPipeline(resolver).resolve_all([Q1, Q2, Q3], on_progress=on_progress, cancel_token=token)

        # Q2 started before the token was checked again
        assert [r.name for r in results] == ["First", "Second"]

    def test_cancelled_before_start(self, resolver, primary):
        token = CancellationToken()
        token.cancel()

        assert BatchPipeline(resolver).resolve_all([Q1, Q2], cancel_token=token) == []
        primary.search.assert_not_called()

    def test_progress_bar_updated(self, resolver):
        resolver.cache.store(CacheKey.for_query(Q1), match_for("First"))
        progress_bar = Mock()

        BatchPipeline(resolver).resolve_all([Q1, Q2, Q3], progress_bar=progress_bar)

        assert [call.kwargs for call in progress_bar.update.call_args_list] == [
            {"matched": True, "from_cache": True},
            {"matched": False, "from_cache": False},
            {"matched": True, "from_cache": False},
        ]

    def test_invalid_throttle_scope(self, resolver):
        with pytest.raises(ValueError):
            BatchPipeline(resolver, throttle_scope="sometimes")


class TestThrottling:
    """Test both pacing scopes with a fake clock"""

    def test_provider_scope_skips_cache_hits(self, resolver, fake_clock):
        resolver.cache.store(CacheKey.for_query(Q1), match_for("First"))
        limiter = RateLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)
        pipeline = BatchPipeline(resolver, limiter, throttle_scope="provider")

        pipeline.resolve_all([Q1, Q2, Q3])

        # Q1 is cached; Q2's call is the first paced one; Q3 waits the full interval
        assert fake_clock.sleeps == [pytest.approx(0.1)]

    def test_provider_scope_all_cached_never_waits(self, resolver, fake_clock):
        for query in (Q1, Q2, Q3):
            resolver.cache.store(CacheKey.for_query(query), match_for(query.name))
        limiter = RateLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)

        BatchPipeline(resolver, limiter, throttle_scope="provider").resolve_all([Q1, Q2, Q3])

        assert fake_clock.sleeps == []

    def test_all_scope_paces_every_query(self, resolver, fake_clock):
        for query in (Q1, Q2, Q3):
            resolver.cache.store(CacheKey.for_query(query), match_for(query.name))
        limiter = RateLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)

        BatchPipeline(resolver, limiter, throttle_scope="all").resolve_all([Q1, Q2, Q3])

        assert fake_clock.sleeps == [pytest.approx(0.1), pytest.approx(0.1)]

    def test_all_scope_does_not_hook_resolver(self, resolver, fake_clock):
        limiter = RateLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)

        BatchPipeline(resolver, limiter, throttle_scope="all").resolve_all([Q1])

        assert resolver.before_provider_call is None

    def test_provider_hook_removed_after_batch(self, resolver, fake_clock):
        limiter = RateLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)
        pipeline = BatchPipeline(resolver, limiter, throttle_scope="provider")

        assert resolver.before_provider_call is None
        pipeline.resolve_all([Q1])

        assert resolver.before_provider_call is None

    def test_earlier_provider_pipeline_does_not_double_pace(self, resolver, fake_clock):
        """Test an "all" batch after a "provider" batch on the same resolver paces once per query"""
        provider_limiter = RateLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)
        BatchPipeline(resolver, provider_limiter, throttle_scope="provider").resolve_all([Q1])
        provider_limiter.acquire = Mock()

        all_limiter = RateLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)
        BatchPipeline(resolver, all_limiter, throttle_scope="all").resolve_all([Q2, Q3])

        provider_limiter.acquire.assert_not_called()
        # Q2 is the first paced query of the second batch
        assert fake_clock.sleeps == [pytest.approx(0.1)]

    def test_slow_queries_need_no_extra_wait(self, primary, resolver, fake_clock):
        original = primary.search.side_effect

        def slow_search(*args, **kwargs):
            fake_clock.advance(0.5)
            return original(*args, **kwargs)

        primary.search.side_effect = slow_search
        limiter = RateLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)

        BatchPipeline(resolver, limiter).resolve_all([Q1, Q2, Q3])

        assert fake_clock.sleeps == []


def resolved(*matched):
    return [
        ResolvedTrack(name=str(i), artist="a", duration_ms=0, video_id="v" if m else None, matched=m)
        for i, m in enumerate(matched)
    ]


class TestSummaryAndNavigation:
    """Test summaries and playable-track navigation"""

    def test_summarize(self):
        summary = summarize(resolved(True, False, True, True))

        assert summary.total == 4
        assert summary.matched == 3
        assert summary.unmatched == 1
        assert summary.match_rate == pytest.approx(0.75)

    def test_summarize_empty(self):
        assert summarize([]).match_rate == 0.0

    def test_next_skips_unmatched(self):
        results = resolved(True, False, False, True)
        assert next_playable_index(results, 0) == 3

    def test_next_wraps_around(self):
        results = resolved(True, False, True, False)
        assert next_playable_index(results, 2) == 0

    def test_previous_skips_unmatched_and_wraps(self):
        results = resolved(False, True, False, False)
        assert previous_playable_index(results, 1) == 1
        assert previous_playable_index(results, 3) == 1

    def test_nothing_playable_terminates(self):
        results = resolved(False, False, False)
        assert next_playable_index(results, 0) in range(3)
        assert previous_playable_index(results, 0) in range(3)

    def test_empty_results(self):
        with pytest.raises(ValueError):
            next_playable_index([], 0)
