"""
Best-match scoring for YouTube search candidates.

Scoring Algorithm:
    1. Exclude candidates whose duration differs from the target by more
       than DURATION_TOLERANCE_MS.
    2. Base score falls linearly from 100 (exact duration) to 50 (at the
       tolerance boundary).
    3. +BONUS_POINTS for each bonus term found in the lowercased title:
       the track name, the artist name, "official", "audio", "music video".
    4. -PENALTY_POINTS for each alternative-version term found.
    5. The strictly highest score above 0 wins; ties keep the earlier
       candidate.

Both the Data API and mirror results go through the same functions after
being normalized to VideoCandidate.
"""

from typing import Iterable

from mixtape_matcher.youtube.models import MatchResult, VideoCandidate


# ±15 seconds
DURATION_TOLERANCE_MS = 15000

BONUS_TERMS = ("official", "audio", "music video")
BONUS_POINTS = 10

# Titles containing these usually point at another version of the track
PENALTY_TERMS = ("cover", "remix", "live", "karaoke", "instrumental", "lyrics")
PENALTY_POINTS = 20


def score_candidate(
    candidate: VideoCandidate,
    target_duration_ms: int,
    track_name: str,
    artist_name: str
) -> float | None:
    """
    Score one candidate against the requested track.

    Returns:
        The score, or None if the candidate is outside the duration window.

    Example:
        Target 200000 ms, candidate 200000 ms titled
        "Artist - Track (Official Audio)" scores 100 + 4 * 10 = 140.
    """
    duration_diff = abs(candidate.duration_ms - target_duration_ms)
    if duration_diff > DURATION_TOLERANCE_MS:
        return None

    score = 100 - (duration_diff / DURATION_TOLERANCE_MS) * 50

    title = candidate.title.lower()
    for term in (track_name.lower(), artist_name.lower()) + BONUS_TERMS:
        if term in title:
            score += BONUS_POINTS

    for term in PENALTY_TERMS:
        if term in title:
            score -= PENALTY_POINTS

    return score


def score_candidates(
    candidates: Iterable[VideoCandidate],
    target_duration_ms: int,
    track_name: str,
    artist_name: str
) -> MatchResult | None:
    """
    Pick the best candidate for a track.

    Args:
        candidates: Candidates in provider ranking order.
        target_duration_ms: Requested track duration.
        track_name: Requested track title.
        artist_name: Requested artist.

    Returns:
        MatchResult for the winner, or None when no candidate survives the
        duration window with a score above 0.
    """
    best_match = None
    best_score = 0.0

    for candidate in candidates:
        score = score_candidate(candidate, target_duration_ms, track_name, artist_name)
        if score is None:
            continue

        if score > best_score:
            best_score = score
            best_match = candidate

    if best_match is None:
        return None
    return MatchResult.from_candidate(best_match)
