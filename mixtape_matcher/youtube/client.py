"""
YouTube search providers.

Two providers are available:

    YouTubeSearchClient:
        The YouTube Data API v3. Reliable, but every call spends quota on
        the API key passed in. A search is two requests:
            1. search  (part=snippet, music category, top 5 videos)
            2. videos  (part=contentDetails,snippet for the returned ids)
        Failures are classified as QuotaExceeded or TransportError.

    MirrorSearchClient:
        A pool of public Invidious instances. No quota, but individual
        instances come and go, so each one gets a short independent timeout
        and the next is tried on any failure. The last instance that
        answered is tried first on the next search.

Both providers feed their candidates to the same scorer.

HTTP:
    Requests go through an injected session exposing
    get(url, params=..., timeout=...), a requests.Session by default.
    Tests pass a Mock instead.
"""

from typing import Any, Iterable

import requests

from mixtape_matcher.core.config import (
    Config,
    DEFAULT_MIRRORS,
    YOUTUBE_API_BASE,
)
from mixtape_matcher.core.exceptions import QuotaExceeded, TransportError
from mixtape_matcher.core.logger import get_logger
from mixtape_matcher.youtube.models import MatchResult, VideoCandidate
from mixtape_matcher.youtube.scoring import score_candidates


logger = get_logger(__name__)


# YouTube "Music" video category
MUSIC_CATEGORY_ID = "10"

MAX_SEARCH_RESULTS = 5

# Error reasons reported by the Data API when a key cannot be used any more today
QUOTA_REASONS = ("quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded")

USER_AGENT = "mixtape-matcher/0.1"


def build_search_query(track_name: str, artist_name: str) -> str:
    """Query text sent to both providers."""
    return f"{artist_name} - {track_name} official audio"


def create_session() -> requests.Session:
    """Create the HTTP session shared by the providers."""
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def _error_reason(response: Any) -> str | None:
    """Extract error.errors[0].reason from a Data API error body."""
    try:
        data = response.json()
    except ValueError:
        return None

    if not isinstance(data, dict):
        return None
    errors = (data.get("error") or {}).get("errors") or []
    if errors and isinstance(errors[0], dict):
        return errors[0].get("reason")
    return None


class YouTubeSearchClient:
    """
    Client for the YouTube Data API v3.

    The client holds no key state: the resolver passes the active key on
    every call so rotation stays in one place (KeyPool).

    Example:
        client = YouTubeSearchClient(create_session())
        match = client.search("Track", "Artist", 200000, key="...")
    """

    def __init__(
        self,
        session: Any,
        api_base: str = YOUTUBE_API_BASE,
        timeout: float = 10.0
    ) -> None:
        self._session = session
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    def search(
        self,
        track_name: str,
        artist_name: str,
        target_duration_ms: int,
        key: str
    ) -> MatchResult | None:
        """
        Search for a track and return the best-scoring video.

        Args:
            track_name: Track title.
            artist_name: Artist name.
            target_duration_ms: Requested duration for scoring.
            key: API key to spend quota on.

        Returns:
            MatchResult, or None when the search succeeded but no candidate
            was usable.

        Raises:
            QuotaExceeded: The key reported quota exhaustion.
            TransportError: Any other network or HTTP failure.
        """
        query = build_search_query(track_name, artist_name)

        search_data = self._get(
            "search",
            {
                "part": "snippet",
                "q": query,
                "type": "video",
                "videoCategoryId": MUSIC_CATEGORY_ID,
                "maxResults": str(MAX_SEARCH_RESULTS),
                "key": key,
            },
        )

        video_ids = [
            (item.get("id") or {}).get("videoId")
            for item in search_data.get("items") or []
        ]
        video_ids = [video_id for video_id in video_ids if video_id]
        if not video_ids:
            logger.debug(f"No search results for: {query}")
            return None

        details_data = self._get(
            "videos",
            {
                "part": "contentDetails,snippet",
                "id": ",".join(video_ids),
                "key": key,
            },
        )

        candidates = [
            VideoCandidate.from_api_item(item)
            for item in details_data.get("items") or []
        ]
        return score_candidates(candidates, target_duration_ms, track_name, artist_name)

    def _get(self, endpoint: str, params: dict[str, str]) -> dict[str, Any]:
        """
        Issue one Data API request and classify its failure modes.

        Raises:
            QuotaExceeded: Error body carries a quota reason.
            TransportError: Connection failure, non-2xx status or bad JSON.
        """
        url = f"{self._api_base}/{endpoint}"

        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            raise TransportError(
                f"YouTube API request failed: {e}",
                details={"endpoint": endpoint, "original_error": str(e)}
            ) from e

        if not response.ok:
            reason = _error_reason(response)
            if reason in QUOTA_REASONS:
                raise QuotaExceeded(
                    "Quota exceeded",
                    details={"endpoint": endpoint, "reason": reason, "status_code": response.status_code}
                )
            raise TransportError(
                f"YouTube API error: {response.status_code}",
                details={"endpoint": endpoint, "reason": reason},
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(
                "YouTube API returned invalid JSON",
                details={"endpoint": endpoint},
                status_code=response.status_code
            ) from e

        if not isinstance(data, dict):
            raise TransportError(
                "YouTube API returned an unexpected payload",
                details={"endpoint": endpoint},
                status_code=response.status_code
            )
        return data


class MirrorSearchClient:
    """
    Quota-free fallback over a list of Invidious instances.

    Failure Handling:
        - Non-200 response, timeout, request exception or invalid JSON:
          log and try the next mirror.
        - Empty result list from a working mirror: return None (the query
          simply has no results, other mirrors would agree).
        - All mirrors failing: log an error and return None.

    Never raises for provider failures.
    """

    def __init__(
        self,
        session: Any,
        mirrors: Iterable[str] = DEFAULT_MIRRORS,
        timeout: float = 5.0
    ) -> None:
        self._session = session
        self._mirrors = [m.rstrip("/") for m in mirrors]
        self._timeout = timeout
        self._preferred: str | None = None

    def __bool__(self) -> bool:
        return bool(self._mirrors)

    @property
    def mirrors(self) -> list[str]:
        """Mirrors in the order they will be tried next."""
        if self._preferred is None:
            return list(self._mirrors)
        return [self._preferred] + [m for m in self._mirrors if m != self._preferred]

    def search(
        self,
        track_name: str,
        artist_name: str,
        target_duration_ms: int
    ) -> MatchResult | None:
        """Search mirrors in order until one answers, then score its results."""
        query = build_search_query(track_name, artist_name)

        for mirror in self.mirrors:
            results = self._fetch(mirror, query)
            if results is None:
                continue

            if not results:
                logger.warning(f"No mirror results for: {artist_name} - {track_name}")
                return None

            self._preferred = mirror
            candidates = [
                VideoCandidate.from_mirror_item(item)
                for item in results
                if isinstance(item, dict) and item.get("videoId")
            ]
            return score_candidates(candidates, target_duration_ms, track_name, artist_name)

        logger.error("All mirror instances failed")
        return None

    def _fetch(self, mirror: str, query: str) -> list[Any] | None:
        """Return the mirror's result list, or None if the mirror failed."""
        try:
            response = self._session.get(
                f"{mirror}/api/v1/search",
                params={"q": query, "type": "video"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Mirror {mirror} failed: {e}, trying next...")
            return None

        if response.status_code != 200:
            logger.warning(f"Mirror {mirror} returned {response.status_code}, trying next...")
            return None

        try:
            results = response.json()
        except ValueError:
            logger.warning(f"Mirror {mirror} returned invalid JSON, trying next...")
            return None

        if not isinstance(results, list):
            logger.warning(f"Mirror {mirror} returned an unexpected payload, trying next...")
            return None
        return results


def create_clients(
    config: Config,
    session: Any | None = None
) -> tuple[YouTubeSearchClient, MirrorSearchClient | None]:
    """
    Build both providers from configuration.

    Returns:
        (primary client, mirror client or None when mirrors are disabled
        or none are configured)
    """
    if session is None:
        session = create_session()

    primary = YouTubeSearchClient(
        session,
        api_base=config.youtube.api_base,
        timeout=config.youtube.request_timeout,
    )

    mirror = None
    if config.youtube.use_mirrors and config.youtube.mirrors:
        mirror = MirrorSearchClient(
            session,
            mirrors=config.youtube.mirrors,
            timeout=config.youtube.mirror_timeout,
        )

    return primary, mirror
