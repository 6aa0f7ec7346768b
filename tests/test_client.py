"""Test YouTube search providers"""

from unittest.mock import Mock

import pytest
import requests

from conftest import (
    connection_error,
    make_response,
    quota_response,
    search_response,
    videos_response,
)
from mixtape_matcher.core.exceptions import QuotaExceeded, TransportError
from mixtape_matcher.youtube.client import (
    MirrorSearchClient,
    YouTubeSearchClient,
    create_clients,
)


class TestYouTubeSearchClient:
    """Test Data API search and failure classification"""

    def test_search_returns_best_match(self):
        session = Mock()
        session.get.side_effect = [
            search_response("A", "B"),
            videos_response(
                ("A", "Artist - Track (Official Audio)", "PT3M20S"),
                ("B", "Track (Live)", "PT3M25S"),
            ),
        ]
        client = YouTubeSearchClient(session, api_base="https://api.test/v3")

        match = client.search("Track", "Artist", 200000, key="key-1")

        assert match.video_id == "A"
        assert match.duration_ms == 200000

        search_call, videos_call = session.get.call_args_list
        assert search_call.args[0] == "https://api.test/v3/search"
        assert search_call.kwargs["params"]["q"] == "Artist - Track official audio"
        assert search_call.kwargs["params"]["videoCategoryId"] == "10"
        assert search_call.kwargs["params"]["maxResults"] == "5"
        assert search_call.kwargs["params"]["key"] == "key-1"
        assert videos_call.args[0] == "https://api.test/v3/videos"
        assert videos_call.kwargs["params"]["id"] == "A,B"
        assert videos_call.kwargs["params"]["part"] == "contentDetails,snippet"

    def test_no_search_results(self):
        session = Mock()
        session.get.return_value = search_response()
        client = YouTubeSearchClient(session)

        assert client.search("Track", "Artist", 200000, key="k") is None
        assert session.get.call_count == 1

    def test_no_usable_candidates(self):
        session = Mock()
        session.get.side_effect = [
            search_response("A"),
            videos_response(("A", "Track", "PT10M")),
        ]
        client = YouTubeSearchClient(session)

        assert client.search("Track", "Artist", 200000, key="k") is None

    @pytest.mark.parametrize("reason", ["quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded"])
    def test_quota_reasons(self, reason):
        session = Mock()
        session.get.return_value = quota_response(reason)
        client = YouTubeSearchClient(session)

        with pytest.raises(QuotaExceeded):
            client.search("Track", "Artist", 200000, key="k")

    def test_quota_on_videos_request(self):
        session = Mock()
        session.get.side_effect = [search_response("A"), quota_response()]
        client = YouTubeSearchClient(session)

        with pytest.raises(QuotaExceeded):
            client.search("Track", "Artist", 200000, key="k")

    def test_other_http_error_is_transport_error(self):
        session = Mock()
        session.get.return_value = make_response(500, {"error": {"errors": [{"reason": "backendError"}]}})
        client = YouTubeSearchClient(session)

        with pytest.raises(TransportError) as exc_info:
            client.search("Track", "Artist", 200000, key="k")
        assert exc_info.value.status_code == 500

    def test_forbidden_without_quota_reason_is_transport_error(self):
        session = Mock()
        session.get.return_value = make_response(403, json_error=True)
        client = YouTubeSearchClient(session)

        with pytest.raises(TransportError):
            client.search("Track", "Artist", 200000, key="k")

    def test_connection_error(self):
        session = Mock()
        session.get.side_effect = requests.Timeout("read timed out")
        client = YouTubeSearchClient(session)

        with pytest.raises(TransportError) as exc_info:
            client.search("Track", "Artist", 200000, key="k")
        assert exc_info.value.status_code is None

    def test_invalid_json(self):
        session = Mock()
        session.get.return_value = make_response(200, json_error=True)
        client = YouTubeSearchClient(session)

        with pytest.raises(TransportError):
            client.search("Track", "Artist", 200000, key="k")


def mirror_results(*items):
    """Invidious search payload; items are (video_id, title, seconds) tuples"""
    return make_response(200, [
        {"videoId": vid, "title": title, "lengthSeconds": seconds, "author": "Uploader"}
        for vid, title, seconds in items
    ])


class TestMirrorSearchClient:
    """Test mirror failover"""

    MIRRORS = ("https://m1.test", "https://m2.test", "https://m3.test")

    def test_first_mirror_answers(self):
        session = Mock()
        session.get.return_value = mirror_results(("A", "Artist - Track", 200))
        client = MirrorSearchClient(session, mirrors=self.MIRRORS, timeout=5)

        match = client.search("Track", "Artist", 200000)

        assert match.video_id == "A"
        assert match.thumbnail_url == "https://i.ytimg.com/vi/A/mqdefault.jpg"
        session.get.assert_called_once()
        call = session.get.call_args
        assert call.args[0] == "https://m1.test/api/v1/search"
        assert call.kwargs["params"] == {"q": "Artist - Track official audio", "type": "video"}
        assert call.kwargs["timeout"] == 5

    def test_failover_order(self):
        """Test mirrors are tried in order until one answers"""
        session = Mock()
        session.get.side_effect = [
            connection_error(),
            make_response(502),
            mirror_results(("C", "Track", 200)),
        ]
        client = MirrorSearchClient(session, mirrors=self.MIRRORS)

        match = client.search("Track", "Artist", 200000)

        assert match.video_id == "C"
        urls = [call.args[0] for call in session.get.call_args_list]
        assert urls == [f"{m}/api/v1/search" for m in self.MIRRORS]

    def test_working_mirror_tried_first_next_time(self):
        session = Mock()
        session.get.side_effect = [
            make_response(503),
            mirror_results(("A", "Track", 200)),
            mirror_results(("B", "Track", 200)),
        ]
        client = MirrorSearchClient(session, mirrors=self.MIRRORS)

        client.search("Track", "Artist", 200000)
        client.search("Other", "Artist", 200000)

        assert session.get.call_args_list[2].args[0] == "https://m2.test/api/v1/search"
        assert client.mirrors == ["https://m2.test", "https://m1.test", "https://m3.test"]

    def test_invalid_json_moves_on(self):
        session = Mock()
        session.get.side_effect = [
            make_response(200, json_error=True),
            make_response(200, {"error": "not a list"}),
            mirror_results(("C", "Track", 200)),
        ]
        client = MirrorSearchClient(session, mirrors=self.MIRRORS)

        assert client.search("Track", "Artist", 200000).video_id == "C"

    def test_empty_results_stop_search(self):
        session = Mock()
        session.get.return_value = make_response(200, [])
        client = MirrorSearchClient(session, mirrors=self.MIRRORS)

        assert client.search("Track", "Artist", 200000) is None
        session.get.assert_called_once()

    def test_all_mirrors_fail(self):
        session = Mock()
        session.get.side_effect = connection_error()
        client = MirrorSearchClient(session, mirrors=self.MIRRORS)

        assert client.search("Track", "Artist", 200000) is None
        assert session.get.call_count == 3

    def test_empty_pool_is_falsy(self):
        assert not MirrorSearchClient(Mock(), mirrors=())


class TestCreateClients:
    """Test provider construction from config"""

    def test_mirrors_disabled(self):
        config = Mock()
        config.youtube.api_base = "https://api.test/v3"
        config.youtube.request_timeout = 10.0
        config.youtube.use_mirrors = False
        config.youtube.mirrors = ("https://m1.test",)

        primary, mirror = create_clients(config, session=Mock())

        assert isinstance(primary, YouTubeSearchClient)
        assert mirror is None

    def test_mirrors_enabled(self):
        config = Mock()
        config.youtube.api_base = "https://api.test/v3"
        config.youtube.request_timeout = 10.0
        config.youtube.use_mirrors = True
        config.youtube.mirrors = ("https://m1.test",)
        config.youtube.mirror_timeout = 5.0

        _, mirror = create_clients(config, session=Mock())

        assert mirror.mirrors == ["https://m1.test"]
