"""
Tests for the TikTok, YouTube and Instagram sources.

All HTTP is mocked; page fixtures live in tests/test_config.py.
"""

import json

import pytest
import requests
from unittest.mock import patch

from src.errors import UpstreamUnavailable
from src.sources.instagram import (
    InstagramGraphSource,
    InstagramWebSource,
    find_key,
    parse_profile_page,
    timeline_nodes,
)
from src.sources.tiktok import (
    ParseBotSource,
    TikTokPageSource,
    normalize_tiktok_url,
    parse_profile_state,
)
from src.sources.youtube import (
    YouTubeDataApiSource,
    YouTubePageSource,
    extract_youtube_id,
    parse_channel_videos,
)
from tests.conftest import mock_response
from tests.test_config import TEST_DATA, get_test_data, script_page, yt_page


# =============================================================================
# TikTok
# =============================================================================

class TestNormalizeTikTokUrl:

    @pytest.mark.parametrize("link,expected", [
        ("7312345678901234567", "https://www.tiktok.com/@/video/7312345678901234567"),
        ("https://www.tiktok.com/@a/video/1", "https://www.tiktok.com/@a/video/1"),
        ("www.tiktok.com/@a/video/1", "https://www.tiktok.com/@a/video/1"),
        ("  ", None),
        (None, None),
    ])
    def test_normalize(self, link, expected):
        assert normalize_tiktok_url(link) == expected


class TestParseBotSource:

    def test_unavailable_without_key(self):
        source = ParseBotSource(api_key="")

        assert source.is_available is False
        assert "PARSEBOT_API_KEY" in source.unavailable_reason

    def test_fetch_posts_username_and_count(self):
        source = ParseBotSource(api_key="pb-key", scraper_id="scraper-1")

        with patch("src.sources.tiktok.requests.post",
                   return_value=mock_response(get_test_data("parsebot_response"))) as mock_post:
            feed = source.fetch("someuser", 2)

        assert mock_post.call_args.args[0].endswith("/scraper/scraper-1/get_user_videos")
        assert mock_post.call_args.kwargs["json"] == {"count": "2", "username": "someuser"}
        assert mock_post.call_args.kwargs["headers"]["X-API-Key"] == "pb-key"
        assert len(feed.items) == 2
        assert feed.schema == "parsebot"
        assert feed.author == {"username": "someuser"}

    def test_surplus_videos_keep_the_newest(self):
        source = ParseBotSource(api_key="k")

        with patch("src.sources.tiktok.requests.post",
                   return_value=mock_response(get_test_data("parsebot_response"))):
            feed = source.fetch("someuser", 2)

        assert [video["id"] for video in feed.items] == ["v30", "v20"]

    def test_items_key_is_accepted(self):
        source = ParseBotSource(api_key="k")

        with patch("src.sources.tiktok.requests.post",
                   return_value=mock_response({"items": [{"id": "1"}]})):
            feed = source.fetch("someuser", 10)

        assert feed.items == [{"id": "1"}]

    def test_http_error_uses_proxy_message(self):
        source = ParseBotSource(api_key="k")

        with patch("src.sources.tiktok.requests.post",
                   return_value=mock_response({"message": "Invalid API key"}, status_code=401)):
            with pytest.raises(UpstreamUnavailable, match="Invalid API key"):
                source.fetch("someuser", 10)


class TestTikTokPageSource:

    def test_parse_sigi_state(self):
        items = get_test_data("tiktok_items")
        html = script_page("SIGI_STATE", {
            "ItemModule": {item["id"]: item for item in items},
            "UserModule": {"users": {"someuser": {"uniqueId": "someuser"}}},
        })

        posts, user = parse_profile_state(html)

        assert [p["id"] for p in posts] == ["7001", "7002"]
        assert user == {"uniqueId": "someuser"}

    def test_parse_universal_data(self):
        html = script_page("__UNIVERSAL_DATA_FOR_REHYDRATION__", {
            "__DEFAULT_SCOPE__": {"webapp.user-detail": {
                "itemList": get_test_data("tiktok_items"),
                "userInfo": {"user": {"uniqueId": "someuser"}},
            }}
        })

        posts, user = parse_profile_state(html)

        assert len(posts) == 2
        assert user["uniqueId"] == "someuser"

    def test_fetch_sorts_newest_first(self):
        html = script_page("SIGI_STATE", {
            "ItemModule": {item["id"]: item for item in get_test_data("tiktok_items")},
        })

        with patch("src.sources.tiktok.requests.get", return_value=mock_response(text=html)):
            feed = TikTokPageSource().fetch("someuser", 10)

        assert [p["id"] for p in feed.items] == ["7002", "7001"]
        assert feed.source == "page_scraping"
        assert feed.schema == "tiktok_web"

    def test_page_without_state_raises(self):
        with patch("src.sources.tiktok.requests.get", return_value=mock_response(text="<html></html>")):
            with pytest.raises(UpstreamUnavailable, match="No videos found"):
                TikTokPageSource().fetch("someuser", 10)

    def test_fetch_video(self):
        video = get_test_data("tiktok_items")[0]
        html = script_page("__UNIVERSAL_DATA_FOR_REHYDRATION__", {
            "__DEFAULT_SCOPE__": {"webapp.video-detail": {"itemInfo": {"itemStruct": video}}}
        })

        with patch("src.sources.tiktok.requests.get", return_value=mock_response(text=html)):
            result = TikTokPageSource().fetch_video("https://www.tiktok.com/@someuser/video/7001")

        assert result["video_id"] == "7001"
        assert result["views"] == 100
        assert result["cover_image"] == "https://cdn/1.jpg"
        assert result["url"] == "https://www.tiktok.com/@someuser/video/7001"
        assert result["author"]["nickname"] == "Some User"

    def test_fetch_video_failure_returns_none(self):
        with patch("src.sources.tiktok.requests.get", side_effect=requests.ConnectionError("down")):
            assert TikTokPageSource().fetch_video("https://www.tiktok.com/@/video/1") is None


# =============================================================================
# YouTube
# =============================================================================

class TestExtractYouTubeId:

    @pytest.mark.parametrize("link,expected", [
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://youtu.be/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/embed/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/shorts/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://example.com/nothing", None),
        ("short", None),
        ("", None),
    ])
    def test_extract(self, link, expected):
        assert extract_youtube_id(link) == expected


class TestYouTubeDataApiSource:

    def _responses(self):
        return [
            mock_response(get_test_data("youtube_search")),
            mock_response(get_test_data("youtube_channels")),
            mock_response(get_test_data("youtube_playlist")),
            mock_response(get_test_data("youtube_videos")),
        ]

    def test_unavailable_without_key(self):
        assert YouTubeDataApiSource(api_key="").is_available is False

    def test_fetch_walks_search_channel_playlist_videos(self):
        source = YouTubeDataApiSource(api_key="yt-key")

        with patch("src.sources.youtube.requests.get", side_effect=self._responses()) as mock_get:
            feed = source.fetch("somechannel", 30)

        endpoints = [call.args[0].rsplit("/", 1)[-1] for call in mock_get.call_args_list]
        assert endpoints == ["search", "channels", "playlistItems", "videos"]
        assert mock_get.call_args_list[2].kwargs["params"]["maxResults"] == 30
        assert all(call.kwargs["params"]["key"] == "yt-key" for call in mock_get.call_args_list)

        video = feed.items[0]
        assert video["video_id"] == "abcdefghijk"
        assert video["views"] == "1000"
        assert video["duration"] == "PT4M13S"
        assert feed.author == {"username": "Some Channel"}
        assert feed.extra == {"subscribers": 12345}

    def test_channel_not_found_raises(self):
        source = YouTubeDataApiSource(api_key="k")

        with patch("src.sources.youtube.requests.get", return_value=mock_response({"items": []})):
            with pytest.raises(UpstreamUnavailable, match="Channel not found"):
                source.fetch("ghost", 30)

    def test_fetch_videos_by_ids_chunks_of_fifty(self):
        source = YouTubeDataApiSource(api_key="k")
        ids = [f"id{i:09d}" for i in range(120)]

        with patch("src.sources.youtube.requests.get",
                   return_value=mock_response(get_test_data("youtube_videos"))) as mock_get:
            videos = source.fetch_videos_by_ids(ids)

        assert mock_get.call_count == 3
        assert len(mock_get.call_args_list[0].kwargs["params"]["id"].split(",")) == 50
        assert videos[0]["video_id"] == "abcdefghijk"
        assert videos[0]["likes"] == 50
        assert len(videos[0]["description"]) == 200


class TestYouTubePageSource:

    def test_parse_channel_videos(self):
        videos = parse_channel_videos(get_test_data("youtube_initial_data"))

        assert len(videos) == 1
        assert videos[0]["title"] == "Scraped video"
        assert videos[0]["views"] == 1234
        assert videos[0]["thumbnail"] == "large.jpg"
        assert videos[0]["published"] == "3 days ago"

    def test_fetch(self):
        html = yt_page(TEST_DATA["youtube_initial_data"])

        with patch("src.sources.youtube.requests.get", return_value=mock_response(text=html)) as mock_get:
            feed = YouTubePageSource().fetch("somechannel", 30)

        assert mock_get.call_args.args[0] == "https://www.youtube.com/@somechannel/videos"
        assert feed.author == {"username": "Scraped Channel"}
        assert feed.source == "page_scraping"
        assert len(feed.items) == 1

    def test_page_without_initial_data_raises(self):
        with patch("src.sources.youtube.requests.get", return_value=mock_response(text="<html></html>")):
            with pytest.raises(UpstreamUnavailable, match="ytInitialData"):
                YouTubePageSource().fetch("somechannel", 30)

    def test_fetch_video(self):
        html = yt_page(TEST_DATA["youtube_watch_data"])

        with patch("src.sources.youtube.requests.get", return_value=mock_response(text=html)):
            video = YouTubePageSource().fetch_video("abcdefghijk")

        assert video["video_id"] == "abcdefghijk"
        assert video["title"] == "Watch title"
        assert video["description"] == "Long description"
        assert video["views"] == 2_500_000
        assert video["likes"] == 0
        assert video["channel"] == {"name": "Owner", "id": "UC999"}

    def test_fetch_video_without_primary_info_returns_none(self):
        with patch("src.sources.youtube.requests.get", return_value=mock_response(text=yt_page({}))):
            assert YouTubePageSource().fetch_video("abcdefghijk") is None


# =============================================================================
# Instagram
# =============================================================================

class TestInstagramGraphSource:

    def test_unavailable_without_token(self):
        assert InstagramGraphSource(access_token="").is_available is False

    def test_fetch_media_and_profile(self):
        source = InstagramGraphSource(access_token="ig-token")
        responses = [
            mock_response(get_test_data("instagram_media")),
            mock_response(get_test_data("instagram_profile")),
        ]

        with patch("src.sources.instagram.requests.get", side_effect=responses) as mock_get:
            feed = source.fetch("anyone", 500)

        assert mock_get.call_args_list[0].kwargs["params"]["limit"] == 100
        assert feed.source == "graph_api"
        assert feed.author == {"username": "ownaccount"}
        assert len(feed.items) == 2

    def test_graph_error_message_is_used(self):
        source = InstagramGraphSource(access_token="bad")
        error = {"error": {"message": "Invalid OAuth access token", "code": 190}}

        with patch("src.sources.instagram.requests.get", return_value=mock_response(error, status_code=400)):
            with pytest.raises(UpstreamUnavailable, match="Invalid OAuth access token"):
                source.fetch("anyone", 30)


class TestInstagramWebSource:

    def test_fetch_from_profile_info(self):
        source = InstagramWebSource(session_id="")

        with patch.object(requests.Session, "get",
                          return_value=mock_response(get_test_data("instagram_web_profile"))) as mock_get:
            feed = source.fetch("someuser", 30)

        assert mock_get.call_count == 1
        assert mock_get.call_args.kwargs["params"] == {"username": "someuser"}
        assert feed.items[0]["shortcode"] == "Cabc123"
        assert feed.author == {"username": "someuser"}
        assert feed.error is None

    def test_falls_back_to_page_scripts(self):
        timeline = get_test_data("instagram_web_profile")
        html = (
            "<html><script>window.__additionalData = "
            f"{json.dumps({'graphql': timeline})};</script></html>"
        )
        responses = [mock_response(text="<html>login</html>"), mock_response(text=html)]

        with patch.object(requests.Session, "get", side_effect=responses):
            feed = InstagramWebSource(session_id="").fetch("someuser", 30)

        assert len(feed.items) == 1

    def test_login_wall_without_session_is_partial(self):
        responses = [mock_response(text="<html></html>"), mock_response(text="<html></html>")]

        with patch.object(requests.Session, "get", side_effect=responses):
            feed = InstagramWebSource(session_id="").fetch("someuser", 30)

        assert feed.is_empty
        assert "IG_SESSION_ID" in feed.error

    def test_no_posts_with_session_raises(self):
        responses = [mock_response(text="<html></html>"), mock_response(text="<html></html>")]

        with patch.object(requests.Session, "get", side_effect=responses):
            with pytest.raises(UpstreamUnavailable, match="No posts found"):
                InstagramWebSource(session_id="abc").fetch("someuser", 30)

    def test_session_cookie_is_sent(self):
        source = InstagramWebSource(session_id="abc")

        with source._session() as session:
            assert session.cookies.get("sessionid", domain=".instagram.com") == "abc"
            assert session.headers["X-IG-App-ID"]

    def test_unknown_user_raises(self):
        with patch.object(requests.Session, "get", return_value=mock_response({}, status_code=404)):
            with pytest.raises(UpstreamUnavailable, match="User not found"):
                InstagramWebSource(session_id="").fetch("ghost", 30)

    def test_find_key_searches_nested_lists(self):
        data = {"a": [{"b": {}}, {"c": {"target": {"edges": [1]}}}]}

        assert find_key(data, "target") == {"edges": [1]}
        assert find_key(data, "absent") is None

    def test_parse_profile_page_ignores_unrelated_scripts(self):
        html = "<script>var x = {};</script>"

        assert parse_profile_page(html) == []

    @pytest.mark.parametrize("timeline,expected", [
        (None, []),
        ("not a timeline", []),
        ({"edges": None}, []),
        ({"edges": [None, "x", {"node": None}, {"node": {"id": "1"}}]}, [{"id": "1"}]),
    ])
    def test_timeline_nodes_skips_malformed_edges(self, timeline, expected):
        assert timeline_nodes(timeline) == expected
