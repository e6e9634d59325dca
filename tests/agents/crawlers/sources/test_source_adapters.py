"""Tests for platform clients and normalizers.

Clients are exercised against httpx.MockTransport; normalizers against
representative platform-native payloads.
"""

import httpx
import pytest

from repushield.agents.crawlers.sources.base import RapidApiClient, dig, first_present
from repushield.agents.crawlers.sources import news_source
from repushield.agents.crawlers.sources.facebook_source import FacebookClient, normalize_facebook_post
from repushield.agents.crawlers.sources.news_source import NewsClient, normalize_news_article
from repushield.agents.crawlers.sources.reddit_source import (
    RedditClient,
    extract_posts,
    normalize_reddit_post,
)
from repushield.agents.crawlers.sources import build_default_adapters
from repushield.agents.crawlers.sources.twitter_source import (
    TwitterClient,
    extract_tweets,
    normalize_tweet,
)
from repushield.config.settings import Settings
from repushield.data_management.schemas import Platform
from repushield.errors import MentionValidationError, SourceClientError


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHelpers:
    def test_first_present_skips_empty(self):
        assert first_present(None, "", [], {}, 0) == 0
        assert first_present(None, default="x") == "x"

    def test_dig(self):
        data = {"a": [{"b": 1}]}
        assert dig(data, "a", 0, "b") == 1
        assert dig(data, "a", 3, "b") is None
        assert dig(data, "missing", "b") is None


class TestRapidApiClient:
    @pytest.mark.asyncio
    async def test_sends_rapidapi_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"result": {"tweets": []}})

        client = TwitterClient(api_key="k", http_client=mock_client(handler))
        await client.search("Acme", 5)

        assert seen["x-rapidapi-key"] == "k"
        assert seen["x-rapidapi-host"] == "twitter241.p.rapidapi.com"
        assert "query=Acme" in seen["url"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, message",
        [(429, "Rate limit"), (401, "Invalid API key"), (403, "forbidden"), (500, "500")],
    )
    async def test_error_statuses(self, status, message):
        client = TwitterClient(
            api_key="k",
            http_client=mock_client(lambda request: httpx.Response(status, json={})),
        )
        with pytest.raises(SourceClientError, match=message):
            await client.search("Acme", 5)

    @pytest.mark.asyncio
    async def test_missing_key(self):
        client = TwitterClient(api_key="", http_client=mock_client(lambda r: httpx.Response(200)))
        with pytest.raises(SourceClientError, match="not configured"):
            await client.search("Acme", 5)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = TwitterClient(
            api_key="k",
            http_client=mock_client(lambda r: httpx.Response(200, content=b"<html>")),
        )
        assert isinstance(client, RapidApiClient)
        with pytest.raises(SourceClientError, match="Invalid JSON"):
            await client.request("/search")


class TestTwitter:
    def test_extract_known_shapes(self):
        assert extract_tweets({"result": {"tweets": [{"id": 1}]}}) == [{"id": 1}]
        assert extract_tweets({"statuses": [{"id": 2}]}) == [{"id": 2}]
        assert extract_tweets([{"id": 3}]) == [{"id": 3}]

    def test_extract_timeline_instructions(self):
        tweet = {"rest_id": "9", "legacy": {"full_text": "hi"}}
        response = {"result": {"timeline": {"instructions": [
            {"entries": [{"content": {"itemContent": {"tweet_results": {"result": tweet}}}}]}
        ]}}}
        assert extract_tweets(response) == [tweet]

    def test_unknown_shape_is_empty(self):
        assert extract_tweets({"unexpected": {"stuff": 1}}) == []
        assert extract_tweets("nope") == []

    @pytest.mark.asyncio
    async def test_search_truncates_to_limit(self):
        tweets = [{"id_str": str(i)} for i in range(10)]
        client = TwitterClient(
            api_key="k",
            http_client=mock_client(lambda r: httpx.Response(200, json={"result": tweets})),
        )
        assert len(await client.search("Acme", 3)) == 3

    def test_normalize_nested_graphql_tweet(self):
        raw = {
            "rest_id": "1790",
            "core": {"user_results": {"result": {
                "rest_id": "42",
                "is_blue_verified": True,
                "legacy": {"screen_name": "acmefan", "name": "Acme Fan", "followers_count": 10},
            }}},
            "legacy": {
                "id_str": "1790",
                "full_text": "Acme rocket skates broke",
                "created_at": "Wed Oct 10 20:19:24 +0000 2018",
                "favorite_count": 5,
                "reply_count": 2,
                "retweet_count": 3,
                "extended_entities": {"media": [
                    {"media_url_https": "https://pbs.twimg.com/a.jpg", "type": "photo"}
                ]},
            },
        }
        mention = normalize_tweet(raw, "cfg-1")

        assert mention.platform == Platform.TWITTER
        assert mention.post_id == "1790"
        assert mention.content == "Acme rocket skates broke"
        assert mention.author_username == "acmefan"
        assert mention.author_verified is True
        assert mention.likes_count == 5
        assert mention.shares_count == 3
        assert mention.retweets_count == 3
        assert mention.post_url == "https://twitter.com/acmefan/status/1790"
        assert mention.media_urls == ["https://pbs.twimg.com/a.jpg"]
        assert mention.raw_data is raw

    def test_normalize_without_id_leaves_post_id_empty(self):
        assert normalize_tweet({"text": "no id"}, "cfg-1").post_id == ""

    def test_normalize_rejects_non_dict(self):
        with pytest.raises(MentionValidationError):
            normalize_tweet("garbage", "cfg-1")


class TestReddit:
    def test_extract_numeric_keyed_data(self):
        assert extract_posts({"data": {"0": {"id": "a"}, "1": {"id": "b"}}}) == [{"id": "a"}, {"id": "b"}]

    def test_extract_children(self):
        assert extract_posts({"data": {"children": [{"kind": "t3"}]}}) == [{"kind": "t3"}]

    @pytest.mark.asyncio
    async def test_not_found_is_empty(self):
        client = RedditClient(
            api_key="k",
            http_client=mock_client(
                lambda r: httpx.Response(200, json={"success": False, "data": "posts not found"})
            ),
        )
        assert await client.search("Acme", 5) == []

    @pytest.mark.asyncio
    async def test_other_api_failure_raises(self):
        client = RedditClient(
            api_key="k",
            http_client=mock_client(
                lambda r: httpx.Response(200, json={"success": False, "data": "quota exceeded"})
            ),
        )
        with pytest.raises(SourceClientError, match="quota exceeded"):
            await client.search("Acme", 5)

    def test_normalize_listing_child(self):
        raw = {"kind": "t3", "data": {
            "id": "abc",
            "title": "Acme anvils are dangerous",
            "selftext": "",
            "subreddit": "gadgets",
            "created_utc": 1700000000,
            "permalink": "/r/gadgets/comments/abc/acme/",
            "score": 120,
            "num_comments": 14,
            "preview": {"images": [{"source": {"url": "https://i.redd.it/x.jpg?a=1&amp;b=2"}}]},
            "thumbnail": "self",
        }}
        mention = normalize_reddit_post(raw, "cfg-1")

        assert mention.post_id == "abc"
        assert mention.title == "Acme anvils are dangerous"
        assert mention.author_username == "gadgets"
        assert mention.author_name == "r/gadgets"
        assert mention.upvotes_count == 120
        assert mention.post_url == "https://reddit.com/r/gadgets/comments/abc/acme/"
        assert mention.media_urls == ["https://i.redd.it/x.jpg?a=1&b=2"]
        assert mention.thumbnail_url is None
        assert mention.created_at == 1700000000


class TestFacebook:
    @pytest.mark.asyncio
    async def test_search_results_list(self):
        client = FacebookClient(
            api_key="k",
            http_client=mock_client(lambda r: httpx.Response(200, json={"results": [{"post_id": "1"}]})),
        )
        assert await client.search("Acme", 5) == [{"post_id": "1"}]

    def test_normalize(self):
        raw = {
            "post_id": "987",
            "message": "Acme customer service is terrible",
            "timestamp": 1700000000,
            "author": {"id": "55", "name": "Jane"},
            "reactions": {"like": 3, "angry": 4},
            "comments_count": 2,
            "reshare_count": 1,
            "image": {"uri": "https://fb.example/img.jpg"},
        }
        mention = normalize_facebook_post(raw, "cfg-1")

        assert mention.platform == Platform.FACEBOOK
        assert mention.post_id == "987"
        assert mention.likes_count == 7
        assert mention.shares_count == 1
        assert mention.author_name == "Jane"
        assert mention.post_url == "https://facebook.com/987"
        assert mention.media_types == ["image"]


class FakeSerper:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.queries = []

    async def aresults(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.payload


class TestNews:
    @pytest.mark.asyncio
    async def test_search_news_list(self):
        wrapper = FakeSerper({"news": [{"link": "https://n.example/1"}, {"link": "https://n.example/2"}]})
        client = NewsClient(api_key="k", wrapper=wrapper)

        assert len(await client.search("Acme", 1)) == 1
        assert wrapper.queries == ["Acme"]

    @pytest.mark.asyncio
    async def test_unknown_shape_is_empty(self):
        client = NewsClient(api_key="k", wrapper=FakeSerper({"organic": []}))
        assert await client.search("Acme", 5) == []

    @pytest.mark.asyncio
    async def test_failure_wrapped(self):
        client = NewsClient(api_key="k", wrapper=FakeSerper(error=RuntimeError("down")))
        with pytest.raises(SourceClientError, match="down"):
            await client.search("Acme", 5)

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(SourceClientError):
            await NewsClient(api_key="").search("Acme", 5)

    @pytest.mark.asyncio
    async def test_wrapper_follows_requested_limit(self, monkeypatch):
        built = []

        class RecordingSerper(FakeSerper):
            def __init__(self, serper_api_key, k, type):
                super().__init__({"news": [{"link": f"https://n.example/{i}"} for i in range(k)]})
                built.append((k, type))

        monkeypatch.setattr(news_source, "GoogleSerperAPIWrapper", RecordingSerper)
        client = NewsClient(api_key="k")

        assert len(await client.search("Acme", 5)) == 5
        assert len(await client.search("Acme", 20)) == 20
        assert len(await client.search("Acme", 20)) == 20
        assert built == [(5, "news"), (20, "news")]

    def test_normalize_keys_on_link(self):
        raw = {
            "title": "Acme recalls skates",
            "link": "https://news.example/acme-recall",
            "snippet": "Acme Corp announced a recall...",
            "date": "2 hours ago",
            "source": "Daily Planet",
            "imageUrl": "https://news.example/img.jpg",
        }
        mention = normalize_news_article(raw, "cfg-1")

        assert mention.platform == Platform.NEWS
        assert mention.post_id == "https://news.example/acme-recall"
        assert mention.post_url == mention.post_id
        assert mention.author_name == "Daily Planet"
        assert mention.thumbnail_url == "https://news.example/img.jpg"


class TestRegistry:
    def test_every_platform_has_an_adapter(self):
        adapters = build_default_adapters(Settings(rapidapi_key="r", serper_api_key="s"))
        assert set(adapters) == set(Platform)
        for platform, adapter in adapters.items():
            assert adapter.platform == platform
            assert callable(adapter.normalize)
