"""Twitter/X source: RapidAPI twitter241 search client and tweet normalizer."""

from typing import Any, List

from repushield.agents.crawlers.sources.base import (
    RapidApiClient,
    RawItem,
    as_int,
    as_str,
    dig,
    ensure_item,
    first_present,
)
from repushield.data_management.schemas import NormalizedMention, Platform


def _timeline_tweets(timeline: dict) -> List[RawItem]:
    tweets: List[RawItem] = []
    for instruction in timeline.get("instructions") or []:
        for entry in instruction.get("entries") or []:
            tweet = dig(entry, "content", "itemContent", "tweet_results", "result")
            if isinstance(tweet, dict):
                tweets.append(tweet)
    if tweets:
        return tweets

    response_objects = timeline.get("responseObjects")
    if isinstance(response_objects, dict):
        tweets = [
            obj["tweet"] for obj in response_objects.values()
            if isinstance(obj, dict) and isinstance(obj.get("tweet"), dict)
        ]
    return tweets


def extract_tweets(response: Any) -> List[RawItem]:
    """
    Locate the tweet list inside a search response.

    The search API has returned several shapes over time ({result: {tweets}},
    {result: [...]}, {result: {timeline: {instructions}}}, {statuses}, ...).
    Unknown shapes yield an empty list.
    """
    if isinstance(response, list):
        return response
    if not isinstance(response, dict):
        return []

    result = response.get("result")
    if isinstance(result, list):
        return result
    if isinstance(result, dict):
        for key in ("tweets", "data"):
            if isinstance(result.get(key), list):
                return result[key]
        if isinstance(result.get("timeline"), dict):
            tweets = _timeline_tweets(result["timeline"])
            if tweets:
                return tweets

    for path in (("statuses",), ("data", "statuses"), ("data",), ("tweets",), ("results",)):
        candidate = dig(response, *path)
        if isinstance(candidate, list):
            return candidate
    return []


class TwitterClient(RapidApiClient):
    """Latest-tweets search via RapidAPI."""

    host = "twitter241.p.rapidapi.com"

    async def search(self, query: str, limit: int) -> List[RawItem]:
        response = await self.request(
            "/search", {"type": "Latest", "count": limit, "query": query}
        )
        tweets = extract_tweets(response)
        if not tweets:
            keys = list(response.keys()) if isinstance(response, dict) else type(response).__name__
            self.logger.warning(f"No tweets found in response, keys: {keys}")
        return tweets[:limit]


def _tweet_media(tweet_data: dict) -> List[dict]:
    media = dig(tweet_data, "extended_entities", "media") or dig(tweet_data, "entities", "media")
    return [m for m in media or [] if isinstance(m, dict)]


def normalize_tweet(raw: RawItem, configuration_id: str) -> NormalizedMention:
    """Map a platform-native tweet (flat or nested legacy shape) onto a mention."""
    raw = ensure_item(raw)
    tweet_data = first_present(raw.get("legacy"), dig(raw, "tweet", "legacy"), default=raw)
    user_result = dig(raw, "core", "user_results", "result") or {}
    user_core = user_result.get("core") or {}
    user_legacy = user_result.get("legacy") or {}
    user_data = first_present(user_legacy, raw.get("user"), tweet_data.get("user"), default={})

    post_id = as_str(first_present(
        tweet_data.get("id_str"), raw.get("id_str"), raw.get("rest_id"), raw.get("id")
    ))
    username = as_str(first_present(
        user_core.get("screen_name"), user_data.get("screen_name"),
        user_data.get("username"), raw.get("author_username"),
    ))
    media = _tweet_media(tweet_data)
    retweets = as_int(first_present(tweet_data.get("retweet_count"), raw.get("retweet_count")))

    return NormalizedMention(
        platform=Platform.TWITTER,
        post_id=post_id,
        configuration_id=configuration_id,
        content=as_str(first_present(
            tweet_data.get("full_text"), tweet_data.get("text"), raw.get("text"), raw.get("content")
        )),
        created_at=first_present(tweet_data.get("created_at"), raw.get("created_at")),
        post_url=f"https://twitter.com/{username}/status/{post_id}",
        author_id=as_str(first_present(
            user_result.get("rest_id"), user_data.get("id_str"), user_data.get("id"), raw.get("author_id")
        )) or None,
        author_username=username or None,
        author_name=as_str(first_present(
            user_core.get("name"), user_data.get("name"), raw.get("author_name")
        )) or None,
        author_verified=bool(first_present(
            user_result.get("is_blue_verified"), user_data.get("verified"), raw.get("verified"), default=False
        )),
        author_followers=as_int(first_present(user_data.get("followers_count"), raw.get("followers_count"))),
        author_following=as_int(first_present(
            user_data.get("friends_count"), user_data.get("following_count"), raw.get("following_count")
        )),
        author_profile_image=first_present(
            user_data.get("profile_image_url_https"), user_data.get("profile_image_url")
        ),
        likes_count=as_int(first_present(
            tweet_data.get("favorite_count"), tweet_data.get("like_count"), raw.get("like_count")
        )),
        comments_count=as_int(first_present(tweet_data.get("reply_count"), raw.get("reply_count"))),
        shares_count=retweets,
        retweets_count=retweets,
        media_urls=[
            url for url in (first_present(m.get("media_url_https"), m.get("media_url")) for m in media) if url
        ],
        media_types=[m.get("type") or "photo" for m in media],
        thumbnail_url=first_present(*(m.get("media_url_https") for m in media)) if media else None,
        raw_data=raw,
    )
