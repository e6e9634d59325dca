"""Reddit source: RapidAPI reddit34 search client and post normalizer.

The subreddit is recorded as the mention's author; the individual poster is
kept in raw_data only.
"""

import re
from typing import Any, List, Optional, Tuple

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
from repushield.errors import SourceClientError

IMAGE_URL = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)


def extract_posts(response: Any) -> List[RawItem]:
    """Locate the post list inside a search response; unknown shapes yield []."""
    if isinstance(response, list):
        return response
    if not isinstance(response, dict):
        return []

    data = response.get("data")
    if isinstance(data, dict):
        # Array-like object keyed "0", "1", ...
        if data and all(str(key).isdigit() for key in data):
            return list(data.values())
        for key in ("posts", "children"):
            if isinstance(data.get(key), list):
                return data[key]
    if isinstance(data, list):
        return data

    for key in ("children", "posts", "results"):
        if isinstance(response.get(key), list):
            return response[key]
    return []


class RedditClient(RapidApiClient):
    """Post search via RapidAPI."""

    host = "reddit34.p.rapidapi.com"

    def __init__(self, *args, sort: str = "top", **kwargs):
        super().__init__(*args, **kwargs)
        self.sort = sort

    async def search(self, query: str, limit: int) -> List[RawItem]:
        params = {"query": query, "sort": self.sort}
        if self.sort == "top":
            params["time"] = "day"
        response = await self.request("/getSearchPosts", params)

        if isinstance(response, dict) and response.get("success") is False:
            detail = response.get("data")
            if isinstance(detail, str) and "not found" in detail:
                return []
            raise SourceClientError(f"Reddit API error: {detail}")

        posts = extract_posts(response)
        if not posts:
            keys = list(response.keys()) if isinstance(response, dict) else type(response).__name__
            self.logger.warning(f"No posts found in response, keys: {keys}")
        return posts[:limit]


def _unwrap(raw: RawItem) -> RawItem:
    """Listing children arrive as {kind: "t3", data: {...}}."""
    inner = raw.get("data")
    return inner if isinstance(inner, dict) else raw


def _reddit_media(post: RawItem) -> Tuple[List[str], List[str]]:
    video = dig(post, "media", "reddit_video")
    if post.get("is_video") and isinstance(video, dict):
        url = first_present(video.get("fallback_url"), video.get("scrubber_media_url"))
        if url:
            return [url], ["video"]

    preview_url = dig(post, "preview", "images", 0, "source", "url")
    if preview_url:
        return [preview_url.replace("&amp;", "&")], ["image"]

    url = as_str(post.get("url"))
    if url and IMAGE_URL.search(url):
        return [url], ["image"]
    return [], []


def _permalink(post: RawItem) -> str:
    path = as_str(first_present(post.get("permalink"), post.get("url")))
    if path.startswith("http"):
        return path
    return f"https://reddit.com{'' if path.startswith('/') else '/'}{path}"


def normalize_reddit_post(raw: RawItem, configuration_id: str) -> NormalizedMention:
    post = _unwrap(ensure_item(raw))
    subreddit = as_str(post.get("subreddit"))
    author: Optional[str] = first_present(subreddit, post.get("author"))
    media_urls, media_types = _reddit_media(post)
    score = as_int(post.get("score"))
    thumbnail = post.get("thumbnail")

    return NormalizedMention(
        platform=Platform.REDDIT,
        post_id=as_str(post.get("id")),
        configuration_id=configuration_id,
        content=as_str(post.get("selftext")),
        title=as_str(post.get("title")) or None,
        created_at=post.get("created_utc"),
        post_url=_permalink(post),
        author_id=author,
        author_username=author,
        author_name=first_present(
            post.get("subreddit_name_prefixed"),
            f"r/{subreddit}" if subreddit else None,
            post.get("author"),
        ),
        author_followers=as_int(post.get("subreddit_subscribers")) or None,
        likes_count=score,
        comments_count=as_int(post.get("num_comments")),
        shares_count=0,
        upvotes_count=score,
        media_urls=media_urls,
        media_types=media_types,
        thumbnail_url=thumbnail if thumbnail and thumbnail not in ("self", "default", "nsfw") else None,
        raw_data=raw,
    )
