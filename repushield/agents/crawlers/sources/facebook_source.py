"""Facebook source: RapidAPI facebook-scraper3 post search and normalizer."""

from typing import Any, List, Tuple

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


def extract_posts(response: Any) -> List[RawItem]:
    if isinstance(response, list):
        return response
    if not isinstance(response, dict):
        return []

    results = response.get("results")
    if isinstance(results, list):
        return results
    if isinstance(results, dict):
        for key in ("posts", "data"):
            if isinstance(results.get(key), list):
                return results[key]

    for key in ("data", "posts"):
        if isinstance(response.get(key), list):
            return response[key]
    return []


class FacebookClient(RapidApiClient):
    """Public post search via RapidAPI."""

    host = "facebook-scraper3.p.rapidapi.com"

    async def search(self, query: str, limit: int) -> List[RawItem]:
        response = await self.request("/search/posts", {"query": query, "limit": limit})
        posts = extract_posts(response)
        if not posts:
            keys = list(response.keys()) if isinstance(response, dict) else type(response).__name__
            self.logger.warning(f"No posts found in response, keys: {keys}")
        return posts[:limit]


def _reaction_total(post: RawItem) -> int:
    reactions = post.get("reactions")
    if isinstance(reactions, dict):
        return sum(as_int(count) for count in reactions.values())
    return as_int(first_present(post.get("reactions_count"), post.get("likes"), reactions))


def _facebook_media(post: RawItem) -> Tuple[List[str], List[str]]:
    urls: List[str] = []
    types: List[str] = []

    image = post.get("image")
    image_url = image.get("uri") if isinstance(image, dict) else image
    if image_url:
        urls.append(image_url)
        types.append("image")

    video = first_present(post.get("video"), post.get("video_files"))
    video_url = None
    if isinstance(video, dict):
        video_url = first_present(video.get("video_sd_file"), video.get("video_hd_file"), video.get("url"))
    elif isinstance(video, str):
        video_url = video
    if video_url:
        urls.append(video_url)
        types.append("video")

    for item in post.get("album_preview") or []:
        url = item.get("image_file_uri") if isinstance(item, dict) else None
        if url and url not in urls:
            urls.append(url)
            types.append("image")

    return urls, types


def normalize_facebook_post(raw: RawItem, configuration_id: str) -> NormalizedMention:
    raw = ensure_item(raw)
    author = first_present(raw.get("author"), raw.get("from"), raw.get("user"), default={})
    if not isinstance(author, dict):
        author = {"name": author}

    post_id = as_str(first_present(raw.get("post_id"), raw.get("id")))
    media_urls, media_types = _facebook_media(raw)
    shares = as_int(first_present(raw.get("reshare_count"), raw.get("shares_count"), raw.get("shares")))

    return NormalizedMention(
        platform=Platform.FACEBOOK,
        post_id=post_id,
        configuration_id=configuration_id,
        content=as_str(first_present(raw.get("message"), raw.get("message_rich"), raw.get("text"))),
        created_at=first_present(raw.get("timestamp"), raw.get("created_time"), raw.get("created_at")),
        post_url=as_str(first_present(raw.get("url"), f"https://facebook.com/{post_id}")),
        author_id=as_str(author.get("id")) or None,
        author_username=as_str(first_present(author.get("username"), author.get("url"))) or None,
        author_name=as_str(author.get("name")) or None,
        author_profile_image=first_present(author.get("profile_picture_url"), dig(author, "picture", "url")),
        likes_count=_reaction_total(raw),
        comments_count=as_int(first_present(raw.get("comments_count"), raw.get("comments"))),
        shares_count=shares,
        media_urls=media_urls,
        media_types=media_types,
        thumbnail_url=media_urls[0] if media_urls else None,
        raw_data=raw,
    )
