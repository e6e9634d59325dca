"""News source: Serper news search and article normalizer.

Articles are keyed by their link, so the same story syndicated under one URL
is stored once.
"""

from typing import Any, List, Optional

from langchain_community.utilities import GoogleSerperAPIWrapper
from loguru import logger

from repushield.agents.crawlers.sources.base import (
    RawItem,
    as_str,
    ensure_item,
    first_present,
)
from repushield.config.settings import settings
from repushield.data_management.schemas import NormalizedMention, Platform
from repushield.errors import SourceClientError


class NewsClient:
    """
    News search through Serper's Google News endpoint.

    Attributes:
        api_key: Serper API key
        wrapper: GoogleSerperAPIWrapper, built lazily and rebuilt when the
            requested result count changes; an injected wrapper is used as is
    """

    def __init__(self, api_key: Optional[str] = None, wrapper: Any = None):
        self.api_key = api_key if api_key is not None else settings.serper_api_key
        self.wrapper = wrapper
        self._wrapper_k: Optional[int] = None
        self.logger = logger.bind(component="source.news")

    def _get_wrapper(self, limit: int) -> Any:
        # _wrapper_k is None only for an injected wrapper
        if self.wrapper is not None and self._wrapper_k in (None, limit):
            return self.wrapper
        if not self.api_key:
            raise SourceClientError("Serper API key not configured for news search")
        self.wrapper = GoogleSerperAPIWrapper(
            serper_api_key=self.api_key,
            k=limit,
            type="news",
        )
        self._wrapper_k = limit
        return self.wrapper

    async def search(self, query: str, limit: int) -> List[RawItem]:
        wrapper = self._get_wrapper(limit)
        try:
            response = await wrapper.aresults(query)
        except Exception as e:
            raise SourceClientError(f"News search failed: {e}") from e

        articles = response.get("news") if isinstance(response, dict) else None
        if not isinstance(articles, list):
            keys = list(response.keys()) if isinstance(response, dict) else type(response).__name__
            self.logger.warning(f"No news found in response, keys: {keys}")
            return []
        return articles[:limit]


def normalize_news_article(raw: RawItem, configuration_id: str) -> NormalizedMention:
    raw = ensure_item(raw)
    source = raw.get("source")
    source_name = source.get("name") if isinstance(source, dict) else source
    link = as_str(first_present(raw.get("link"), raw.get("url")))
    thumbnail = first_present(raw.get("imageUrl"), raw.get("thumbnail"), raw.get("image"))

    return NormalizedMention(
        platform=Platform.NEWS,
        post_id=link,
        configuration_id=configuration_id,
        content=as_str(first_present(raw.get("snippet"), raw.get("description"))),
        title=as_str(raw.get("title")) or None,
        created_at=first_present(raw.get("date_parsed"), raw.get("publishedAt"), raw.get("date")),
        post_url=link,
        author_id=as_str(source_name) or None,
        author_username=as_str(source_name) or None,
        author_name=as_str(first_present(raw.get("author"), source_name)) or None,
        media_urls=[thumbnail] if thumbnail else [],
        media_types=["image"] if thumbnail else [],
        thumbnail_url=thumbnail,
        raw_data=raw,
    )
