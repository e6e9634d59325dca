"""Evidence search for fact-checking using the Serper API.

Converts organic search hits into EvidenceSource objects (title, url,
snippet). A missing SERPER_API_KEY puts the executor in mock mode, which
returns no evidence so development and tests run without API access.
Transport and API failures propagate; the fact-checking stage treats them as
"no evidence".

Usage:
    from repushield.agents.sifters.verification.search_executor import SearchExecutor

    executor = SearchExecutor()
    sources = await executor.search('fact check: "..." about Acme')
"""

from typing import Any, Optional

import structlog
from langchain_community.utilities import GoogleSerperAPIWrapper

from repushield.config.settings import settings
from repushield.data_management.schemas import EvidenceSource
from repushield.llm.rate_limiter import RateLimiter

MAX_EVIDENCE_SOURCES = 5


class SearchExecutor:
    """Web search collaborator: search(query) -> list of EvidenceSource."""

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        api_key: Optional[str] = None,
        max_results: int = MAX_EVIDENCE_SOURCES,
        search_wrapper: Any = None,
    ) -> None:
        """Initialize SearchExecutor.

        Args:
            rate_limiter: Optional RateLimiter; searches wait for a slot.
            api_key: Serper key. Falls back to settings.serper_api_key.
            max_results: Maximum evidence sources per query.
            search_wrapper: Pre-built wrapper exposing aresults(query).
        """
        self._api_key = api_key if api_key is not None else settings.serper_api_key
        self._rate_limiter = rate_limiter
        self._max_results = max_results
        self._search_wrapper = search_wrapper
        self._logger = structlog.get_logger().bind(component="SearchExecutor")

        if not self._api_key and search_wrapper is None:
            self._logger.warning(
                "serper_api_key_not_set",
                msg="SERPER_API_KEY not set, using mock search mode",
            )

    def _get_search_wrapper(self) -> Any:
        """Lazy-init search wrapper."""
        if self._search_wrapper is None and self._api_key:
            self._search_wrapper = GoogleSerperAPIWrapper(
                serper_api_key=self._api_key,
                k=self._max_results,
                type="search",
            )
        return self._search_wrapper

    async def search(self, query: str) -> list[EvidenceSource]:
        """Run one query and return up to max_results distinct sources."""
        wrapper = self._get_search_wrapper()
        if wrapper is None:
            self._logger.debug("mock_search", query=query[:50])
            return []

        if self._rate_limiter:
            await self._rate_limiter.acquire(1)

        raw_results = await wrapper.aresults(query)
        organic = raw_results.get("organic", []) if isinstance(raw_results, dict) else []

        sources: list[EvidenceSource] = []
        seen_urls: set[str] = set()
        for result in organic:
            if len(sources) >= self._max_results:
                break
            url = result.get("link", "")
            if url and url in seen_urls:
                continue
            seen_urls.add(url)
            sources.append(
                EvidenceSource(
                    title=result.get("title", "") or "",
                    url=url or "",
                    snippet=result.get("snippet", "") or "",
                )
            )

        self._logger.info("search_executed", query=query[:80], results=len(sources))
        return sources
