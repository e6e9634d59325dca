"""Platform agent: fetch, normalize and store mentions from one source.

Every platform runs through the same control flow; only the SourceAdapter
(search client + normalizer) differs:
1. No-op with a skipped result if the platform is disabled in the configuration
2. Build the search query from the configuration's FilterCriteria
3. Search the source for up to page_size items; a cancel abandons the search
4. Normalize and store each item; an item that fails is recorded as an error
   and the remaining items continue
5. A client/network failure becomes one aggregate error and whatever was
   accumulated so far is returned
"""

from typing import TYPE_CHECKING, Any, Optional

from repushield.agents.base_agent import BaseAgent
from repushield.agents.crawlers.filter_engine import FilterEngine
from repushield.agents.crawlers.sources.base import SourceAdapter
from repushield.config.settings import settings
from repushield.data_management.schemas import AgentResult, Configuration, FilterCriteria
from repushield.errors import PipelineCancelledError
from repushield.orchestration.run_context import RunContext, run_cancellable

if TYPE_CHECKING:
    from repushield.data_management.post_store import PostStore


def _item_label(raw: Any) -> str:
    if isinstance(raw, dict):
        for key in ("id", "id_str", "rest_id", "post_id", "link"):
            if raw.get(key):
                return str(raw[key])
        inner = raw.get("data")
        if isinstance(inner, dict) and inner.get("id"):
            return str(inner["id"])
    return "<unknown>"


class PlatformAgent(BaseAgent):
    """
    Fetch-and-store agent for one platform, driven by a SourceAdapter.

    Attributes:
        adapter: Source client and normalizer for the platform
        configuration: Monitoring configuration being served
        post_store: Dedup-aware mention store
        page_size: Maximum items requested from the source
        apply_filter: Drop items that fail the ontology filter before storing
        filter_engine: FilterEngine used for query building and filtering
    """

    def __init__(
        self,
        adapter: SourceAdapter,
        configuration: Configuration,
        post_store: "PostStore",
        page_size: Optional[int] = None,
        apply_filter: bool = False,
        filter_engine: Optional[FilterEngine] = None,
    ):
        super().__init__(
            name=adapter.platform.value,
            description=f"Fetches {adapter.platform.value} mentions of {configuration.entity_name}",
        )
        self.adapter = adapter
        self.configuration = configuration
        self.post_store = post_store
        self.page_size = page_size if page_size is not None else settings.fetch_page_size
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.apply_filter = apply_filter
        self.filter_engine = filter_engine or FilterEngine()

    @property
    def platform(self) -> str:
        return self.adapter.platform.value

    def get_capabilities(self) -> list[str]:
        return [f"{self.platform}_search", "mention_normalization", "mention_storage"]

    def _is_relevant(self, raw: Any, criteria: FilterCriteria) -> bool:
        normalized = self.adapter.normalize(raw, self.configuration.id)
        text = " ".join(part for part in (normalized.title, normalized.content) if part)
        if self.filter_engine.matches(
            text, normalized.author_username, normalized.author_name, criteria
        ):
            return True
        self.filter_engine.log_rejection(text, criteria)
        return False

    async def execute(self, context: Optional[RunContext] = None) -> AgentResult:
        """
        Run one fetch pass for this platform.

        Args:
            context: Run context carrying the cancellation signal

        Returns:
            AgentResult labelled with the platform name. Never raises for
            item or client failures.
        """
        result = AgentResult(platform=self.platform)
        log = self.logger.bind(run_id=context.run_id) if context else self.logger

        if not self.configuration.platform_config.is_enabled(self.adapter.platform):
            log.debug(f"{self.platform} not enabled, skipping")
            return result.skip()
        if context and context.cancelled:
            log.info(f"Run cancelled before {self.platform} fetch")
            return result.skip()

        criteria = FilterCriteria.from_configuration(self.configuration)
        query = self.filter_engine.build_query(criteria)

        try:
            log.info(f"Searching {self.platform}", query=query, limit=self.page_size)
            items = await run_cancellable(self.adapter.client.search(query, self.page_size), context)
            result.posts_fetched = len(items)

            for raw in items:
                if context and context.cancelled:
                    log.info(f"Run cancelled, stopping {self.platform} storage")
                    break
                try:
                    if self.apply_filter and not self._is_relevant(raw, criteria):
                        continue
                    normalized = self.adapter.normalize(raw, self.configuration.id)
                    # None means a duplicate, which still counts as stored
                    await self.post_store.store(normalized)
                    result.posts_stored += 1
                except Exception as e:
                    log.warning(f"Error storing item from {self.platform}: {e}")
                    result.record_error(f"Error storing post {_item_label(raw)}: {e}")

        except PipelineCancelledError:
            log.info(f"Run cancelled during {self.platform} search")
        except Exception as e:
            log.error(f"{self.platform} agent error: {e}")
            result.record_error(f"{self.platform.capitalize()} agent error: {e}")

        result.finish()
        log.info(
            f"{self.platform} fetch finished",
            fetched=result.posts_fetched,
            stored=result.posts_stored,
            errors=len(result.errors),
            status=result.status.value,
        )
        return result
