"""Default source adapter per platform.

A new platform is supported by adding its (client, normalizer) pair here;
PlatformAgent itself never changes.
"""

from typing import Dict, Optional

import httpx

from repushield.agents.crawlers.sources.base import SourceAdapter
from repushield.agents.crawlers.sources.facebook_source import FacebookClient, normalize_facebook_post
from repushield.agents.crawlers.sources.news_source import NewsClient, normalize_news_article
from repushield.agents.crawlers.sources.reddit_source import RedditClient, normalize_reddit_post
from repushield.agents.crawlers.sources.twitter_source import TwitterClient, normalize_tweet
from repushield.config.settings import Settings
from repushield.config.settings import settings as default_settings
from repushield.data_management.schemas import Platform


def build_default_adapters(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[Platform, SourceAdapter]:
    """
    Build the adapter table used by the orchestrator.

    Args:
        settings: Settings providing API keys and timeouts (module singleton if None)
        http_client: Optional shared AsyncClient for the RapidAPI sources

    Returns:
        Mapping of every supported Platform to its SourceAdapter
    """
    settings = settings or default_settings
    rapid = dict(
        api_key=settings.rapidapi_key,
        http_client=http_client,
        timeout=settings.http_timeout_seconds,
    )
    return {
        Platform.TWITTER: SourceAdapter(Platform.TWITTER, TwitterClient(**rapid), normalize_tweet),
        Platform.REDDIT: SourceAdapter(Platform.REDDIT, RedditClient(**rapid), normalize_reddit_post),
        Platform.FACEBOOK: SourceAdapter(Platform.FACEBOOK, FacebookClient(**rapid), normalize_facebook_post),
        Platform.NEWS: SourceAdapter(
            Platform.NEWS, NewsClient(api_key=settings.serper_api_key), normalize_news_article
        ),
    }
