"""Platform source adapters: search clients and normalizers."""

from repushield.agents.crawlers.sources.base import (
    RapidApiClient,
    SourceAdapter,
    SourceClient,
)
from repushield.agents.crawlers.sources.facebook_source import FacebookClient, normalize_facebook_post
from repushield.agents.crawlers.sources.news_source import NewsClient, normalize_news_article
from repushield.agents.crawlers.sources.reddit_source import RedditClient, normalize_reddit_post
from repushield.agents.crawlers.sources.registry import build_default_adapters
from repushield.agents.crawlers.sources.twitter_source import TwitterClient, normalize_tweet

__all__ = [
    "RapidApiClient",
    "SourceAdapter",
    "SourceClient",
    "TwitterClient",
    "RedditClient",
    "FacebookClient",
    "NewsClient",
    "normalize_tweet",
    "normalize_reddit_post",
    "normalize_facebook_post",
    "normalize_news_article",
    "build_default_adapters",
]
