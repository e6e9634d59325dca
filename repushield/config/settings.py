"""Application settings using Pydantic BaseSettings for environment variable management."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Attributes:
        gemini_api_key: Google Gemini API key (classification and drafting)
        gemini_model: Default Gemini model to use
        max_rpm: Maximum Gemini requests per minute
        max_tpm: Maximum Gemini tokens per minute
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
        rapidapi_key: RapidAPI key shared by the social platform clients
        serper_api_key: Serper.dev key for news search and fact-check evidence
        fetch_page_size: Items requested from each source per run
        risk_batch_size: Concurrent classifier calls per risk scoring batch
        backlog_limit: Most recent mentions considered by risk scoring
        completeness_page_size: Incomplete mentions re-driven per run
        fact_check_threshold: Minimum risk score for fact-checking
        fact_check_concurrency: Optional cap on parallel fact-checks
        schedule_interval_minutes: Interval between scheduled pipeline runs
        http_timeout_seconds: Timeout applied to source client requests
        data_dir: Optional directory for JSON persistence of the stores
    """

    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key"
    )
    gemini_model: str = Field(
        default="gemini-2.0-flash",
        description="Default Gemini model identifier"
    )
    max_rpm: int = Field(
        default=60,
        description="Maximum requests per minute"
    )
    max_tpm: int = Field(
        default=1_000_000,
        description="Maximum tokens per minute"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )
    rapidapi_key: str = Field(
        default="",
        description="RapidAPI key for Twitter, Reddit and Facebook search"
    )
    serper_api_key: str = Field(
        default="",
        description="Serper.dev API key for news and evidence search"
    )
    fetch_page_size: int = Field(
        default=20,
        description="Maximum items fetched per platform per run"
    )
    risk_batch_size: int = Field(
        default=10,
        description="Concurrent classifier calls per risk scoring batch"
    )
    backlog_limit: int = Field(
        default=100,
        description="Most recent mentions scored per run"
    )
    completeness_page_size: int = Field(
        default=100,
        description="Maximum incomplete mentions re-scored per run"
    )
    fact_check_threshold: float = Field(
        default=7.0,
        description="Risk score at or above which mentions are fact-checked"
    )
    fact_check_concurrency: int | None = Field(
        default=None,
        description="Parallel fact-check cap (None = unlimited)"
    )
    schedule_interval_minutes: int = Field(
        default=10,
        description="Minutes between scheduled pipeline runs"
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Source client request timeout"
    )
    data_dir: str | None = Field(
        default=None,
        description="Directory for JSON persistence (memory-only if unset)"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance - import this throughout the application
settings = Settings()
