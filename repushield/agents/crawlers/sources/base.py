"""Source adapter contract and the shared RapidAPI HTTP client.

A platform is plugged into the pipeline by supplying a SourceAdapter: a
SourceClient that searches the platform and a normalize function that maps
one platform-native item onto a NormalizedMention. PlatformAgent drives any
adapter through the same control flow, so adding a platform never requires a
new agent class.

Source clients own their wire protocol and must be tolerant of unexpected
response shapes: unknown top-level keys yield an empty list, not an error.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from repushield.config.settings import settings
from repushield.data_management.schemas import NormalizedMention, Platform
from repushield.errors import MentionValidationError, SourceClientError

RawItem = Dict[str, Any]
Normalizer = Callable[[RawItem, str], NormalizedMention]


class SourceClient(Protocol):
    """Search interface every platform client implements."""

    async def search(self, query: str, limit: int) -> List[RawItem]:
        ...


@dataclass(frozen=True)
class SourceAdapter:
    """
    Interchangeable source binding for PlatformAgent.

    Attributes:
        platform: Platform tag stamped on every normalized mention
        client: Platform search client
        normalize: Maps (raw item, configuration_id) to a NormalizedMention
    """

    platform: Platform
    client: SourceClient
    normalize: Normalizer


def first_present(*values: Any, default: Any = None) -> Any:
    """Return the first value that is neither None nor empty."""
    for value in values:
        if value is not None and value != "" and value != [] and value != {}:
            return value
    return default


def dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None on the first missing hop."""
    current = data
    for key in path:
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and isinstance(key, int) and -len(current) <= key < len(current):
            current = current[key]
        else:
            return None
    return current


def as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def ensure_item(raw: Any) -> RawItem:
    if not isinstance(raw, dict):
        raise MentionValidationError(f"Unrecognized item shape: {type(raw).__name__}")
    return raw


def as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class RapidApiClient:
    """
    Async RapidAPI client shared by the social platform sources.

    Retries transient transport failures with exponential backoff and maps
    HTTP error statuses onto SourceClientError.

    Attributes:
        host: RapidAPI host header for the concrete platform
        api_key: RapidAPI key
        http_client: httpx AsyncClient used for requests
    """

    host: str = ""

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize RapidAPI client.

        Args:
            api_key: Optional key override, falls back to settings.rapidapi_key
            http_client: Optional pre-built AsyncClient (tests inject a MockTransport)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key if api_key is not None else settings.rapidapi_key
        self.http_client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.http_timeout_seconds,
        )
        self.logger = logger.bind(component=f"source.{self.host or 'rapidapi'}")

    async def aclose(self) -> None:
        await self.http_client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        return await self.http_client.get(
            url,
            params=params,
            headers={
                "X-RapidAPI-Key": self.api_key,
                "X-RapidAPI-Host": self.host,
            },
        )

    async def request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a RapidAPI endpoint and return the decoded JSON body.

        Raises:
            SourceClientError: On transport failure, error status or non-JSON body
        """
        if not self.api_key:
            raise SourceClientError(f"RapidAPI key not configured for {self.host}")

        url = f"https://{self.host}{path}"
        try:
            response = await self._get(url, params or {})
        except httpx.TransportError as e:
            raise SourceClientError(f"API request failed: {e}") from e

        if response.status_code == 429:
            raise SourceClientError("Rate limit exceeded. Please try again later.")
        if response.status_code == 401:
            raise SourceClientError("Invalid API key")
        if response.status_code == 403:
            raise SourceClientError("Access forbidden. Check your subscription plan.")
        if response.status_code == 404:
            raise SourceClientError(f"Endpoint not found: {path}")
        if response.status_code >= 400:
            raise SourceClientError(
                f"API request failed: {response.status_code} {response.reason_phrase}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise SourceClientError(f"Invalid JSON from {self.host}: {e}") from e
