"""Token bucket rate limiting for Gemini classification and drafting calls.

Risk scoring already bounds in-flight calls by batch size; the limiter keeps
the per-minute request and token budgets of the Gemini tier on top of that.
"""

import asyncio
import threading
import time
from typing import Optional

from loguru import logger

from repushield.config.settings import settings


class TokenBucket:
    """
    Continuously refilling token bucket.

    Attributes:
        capacity: Maximum number of tokens the bucket can hold
        refill_rate: Tokens added per second
        tokens: Current number of tokens available
        last_refill: Monotonic timestamp of last refill
    """

    def __init__(self, capacity: int, refill_rate: float):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self.last_refill = time.monotonic()
        self.lock = threading.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_refill) * self.refill_rate)
        self.last_refill = now

    def available(self, tokens: float) -> bool:
        with self.lock:
            self._refill()
            return self.tokens >= tokens

    def consume(self, tokens: float) -> None:
        with self.lock:
            self._refill()
            self.tokens -= tokens

    def seconds_until(self, tokens: float) -> float:
        """Time until `tokens` will be available (0 if they already are)."""
        with self.lock:
            self._refill()
            missing = tokens - self.tokens
        if missing <= 0 or self.refill_rate <= 0:
            return 0.0
        return missing / self.refill_rate


class RateLimiter:
    """
    Requests-per-minute and tokens-per-minute limiter.

    Attributes:
        rpm_bucket: Bucket for request rate
        tpm_bucket: Bucket for token rate
    """

    def __init__(self, max_rpm: Optional[int] = None, max_tpm: Optional[int] = None):
        """
        Args:
            max_rpm: Maximum requests per minute (defaults to settings)
            max_tpm: Maximum tokens per minute (defaults to settings)
        """
        rpm = max_rpm or settings.max_rpm
        tpm = max_tpm or settings.max_tpm
        self.rpm_bucket = TokenBucket(capacity=rpm, refill_rate=rpm / 60.0)
        self.tpm_bucket = TokenBucket(capacity=tpm, refill_rate=tpm / 60.0)
        self.logger = logger.bind(component="RateLimiter")

        self.logger.debug(f"RateLimiter initialized: {rpm} RPM, {tpm:,} TPM")

    def can_proceed(self, token_count: int) -> bool:
        """
        Consume one request and token_count tokens if both budgets allow it.

        Returns:
            True if the request may proceed, False if throttled (nothing consumed)
        """
        token_count = min(token_count, self.tpm_bucket.capacity)
        if not self.rpm_bucket.available(1):
            self.logger.warning("RPM limit reached, request throttled")
            return False
        if not self.tpm_bucket.available(token_count):
            self.logger.warning(f"TPM limit reached, request throttled (need {token_count})")
            return False

        self.rpm_bucket.consume(1)
        self.tpm_bucket.consume(token_count)
        return True

    async def acquire(self, token_count: int = 1) -> None:
        """Wait until the request fits both budgets, then consume it."""
        while not self.can_proceed(token_count):
            delay = max(
                self.rpm_bucket.seconds_until(1),
                self.tpm_bucket.seconds_until(min(token_count, self.tpm_bucket.capacity)),
                0.05,
            )
            await asyncio.sleep(delay)


def estimate_tokens(text: str) -> int:
    """Rough token estimate (four characters per token)."""
    return max(1, len(text) // 4)
