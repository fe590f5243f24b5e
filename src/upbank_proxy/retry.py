"""
Rate-limit retry policy for upstream calls.
"""

import math
from dataclasses import dataclass
from typing import Optional

import httpx


@dataclass(frozen=True)
class RateLimitRetryPolicy:
    """
    How long to wait after an HTTP 429 and how many times to try a page.

    max_attempts counts every request for the page, including the first one.
    None means retry forever.
    """

    cooldown_seconds: float = 30.0
    max_attempts: Optional[int] = 10

    def should_retry(self, attempt: int) -> bool:
        if self.max_attempts is None:
            return True
        return attempt < self.max_attempts

    def delay_for(self, response: httpx.Response) -> float:
        """
        Seconds to wait before retrying. A numeric Retry-After header wins
        over the fixed cooldown.
        """
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                seconds = float(retry_after)
            except ValueError:
                # HTTP-date form; fall back to the fixed cooldown
                seconds = None
            if seconds is not None and math.isfinite(seconds):
                return max(0.0, seconds)
        return self.cooldown_seconds
