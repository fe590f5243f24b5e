"""
Exception types raised by the retrieval pipeline.
"""

from typing import Optional


class UpBankProxyError(Exception):
    """Base class for every error the proxy raises on purpose."""


class UpstreamError(UpBankProxyError):
    """
    The bank API answered with a non-429 failure, could not be reached, or
    returned a body that is not JSON.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class RateLimitExceeded(UpstreamError):
    """The rate-limit retry policy gave up on a page."""

    def __init__(self, url: str, attempts: int):
        super().__init__(f"rate limited {attempts} times on {url}", status_code=429, url=url)
        self.attempts = attempts


class TransformError(UpBankProxyError):
    """A raw transaction could not be flattened (e.g. malformed amount)."""

    def __init__(self, message: str, transaction_id: Optional[str] = None):
        super().__init__(message)
        self.transaction_id = transaction_id


class LocalCacheMiss(UpBankProxyError):
    """The offline transactions file is absent, unreadable or malformed."""
