"""Shared tenacity retry policy for outbound HTTP gateways.

3 attempts, exponential backoff 1-10s, only for transient failures:
transport errors (connect, read, timeout), 429 and 5xx responses.
Auth failures and other 4xx responses are surfaced immediately.
"""

from __future__ import annotations

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential


def is_transient(exc: BaseException) -> bool:
    """Return True for failures worth retrying."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


transient_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(is_transient),
    reraise=True,
)
