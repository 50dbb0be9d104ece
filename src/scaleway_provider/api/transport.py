"""HTTP transport with retries on network errors, throttling and server errors."""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import requests
from requests.adapters import BaseAdapter, HTTPAdapter

from scaleway_provider.utils.context import Context
from scaleway_provider.utils.logging import get_logger
from scaleway_provider.utils.retry import RetryStrategy

logger = get_logger(__name__)

# Adapters only receive the standard send() arguments, the context of the
# request in flight is handed over per thread instead.
_local = threading.local()


def current_context() -> Context:
    """Context of the request sent by this thread, a background one outside requests."""
    return getattr(_local, 'ctx', None) or Context.background()


@contextmanager
def request_context(ctx: Optional[Context]) -> Iterator[None]:
    """Make ctx the context of the requests sent by this thread in the block."""
    previous = getattr(_local, 'ctx', None)
    _local.ctx = ctx
    try:
        yield
    finally:
        _local.ctx = previous


class RetryableAdapter(BaseAdapter):
    """Transport adapter retrying another adapter.

    A request is retried when no response came back (connection error or
    timeout) and on 429/5xx responses. Error responses that exhaust the
    retries are returned as-is for the API client to decode. The backoff
    sleeps on the context of the request, so cancelling it stops the retries.
    """

    def __init__(self, inner: Optional[BaseAdapter] = None, strategy: Optional[RetryStrategy] = None):
        """Initialize adapter.

        Args:
            inner: Adapter actually sending requests (a plain HTTPAdapter by default)
            strategy: Retry strategy, 3 retries between 2s and 2min by default
        """
        super().__init__()
        self.inner = inner or HTTPAdapter()
        self.strategy = strategy or RetryStrategy()

    def send(self, request, **kwargs):
        ctx = current_context()
        attempt = 0
        while True:
            ctx.check()
            try:
                response = self.inner.send(request, **kwargs)
            except (requests.ConnectionError, requests.Timeout) as e:
                if not self.strategy.should_retry(e, attempt):
                    raise
                reason = f"{type(e).__name__}: {e}"
            else:
                if not self.strategy.should_retry_status(response.status_code, attempt):
                    return response
                reason = f"HTTP {response.status_code}"
                response.close()

            delay = self.strategy.get_delay(attempt)
            logger.debug(f"{request.method} {request.url} failed ({reason}), retrying in {delay:.2f}s")
            ctx.sleep(delay)
            attempt += 1

    def close(self):
        self.inner.close()


def new_retryable_session(
    inner: Optional[BaseAdapter] = None,
    strategy: Optional[RetryStrategy] = None
) -> requests.Session:
    """Create a session whose requests all go through a RetryableAdapter.

    Args:
        inner: Adapter actually sending requests (eg a cassette recorder)
        strategy: Retry strategy

    Returns:
        Configured session
    """
    session = requests.Session()
    adapter = RetryableAdapter(inner=inner, strategy=strategy)
    session.mount('https://', adapter)
    session.mount('http://', adapter)
    return session
