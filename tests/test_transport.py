"""Tests for the retryable transport and the API client timeouts."""

import io
import threading
import time

import pytest
import requests
from requests.adapters import BaseAdapter

from scaleway_provider.api import ScalewayClient, new_retryable_session
from scaleway_provider.api.client import DEFAULT_REQUEST_TIMEOUT
from scaleway_provider.api.transport import current_context, request_context
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import CancelledError, ResponseError
from scaleway_provider.utils.retry import RetryStrategy

API = "https://api.scaleway.com"


class StatusAdapter(BaseAdapter):
    """Network stand-in answering with the given statuses, the last one repeated."""

    def __init__(self, *statuses):
        super().__init__()
        self.statuses = list(statuses)
        self.calls = []

    def send(self, request, **kwargs):
        self.calls.append(kwargs)
        response = requests.Response()
        response.status_code = self.statuses[min(len(self.calls), len(self.statuses)) - 1]
        response._content = b"{}"
        response.raw = io.BytesIO(b"{}")
        response.request = request
        response.url = request.url
        return response

    def close(self):
        pass


def new_client(inner, strategy=None):
    return ScalewayClient(new_retryable_session(inner=inner, strategy=strategy), secret_key="secret")


class TestRetryableAdapter:
    def test_server_errors_are_retried(self, ctx):
        inner = StatusAdapter(503, 429, 200)
        client = new_client(inner, RetryStrategy(base_delay=0, max_delay=0))

        assert client.get("/rdb/v1/regions/fr-par/instances", ctx=ctx) == {}
        assert len(inner.calls) == 3

    def test_exhausted_retries_return_the_error(self, ctx):
        inner = StatusAdapter(503)
        client = new_client(inner, RetryStrategy(max_retries=2, base_delay=0, max_delay=0))

        with pytest.raises(ResponseError) as e:
            client.get("/rdb/v1/regions/fr-par/instances", ctx=ctx)

        assert e.value.status_code == 503
        assert len(inner.calls) == 3

    def test_cancel_interrupts_the_backoff(self):
        ctx = Context.background()
        inner = StatusAdapter(503)
        client = new_client(inner, RetryStrategy(base_delay=30, max_delay=30, jitter=False))
        threading.Timer(0.05, ctx.cancel).start()

        start = time.monotonic()
        with pytest.raises(CancelledError):
            client.get("/rdb/v1/regions/fr-par/instances", ctx=ctx)

        assert time.monotonic() - start < 5
        assert len(inner.calls) == 1

    def test_context_is_reset_after_the_request(self):
        ctx = Context.background()
        with request_context(ctx):
            assert current_context() is ctx
        assert current_context() is not ctx
        assert not current_context().cancelled


class TestRequestTimeout:
    def test_default_timeout(self):
        inner = StatusAdapter(200)
        new_client(inner).get("/account/v3/projects")

        assert inner.calls[0]["timeout"] == DEFAULT_REQUEST_TIMEOUT

    def test_timeout_is_bounded_by_the_deadline(self, ctx):
        inner = StatusAdapter(200)
        new_client(inner).get("/account/v3/projects", ctx=ctx.with_timeout(5))

        assert 0 < inner.calls[0]["timeout"] <= 5
