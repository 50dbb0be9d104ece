"""Thin client for the Scaleway JSON API."""

from typing import Any, Dict, Iterator, List, Optional

import requests

from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ResponseError, TransientError
from scaleway_provider.utils.logging import get_logger

from .transport import request_context

logger = get_logger(__name__)

DEFAULT_API_URL = 'https://api.scaleway.com'
DEFAULT_PAGE_SIZE = 100
# Seconds to wait for the API to answer, bounded by the context deadline
DEFAULT_REQUEST_TIMEOUT = 60.0


class ScalewayClient:
    """Sends authenticated requests to the Scaleway API.

    All requests go through the shared `requests` session of the Meta, so the
    retryable transport and the test recorder see every call.
    """

    def __init__(
        self,
        session: requests.Session,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        api_url: Optional[str] = None,
        user_agent: str = '',
        default_project_id: Optional[str] = None,
        default_organization_id: Optional[str] = None,
        default_region: Optional[str] = None,
        default_zone: Optional[str] = None,
    ):
        """Initialize client.

        Args:
            session: Shared HTTP session
            access_key: API access key
            secret_key: API secret key, sent as X-Auth-Token
            api_url: Base URL of the API
            user_agent: User-Agent header value
            default_project_id: Project used when a request does not name one
            default_organization_id: Organization used when a request does not name one
            default_region: Region used when a request does not name one
            default_zone: Zone used when a request does not name one
        """
        self.session = session
        self.access_key = access_key
        self.secret_key = secret_key
        self.api_url = (api_url or DEFAULT_API_URL).rstrip('/')
        self.user_agent = user_agent
        self.default_project_id = default_project_id
        self.default_organization_id = default_organization_id
        self.default_region = default_region
        self.default_zone = default_zone

    def _headers(self) -> Dict[str, str]:
        headers = {
            'User-Agent': self.user_agent,
            'Accept': 'application/json',
        }
        if self.secret_key:
            headers['X-Auth-Token'] = self.secret_key
        return headers

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        ctx: Optional[Context] = None,
    ) -> Optional[Dict[str, Any]]:
        """Send a request and decode the JSON answer.

        Args:
            method: HTTP method
            path: Path below the API URL, eg /rdb/v1/regions/fr-par/instances
            params: Query parameters; None values are dropped
            body: JSON body
            ctx: Cancellation context bounding the request time

        Returns:
            Decoded JSON body, None for empty answers

        Raises:
            ResponseError: For 4xx/5xx answers
            TransientError: If the context deadline is already reached
            CancelledError: If the context is cancelled while retrying
        """
        if ctx is not None:
            ctx.check()
        timeout = DEFAULT_REQUEST_TIMEOUT
        if ctx is not None and ctx.deadline is not None:
            remaining = ctx.remaining()
            if remaining <= 0:
                raise TransientError(f"deadline exceeded before {method} {path}")
            timeout = min(timeout, remaining)

        if params:
            params = {key: value for key, value in params.items() if value is not None}
        if body is not None:
            body = {key: value for key, value in body.items() if value is not None}

        logger.debug(f"{method} {path}")
        with request_context(ctx):
            response = self.session.request(
                method,
                f"{self.api_url}{path}",
                params=params or None,
                json=body,
                headers=self._headers(),
                timeout=timeout,
            )

        if response.status_code >= 400:
            raise ResponseError.from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, ctx: Optional[Context] = None):
        return self.request('GET', path, params=params, ctx=ctx)

    def post(self, path: str, body: Optional[Dict[str, Any]] = None, ctx: Optional[Context] = None):
        return self.request('POST', path, body=body if body is not None else {}, ctx=ctx)

    def patch(self, path: str, body: Optional[Dict[str, Any]] = None, ctx: Optional[Context] = None):
        return self.request('PATCH', path, body=body if body is not None else {}, ctx=ctx)

    def put(self, path: str, body: Optional[Dict[str, Any]] = None, ctx: Optional[Context] = None):
        return self.request('PUT', path, body=body if body is not None else {}, ctx=ctx)

    def delete(self, path: str, params: Optional[Dict[str, Any]] = None, ctx: Optional[Context] = None):
        return self.request('DELETE', path, params=params, ctx=ctx)

    def iter_pages(
        self,
        path: str,
        key: str,
        params: Optional[Dict[str, Any]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        ctx: Optional[Context] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Iterate over every item of a paginated list endpoint.

        Args:
            path: List endpoint
            key: Name of the list in the answer (eg 'instances')
            params: Extra query parameters
            page_size: Items per page
            ctx: Cancellation context
        """
        page = 1
        seen = 0
        while True:
            query = dict(params or {})
            query.update({'page': page, 'page_size': page_size})
            answer = self.get(path, params=query, ctx=ctx) or {}
            items = answer.get(key) or []
            for item in items:
                yield item
            seen += len(items)
            total = answer.get('total_count')
            if not items or (total is not None and seen >= total) or len(items) < page_size:
                return
            page += 1

    def list_all(
        self,
        path: str,
        key: str,
        params: Optional[Dict[str, Any]] = None,
        ctx: Optional[Context] = None,
    ) -> List[Dict[str, Any]]:
        """Return every item of a paginated list endpoint."""
        return list(self.iter_pages(path, key, params=params, ctx=ctx))
