"""
StepChain HTTP Step

A step that performs one HTTP request with httpx on the running event loop
and resolves with the decoded response body. Non-2xx responses and transport
failures reject the step (httpx.HTTPStatusError / httpx.TransportError), so
they flow into the chain's error handler like any other failure.

Usage:
    chain = (
        Chain.create({"user_id": 7}, scheduler=AsyncioScheduler())
        .then(HttpStep(lambda p: f"https://api.example.com/users/{p['user_id']}"))
        .then(returning(lambda user: user["email"]))
    )
    await chain.scheduler.run(chain)
"""

from collections.abc import Callable
from typing import Any

import httpx

from stepchain.config import get_config
from stepchain.core.units import awaiting
from stepchain.utils.logging import get_logger

logger = get_logger(__name__)

__all__ = ["HttpStep"]

UrlSpec = str | Callable[[Any], str]


class HttpStep(awaiting):
    """
    HTTP request step.

    Args:
        url: URL string, or a callable building the URL from the payload
        method: HTTP method
        json_body: Request body (or callable of the payload) sent as JSON
        params: Query parameters
        headers: Extra request headers
        timeout: Request timeout in seconds (default: STEPCHAIN_HTTP_TIMEOUT)
        transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        name: Step name for logs and spans
    """

    def __init__(
        self,
        url: UrlSpec,
        method: str = "GET",
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        name: str | None = None,
    ):
        self.url = url
        self.method = method.upper()
        self.json_body = json_body
        self.params = params or {}
        self.headers = headers or {}
        self.timeout = timeout if timeout is not None else get_config().http_timeout
        self.transport = transport

        default_name = f"http_{self.method.lower()}"
        if isinstance(url, str):
            default_name = f"{self.method} {url}"
        super().__init__(self._request, name=name or default_name)

    def _build_url(self, payload: Any) -> str:
        return self.url(payload) if callable(self.url) else self.url

    def _build_body(self, payload: Any) -> Any:
        return self.json_body(payload) if callable(self.json_body) else self.json_body

    async def _request(self, payload: Any) -> Any:
        url = self._build_url(payload)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            transport=self.transport,
        ) as client:
            response = await client.request(
                self.method,
                url,
                params=self.params or None,
                json=self._build_body(payload),
            )
            logger.debug(
                "HTTP step response",
                step=self.name,
                method=self.method,
                url=str(response.request.url),
                status_code=response.status_code,
            )
            response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            return response.json()
        return response.text
