"""
Webhook transport.

One POST per round trip, JSON in and JSON out. There is no retry: a failed
request surfaces as RequestFailed and the user decides what to do next.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from flowstate.core.errors import RequestFailed

logger = logging.getLogger(__name__)


class WebhookClient:
    """
    Thin async wrapper around httpx for webhook calls.

    Relative webhook URLs resolve against base_url the way a browser resolves
    a link on the page: "/hook" against "http://site/flow/" is
    "http://site/hook", "hook" is "http://site/flow/hook".

    Example:
        ```python
        async with WebhookClient(base_url="http://localhost:5678") as client:
            data = await client.post_json("/webhook/flow", {"variables": {}, "form": {}})
        ```
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = httpx.URL(base_url) if base_url else None
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=dict(headers or {}),
            transport=transport,
        )
        self.request_count = 0

    async def __aenter__(self) -> "WebhookClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    def resolve(self, url: str) -> str:
        """Absolute URL for a webhook reference."""
        if self.base_url is None:
            return url
        return str(self.base_url.join(url))

    async def post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        """
        POST payload as JSON and return the decoded response body.

        Returns:
            Decoded JSON, or {} for an empty body

        Raises:
            RequestFailed: On transport errors, non-2xx status, or a non-JSON body
        """
        self.request_count += 1
        url = self.resolve(url)
        logger.debug(f"POST {url} variables={sorted(payload.get('variables', {}))}")

        try:
            response = await self._client.post(
                url,
                content=json.dumps(payload),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Webhook request to {url} failed: {e}")
            raise RequestFailed(f"Request failed: {e}") from e

        if not response.is_success:
            logger.warning(f"Webhook {url} returned status {response.status_code}")
            raise RequestFailed(
                f"Request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        text = response.text
        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except ValueError as e:
            raise RequestFailed(
                f"Invalid JSON in webhook response: {e}",
                status_code=response.status_code,
            ) from e
