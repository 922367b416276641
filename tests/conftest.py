"""Pytest fixtures for flowstate tests."""

import inspect
import json
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from flowstate.core.store import MemoryStorage, SessionStore
from flowstate.driver.engine import FlowDriver
from flowstate.driver.page import PageContext, RecordingHost
from flowstate.flow.parser import FlowConfigLoader
from flowstate.transport.webhook import WebhookClient

BASE_URL = "http://flow.test/"
WEBHOOK_PATH = "/hook"


# ---------------------------------------------------------------------------
# FakeWebhook: an in-process flow server built on httpx.MockTransport
# ---------------------------------------------------------------------------


class FakeWebhook:
    """
    Serves config.json and answers webhook POSTs with queued responses.

    Each queued response is either a JSON-serializable body, an
    httpx.Response, or a callable (sync or async) taking the decoded payload.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config
        self.responses: List[Any] = []
        self.requests: List[Dict[str, Any]] = []
        self.config_fetches = 0

    def queue(self, *responses: Any) -> "FakeWebhook":
        self.responses.extend(responses)
        return self

    @property
    def payloads(self) -> List[Dict[str, Any]]:
        return list(self.requests)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path.endswith("config.json"):
            self.config_fetches += 1
            if self.config is None:
                return httpx.Response(404)
            return httpx.Response(200, json=self.config)

        if request.method == "POST" and request.url.path == WEBHOOK_PATH:
            payload = json.loads(request.content)
            self.requests.append(payload)
            body = self.responses.pop(0) if self.responses else {}
            if callable(body):
                body = body(payload)
                if inspect.isawaitable(body):
                    body = await body
            if isinstance(body, httpx.Response):
                return body
            return httpx.Response(200, json=body)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def flow_config_dict() -> Dict[str, Any]:
    """A small three-page flow."""
    return {
        "route": "i-ching-journal",
        "initialization": {
            "webhook_url": WEBHOOK_PATH,
            "request_variables": {"flow": "i-ching-journal"},
            "start_page": "reading-form.html",
        },
        "steps_by_page": {
            "reading-form.html": {
                "request_variables": {"step": "reading"},
                "next_step_fallback": "summary.html",
            },
            "summary.html": {
                "request_variables": '{"step": "summary"}',
            },
        },
    }


@pytest.fixture
def webhook(flow_config_dict) -> FakeWebhook:
    return FakeWebhook(flow_config_dict)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def make_driver(webhook, store) -> Callable[..., FlowDriver]:
    """Build a driver for a page URL against the fake webhook."""
    def factory(url: str = "reading-form.html", landing: Optional[bool] = None) -> FlowDriver:
        client = WebhookClient(base_url=BASE_URL, transport=webhook.transport)
        driver = FlowDriver(
            page=PageContext.from_url(url, landing=landing),
            store=store,
            client=client,
            config_loader=FlowConfigLoader("config.json", base_url=BASE_URL, http=client.http),
            host=RecordingHost(),
        )
        return driver

    return factory


@pytest.fixture
def config_file(tmp_path, flow_config_dict):
    """Write the flow config to disk and return its path."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps(flow_config_dict))
    return path


def write_json(path, data: Union[Dict[str, Any], List[Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
