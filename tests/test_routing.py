"""Tests for route resolution."""

import httpx
import pytest

from conftest import write_json
from flowstate.core.errors import ConfigLoadError
from flowstate.routing import RouteMismatch, RouteResolver, resolve_flow_path, route_segment


@pytest.fixture
def site(tmp_path):
    """A site root with a route table and one flow."""
    write_json(tmp_path / "routes.json", {"routes": {"i-ching-journal": "flows/I Ching Journal/config.json"}})
    write_json(
        tmp_path / "flows" / "I Ching Journal" / "config.json",
        {"route": "i-ching-journal", "initialization": {"webhook_url": "/hook"}},
    )
    return tmp_path


def test_route_segment():
    assert route_segment("/i-ching-journal/extra") == "i-ching-journal"
    assert route_segment("/") == ""


def test_resolve_flow_path():
    assert resolve_flow_path("flows/I Ching Journal/config.json") == "/flows/I-Ching-Journal/index.html"
    assert resolve_flow_path("/flows/a/start.html") == "/flows/a/start.html"
    assert resolve_flow_path(None) is None


class TestRouteResolver:
    async def test_resolve_from_table(self, site):
        resolver = RouteResolver(root=site)
        assert await resolver.resolve("/i-ching-journal") == "/flows/I-Ching-Journal/index.html"

    async def test_unknown_route(self, site):
        assert await RouteResolver(root=site).resolve("/dreams") is None

    async def test_root_path(self, site):
        assert await RouteResolver(root=site).resolve("/") is None

    async def test_missing_table(self, tmp_path):
        resolver = RouteResolver(root=tmp_path)
        assert await resolver.load_routes() == {}
        assert await resolver.resolve("/anything") is None

    async def test_mismatch(self, site):
        resolver = RouteResolver(root=site)
        with pytest.raises(RouteMismatch) as exc_info:
            await resolver.resolve("/other", config_path="flows/I Ching Journal/config.json")
        assert str(exc_info.value) == 'Route mismatch: expected "i-ching-journal" but opened "other".'

    async def test_missing_config(self, tmp_path):
        write_json(tmp_path / "routes.json", {"routes": {"gone": "flows/gone/config.json"}})
        with pytest.raises(ConfigLoadError):
            await RouteResolver(root=tmp_path).resolve("/gone")

    async def test_over_http(self):
        def handler(request):
            if request.url.path == "/routes.json":
                return httpx.Response(200, json={"routes": {"journal": "flows/journal/config.json"}})
            if request.url.path == "/flows/journal/config.json":
                return httpx.Response(200, json={"initialization": {"webhook_url": "/hook"}})
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            resolver = RouteResolver(base_url="http://site.test/", http=http)
            assert await resolver.resolve("/journal") == "/flows/journal/index.html"
