"""
Route resolution.

Maps a short route (the first path segment, e.g. "/i-ching-journal") to the
entry page of a flow. The route table lives in routes.json:

    {"routes": {"i-ching-journal": "flows/I Ching Journal/config.json"}}

A flow config may declare the route it expects; opening it under a
different route is an error.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import httpx

from flowstate.core.errors import ConfigLoadError, FlowError
from flowstate.flow.parser import FlowConfigLoader, is_url

logger = logging.getLogger(__name__)

ROUTES_PATH = "routes.json"


class RouteMismatch(FlowError):
    """The flow config declares a different route than the one opened."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f'Route mismatch: expected "{expected}" but opened "{actual}".')
        self.expected = expected
        self.actual = actual


def route_segment(path: str) -> str:
    """First non-empty path segment, or "" for the root."""
    parts = [p for p in path.split("/") if p]
    return parts[0] if parts else ""


def resolve_flow_path(config_path: Optional[str]) -> Optional[str]:
    """
    Turn a config path into the flow's entry page path.

    "flows/My Flow/config.json" -> "/flows/My-Flow/index.html"
    """
    if not config_path:
        return None
    normalized = config_path if config_path.startswith("/") else f"/{config_path}"
    if normalized.endswith("config.json"):
        normalized = normalized[: -len("config.json")] + "index.html"
    return normalized.replace(" ", "-")


class RouteResolver:
    """
    Resolve routes against a route table and flow configs.

    Sources are file paths (relative to root) or URLs (relative to base_url).
    """

    def __init__(
        self,
        root: Union[str, Path, None] = None,
        base_url: Optional[str] = None,
        routes_path: str = ROUTES_PATH,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.root = root
        self.base_url = base_url
        self.routes_path = routes_path
        self._http = http

    def _origin(self) -> Optional[str]:
        return self.base_url or (str(self.root) if self.root is not None else None)

    async def load_routes(self) -> Dict[str, str]:
        """Load the route table; a missing or unreadable table means no routes."""
        origin = self._origin()
        location = self.routes_path
        if origin and not is_url(location):
            location = (
                str(httpx.URL(origin).join(location))
                if is_url(origin)
                else str(Path(origin) / location.lstrip("/"))
            )

        try:
            if is_url(location):
                if self._http is not None:
                    response = await self._http.get(location, headers={"Cache-Control": "no-store"})
                else:
                    async with httpx.AsyncClient() as client:
                        response = await client.get(location, headers={"Cache-Control": "no-store"})
                if not response.is_success:
                    return {}
                data = response.json()
            else:
                data = json.loads(Path(location).read_text(encoding="utf-8"))
        except (OSError, ValueError, httpx.HTTPError) as e:
            logger.debug(f"No route table at {location}: {e}")
            return {}

        routes = data.get("routes") if isinstance(data, dict) else None
        return dict(routes) if isinstance(routes, dict) else {}

    async def resolve(self, path: str, config_path: Optional[str] = None) -> Optional[str]:
        """
        Resolve the entry page for a route.

        Args:
            path: The opened path, e.g. "/i-ching-journal"
            config_path: Explicit config path; skips the route table

        Returns:
            Entry page path, or None when no route applies

        Raises:
            ConfigLoadError: If the flow config cannot be loaded
            RouteMismatch: If the config declares a different route
        """
        actual = route_segment(path)
        if not config_path:
            if not actual:
                return None
            config_path = (await self.load_routes()).get(actual)
            if not config_path:
                return None

        config = await FlowConfigLoader(config_path, base_url=self._origin(), http=self._http).load()
        if config.route and config.route != actual:
            raise RouteMismatch(config.route, actual)

        flow_path = resolve_flow_path(config_path)
        if not flow_path:
            raise ConfigLoadError("Unable to resolve flow path.")
        logger.info(f"Route '{actual}' resolved to {flow_path}")
        return flow_path
