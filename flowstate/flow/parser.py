"""
Flow configuration loader.

Reads flow configuration documents from files (JSON or YAML) or over HTTP.
Documents are read fresh on every load; nothing is cached.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import httpx
import yaml
from pydantic import ValidationError

from flowstate.core.errors import ConfigLoadError
from flowstate.flow.schema import FlowConfig

logger = logging.getLogger(__name__)


def is_url(source: Union[str, Path]) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


class FlowConfigParser:
    """
    Parse and validate flow configuration documents.

    Example:
        ```python
        config = FlowConfigParser.parse_file("flows/journal/config.json")

        config = FlowConfigParser.parse_string('''
        initialization:
          webhook_url: /hook
        ''', format="yaml")
        ```
    """

    @staticmethod
    def parse_string(content: str, format: str = "json") -> FlowConfig:
        """
        Parse a flow config from string content.

        Raises:
            ConfigLoadError: If the content cannot be decoded or validated
        """
        try:
            if format == "json":
                data = json.loads(content)
            elif format == "yaml":
                data = yaml.safe_load(content)
            else:
                raise ConfigLoadError(f"Unsupported config format: {format}")
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigLoadError(f"Unable to parse flow config: {e}") from e

        return FlowConfigParser.parse_dict(data)

    @staticmethod
    def parse_dict(data: Any) -> FlowConfig:
        if not isinstance(data, dict):
            raise ConfigLoadError("Flow config must be an object")
        try:
            return FlowConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigLoadError(f"Invalid flow config: {e}") from e

    @staticmethod
    def parse_file(path: Union[str, Path]) -> FlowConfig:
        """
        Parse a flow config file; format is chosen by suffix.

        Raises:
            ConfigLoadError: If the file is missing, unreadable or invalid
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigLoadError(f"Unable to load {path.name}") from e

        fmt = "yaml" if path.suffix in (".yaml", ".yml") else "json"
        return FlowConfigParser.parse_string(content, format=fmt)

    @staticmethod
    def validate_file(path: Union[str, Path]) -> tuple[bool, str]:
        """
        Validate a config file.

        Returns:
            Tuple of (is_valid, message)
        """
        try:
            config = FlowConfigParser.parse_file(path)
        except ConfigLoadError as e:
            return False, str(e)
        if not config.webhook_url:
            return False, "Initialization webhook_url is missing"
        return True, f"Valid flow config: {len(config.steps_by_page)} step(s)"


class FlowConfigLoader:
    """
    Load a flow config from a path or URL on every call.

    Relative sources are resolved against base_url when one is given
    (the page origin), otherwise against the working directory.
    """

    def __init__(
        self,
        source: Union[str, Path],
        base_url: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.source = source
        self.base_url = base_url
        self._http = http

    @property
    def location(self) -> str:
        source = str(self.source)
        if is_url(source) or not self.base_url:
            return source
        if is_url(self.base_url):
            return str(httpx.URL(self.base_url).join(source))
        return str(Path(self.base_url) / source.lstrip("/"))

    async def load(self) -> FlowConfig:
        """
        Load and validate the config document.

        Raises:
            ConfigLoadError: If the document is unreachable or invalid
        """
        location = self.location
        if not is_url(location):
            config = FlowConfigParser.parse_file(location)
        else:
            config = await self._fetch(location)
        logger.debug(f"Loaded flow config from {location}")
        return config

    async def _fetch(self, url: str) -> FlowConfig:
        name = url.rsplit("/", 1)[-1] or url
        try:
            if self._http is not None:
                response = await self._http.get(url, headers={"Cache-Control": "no-store"})
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, headers={"Cache-Control": "no-store"})
        except httpx.HTTPError as e:
            raise ConfigLoadError(f"Unable to load {name}") from e

        if not response.is_success:
            raise ConfigLoadError(f"Unable to load {name}")

        fmt = "yaml" if url.endswith((".yaml", ".yml")) else "json"
        return FlowConfigParser.parse_string(response.text, format=fmt)
