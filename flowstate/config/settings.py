"""
flowstate configuration management using Pydantic Settings.

Configuration can be provided via:
1. flowstate.yaml config file (primary)
2. FLOWSTATE_* env vars (nested sections use a double underscore)
3. .env file
4. Direct instantiation

Priority (highest wins): init kwargs > flowstate.yaml > env vars > .env > defaults

The simplified flowstate.yaml format:
    config: flows/i-ching-journal/config.json
    base_url: http://localhost:8080/i-ching-journal/
    landing_page: index.html
    storage_dir: .flowstate
    timeout: 30
    archive:
      flow_name: i-ching-journal
    log_level: INFO
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple, Type

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from flowstate.core.gate import DEFAULT_STATUS_MESSAGE
from flowstate.core.store import STORAGE_KEY

logger = logging.getLogger(__name__)


class FlowSourceConfig(BaseModel):
    """Where the flow's pages and configuration document live."""

    # Path or URL of the flow config document; read fresh on every page load
    config_path: str = "config.json"
    # Page origin: relative webhook and config URLs resolve against it
    base_url: Optional[str] = None
    # File name of the landing page (always initializes, then redirects)
    landing_page: str = "index.html"
    # Route table for `flowstate route`
    routes_path: str = "routes.json"


class StorageConfig(BaseModel):
    """Session store configuration."""

    backend: Literal["file", "memory"] = "file"
    # Directory acting as the storage origin for the file backend
    directory: str = ".flowstate"
    key: str = STORAGE_KEY


class WebhookConfig(BaseModel):
    """Webhook transport configuration."""

    # Seconds; None waits until the request resolves
    timeout: Optional[float] = None
    headers: Dict[str, str] = Field(default_factory=dict)


class ArchiveConfig(BaseModel):
    """Archive browsing configuration."""

    flow_name: str = "i-ching-journal"
    summary_page: str = "summary.html"


class StatusConfig(BaseModel):
    """Busy status text."""

    default_message: str = DEFAULT_STATUS_MESSAGE


class YamlConfigSource(PydanticBaseSettingsSource):
    """Custom settings source that reads from a flowstate.yaml config file.

    Discovers config at:
    1. Explicit path passed via _config_path init kwarg
    2. $FLOWSTATE_CONFIG env var
    3. ./flowstate.yaml
    4. ./flowstate.yml

    Maps simplified YAML keys to the nested FlowStateSettings structure.
    """

    def __init__(
        self, settings_cls: Type[BaseSettings], config_path: Optional[str] = None
    ):
        super().__init__(settings_cls)
        self._config_path = config_path
        self._yaml_data: Optional[Dict[str, Any]] = None
        self._load()

    def _discover_config_file(self) -> Optional[Path]:
        """Find the config file to load."""
        if self._config_path:
            p = Path(self._config_path)
            return p if p.is_file() else None

        env_path = os.environ.get("FLOWSTATE_CONFIG")
        if env_path:
            p = Path(env_path)
            return p if p.is_file() else None

        for name in ("flowstate.yaml", "flowstate.yml"):
            p = Path(name)
            if p.is_file():
                return p

        return None

    def _load(self) -> None:
        """Load and parse the YAML config file."""
        path = self._discover_config_file()
        if path is None:
            self._yaml_data = {}
            return

        try:
            import yaml

            with open(path) as f:
                data = yaml.safe_load(f)
            self._yaml_data = data if isinstance(data, dict) else {}
            logger.debug(f"Loaded settings from {path}")
        except Exception as e:
            logger.warning(f"Failed to load settings from {path}: {e}")
            self._yaml_data = {}

    # Flat key -> (section, field)
    _FLAT_KEYS = {
        "config": ("flow", "config_path"),
        "base_url": ("flow", "base_url"),
        "landing_page": ("flow", "landing_page"),
        "routes": ("flow", "routes_path"),
        "storage_dir": ("storage", "directory"),
        "storage_key": ("storage", "key"),
        "storage": ("storage", "backend"),
        "timeout": ("webhook", "timeout"),
        "waiting_message": ("status", "default_message"),
    }

    _SECTIONS = frozenset({"flow", "webhook", "archive", "status"})

    def _map_to_settings(self) -> Dict[str, Any]:
        """Map simplified YAML keys to nested FlowStateSettings structure."""
        if not self._yaml_data:
            return {}

        data = self._yaml_data
        result: Dict[str, Any] = {}

        # Full sections pass through; flat keys below take precedence
        for section in self._SECTIONS:
            value = data.get(section)
            if isinstance(value, dict):
                result[section] = dict(value)

        # storage: may be a section or the backend name
        storage_val = data.get("storage")
        if isinstance(storage_val, dict):
            result["storage"] = dict(storage_val)

        for key, (section, field_name) in self._FLAT_KEYS.items():
            if key not in data:
                continue
            if key == "storage" and not isinstance(data[key], str):
                continue
            result.setdefault(section, {})[field_name] = data[key]

        if "debug" in data:
            result["debug"] = data["debug"]

        if "log_level" in data:
            result["log_level"] = data["log_level"]

        return result

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        mapped = self._map_to_settings()
        value = mapped.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> Dict[str, Any]:
        return self._map_to_settings()


class FlowStateSettings(BaseSettings):
    """
    Main flowstate configuration.

    All settings can be overridden via environment variables with FLOWSTATE_ prefix.
    Nested settings use double underscore: FLOWSTATE_FLOW__BASE_URL

    A flowstate.yaml config file is also supported (config takes priority).
    Pass _config_path to override the config file location.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWSTATE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Path to flowstate.yaml (set via _config_path kwarg, not a real setting field)
    _config_path: Optional[str] = None

    # General settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Component configurations
    flow: FlowSourceConfig = Field(default_factory=FlowSourceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)
    status: StatusConfig = Field(default_factory=StatusConfig)

    def __init__(self, _config_path: Optional[str] = None, **kwargs: Any):
        self.__class__._config_path = _config_path
        super().__init__(**kwargs)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Insert YAML config source before env vars.

        Priority (highest first): init > yaml > env > dotenv > file_secret
        """
        yaml_source = YamlConfigSource(settings_cls, config_path=cls._config_path)
        return (
            init_settings,
            yaml_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
