"""Configuration management for flowstate."""

from flowstate.config.settings import (
    FlowStateSettings,
    FlowSourceConfig,
    StorageConfig,
    WebhookConfig,
    ArchiveConfig,
    StatusConfig,
)

__all__ = [
    "FlowStateSettings",
    "FlowSourceConfig",
    "StorageConfig",
    "WebhookConfig",
    "ArchiveConfig",
    "StatusConfig",
]
