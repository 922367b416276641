"""
flowstate - Flow state engine for webhook-driven form wizards.

Carries a user through a multi-page form flow whose logic lives behind a
webhook. Each page load, form submission and action button becomes one
JSON round trip; the response decides what is remembered and where the
user goes next.

Quick Start:
    ```bash
    flowstate open index.html          # landing page: initialize and redirect
    flowstate submit step2.html -f mood=calm
    flowstate state
    ```

    Or programmatically:
    ```python
    from flowstate import FlowDriver, FlowStateSettings, PageContext

    settings = FlowStateSettings()
    driver = FlowDriver.from_settings(
        settings, PageContext.from_url("reading-form.html?casting_id=42")
    )
    outcome = await driver.load_page()
    ```
"""

__version__ = "0.1.0"

# Configuration
from flowstate.config.settings import FlowStateSettings

# Core pieces
from flowstate.core import (
    FlowError,
    ConfigLoadError,
    MissingWebhook,
    InvalidVariableJson,
    RequestFailed,
    MissingDestination,
    SessionState,
    SessionStore,
    SubmissionGate,
)

# Flow config
from flowstate.flow import FlowConfig, FlowConfigLoader, FlowConfigParser

# Driver
from flowstate.driver import (
    ArchiveBrowser,
    DATA_READY,
    FlowDriver,
    FormSubmission,
    PageContext,
    Trigger,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "FlowStateSettings",
    # Errors
    "FlowError",
    "ConfigLoadError",
    "MissingWebhook",
    "InvalidVariableJson",
    "RequestFailed",
    "MissingDestination",
    # Core
    "SessionState",
    "SessionStore",
    "SubmissionGate",
    # Flow config
    "FlowConfig",
    "FlowConfigLoader",
    "FlowConfigParser",
    # Driver
    "ArchiveBrowser",
    "DATA_READY",
    "FlowDriver",
    "FormSubmission",
    "PageContext",
    "Trigger",
]
