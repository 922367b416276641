"""
Flow configuration schema using Pydantic models.

One document per flow, co-located with its pages:

Example JSON:
```json
{
  "route": "i-ching-journal",
  "initialization": {
    "webhook_url": "https://n8n.example.com/webhook/i-ching",
    "request_variables": {"flow": "i-ching-journal"},
    "start_page": "reading-form.html"
  },
  "steps_by_page": {
    "reading-form.html": {
      "request_variables": {"step": "reading"},
      "next_step_fallback": "summary.html"
    }
  }
}
```
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flowstate.core.errors import MissingWebhook

# Declared variables may be inline objects or JSON strings.
DeclaredVariables = Optional[Union[Dict[str, Any], str]]


class InitializationConfig(BaseModel):
    """The initialization round trip and the flow's single webhook."""

    model_config = ConfigDict(extra="allow")

    webhook_url: Optional[str] = None
    request_variables: DeclaredVariables = None
    start_page: Optional[str] = None


class StepConfig(BaseModel):
    """Per-page overrides."""

    model_config = ConfigDict(extra="allow")

    request_variables: DeclaredVariables = None
    next_step_fallback: Optional[str] = None


class FlowConfig(BaseModel):
    """
    A flow configuration document.

    steps_by_page is keyed by page file name (e.g. "step2.html").
    """

    model_config = ConfigDict(extra="allow")

    route: Optional[str] = None
    initialization: InitializationConfig = Field(default_factory=InitializationConfig)
    steps_by_page: Dict[str, StepConfig] = Field(default_factory=dict)

    @field_validator("initialization", mode="before")
    @classmethod
    def default_initialization(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("steps_by_page", mode="before")
    @classmethod
    def default_steps(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def webhook_url(self) -> Optional[str]:
        return self.initialization.webhook_url or None

    def require_webhook(self) -> str:
        """
        Get the flow webhook.

        Raises:
            MissingWebhook: If initialization.webhook_url is absent or empty
        """
        if not self.webhook_url:
            raise MissingWebhook()
        return self.webhook_url

    def step_for(self, page: str) -> StepConfig:
        """Get step config for a page, or an empty one."""
        return self.steps_by_page.get(page) or StepConfig()
