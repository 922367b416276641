"""HTTP transport for webhook round trips."""

from flowstate.transport.webhook import WebhookClient

__all__ = ["WebhookClient"]
