"""Inbound webhook verification and payload models."""

from .models import WebhookData, WebhookPayload
from .verify import WebhookVerifier

__all__ = ["WebhookData", "WebhookPayload", "WebhookVerifier"]
