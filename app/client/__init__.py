"""Python client for the Second Light API."""

from app.client.api_client import SecondLightClient
from app.client.poller import DocumentPoller, is_terminal_snapshot

__all__ = ["SecondLightClient", "DocumentPoller", "is_terminal_snapshot"]
