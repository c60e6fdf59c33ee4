"""
Abstract base class for messaging platform adapters.

Every platform must implement this interface. Code outside the adapter
packages (e.g. the admin API sending review results to hosts) imports
ONLY this interface — never platform-specific libraries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class OutgoingMessage:
    """Platform-agnostic representation of an outgoing message."""

    chat_id: str
    text: str
    format_type: str = "plain"  # "plain", "html", "markdown"; adapter maps to platform format


class PlatformAdapter(ABC):
    """
    Interface that every messaging platform adapter must implement.

    Callers use these methods; the adapter translates them into
    platform-specific API calls.
    """

    @abstractmethod
    async def send_message(self, message: OutgoingMessage) -> None:
        """Send a text message to a chat."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start listening for incoming messages (polling, webhook, etc.)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Gracefully shut down the adapter."""
        ...
