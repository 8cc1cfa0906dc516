"""Backend module."""

from .client import HttpChatBackend, IChatBackend

__all__ = ["HttpChatBackend", "IChatBackend"]
