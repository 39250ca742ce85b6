"""Stream registry."""

from stream_manager.registry.manager import StreamRegistry

__all__ = ["StreamRegistry"]
