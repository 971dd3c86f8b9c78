"""Trade event delivery."""

from .event_bus import InProcessTradeEventBus

__all__ = ["InProcessTradeEventBus"]
