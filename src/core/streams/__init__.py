"""Push-stream subscription management."""

from src.core.streams.subscription import StreamOpener, Subscription

__all__ = ["StreamOpener", "Subscription"]
