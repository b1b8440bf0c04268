"""Real-time push of mutation events to connected clients."""

from .hub import Action, Connection, MutationEvent, NotificationHub

__all__ = ["Action", "Connection", "MutationEvent", "NotificationHub"]
