"""Conversations between members and the organizers of groups and events."""

from .service import MessengerService
from .surface import SurfaceState, SurfaceTarget
from .view import ConversationView

__all__ = ["ConversationView", "MessengerService", "SurfaceState", "SurfaceTarget"]
