"""Notification domain exports."""

from .service import NotificationsService

__all__ = ["NotificationsService"]
