"""Group domain exports."""

from .models import Group, count_members
from .service import GroupsService

__all__ = ["Group", "GroupsService", "count_members"]
