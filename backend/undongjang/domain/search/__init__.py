"""Search domain exports."""

from .service import SearchService
from .suggest_box import SuggestionBox

__all__ = ["SearchService", "SuggestionBox"]
