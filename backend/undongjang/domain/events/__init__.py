"""Event domain exports."""

from .recurrence import compute_next_occurrences, is_occurrence, nth_weekday_in_month
from .service import EventsService

__all__ = [
	"EventsService",
	"compute_next_occurrences",
	"is_occurrence",
	"nth_weekday_in_month",
]
