"""Repository implementations for domain models."""

from .calendar import ParticipantCalendarRepository
from .interview import InterviewRepository
from .user import UserRepository

__all__ = [
    "InterviewRepository",
    "ParticipantCalendarRepository",
    "UserRepository",
]
