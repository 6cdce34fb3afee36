# Domain Review Package
from .models import (
    CurrentView,
    LoadRequest,
    SessionPhase,
    SessionState,
    SessionStats,
    SessionSummary,
)

__all__ = [
    "CurrentView",
    "LoadRequest",
    "SessionPhase",
    "SessionState",
    "SessionStats",
    "SessionSummary",
]
