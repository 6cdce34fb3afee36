# Application Review Package
from .input_adapter import KeyEvent, ReviewCommand, ReviewInputAdapter
from .session import ReviewSession, accuracy_percent

__all__ = [
    "KeyEvent",
    "ReviewCommand",
    "ReviewInputAdapter",
    "ReviewSession",
    "accuracy_percent",
]
