"""
LUIS prediction client.
"""

from .recognizer import (
    LuisApplication,
    LuisPredictionOptions,
    LuisRecognizer,
    LuisRecognizerError,
)

__all__ = [
    "LuisApplication",
    "LuisPredictionOptions",
    "LuisRecognizer",
    "LuisRecognizerError",
]
