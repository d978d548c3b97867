"""
NLP with LUIS - sample bot reporting the top scoring LUIS intent.

Receives Bot Framework activities, sends message text to a LUIS application
and replies with the intent it recognized.
"""

__version__ = "1.0.0"

from .core.app import create_app
from .bot.luis_bot import NlpWithLuisBot

__all__ = ["create_app", "NlpWithLuisBot"]
