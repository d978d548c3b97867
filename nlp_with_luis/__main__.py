"""
Main entry point for the NLP with LUIS bot.
"""

import uvicorn
from .config.settings import get_settings


def main():
    """Start the bot server."""
    settings = get_settings()

    uvicorn.run(
        "nlp_with_luis.core.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
