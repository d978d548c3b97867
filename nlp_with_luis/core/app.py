"""
Core FastAPI application factory.
"""

import logging
from typing import Optional

import httpx
import structlog
from botbuilder.core import BotFrameworkAdapter
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from ..api.health import router as health_router
from ..bot.endpoints import create_adapter, router as bot_router
from ..bot.luis_bot import NlpWithLuisBot
from ..config.bot_configuration import BotConfiguration
from ..config.settings import Settings, get_settings
from ..integrations.luis import LuisPredictionOptions
from ..services.bot_services import BotServices


def configure_logging(log_level: str = "INFO"):
    """Configure structured logging."""
    logging.basicConfig(level=log_level.upper(), format="%(message)s")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_app(
    settings: Optional[Settings] = None,
    bot_services: Optional[BotServices] = None,
    adapter: Optional[BotFrameworkAdapter] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Loads the .bot file, builds the connected services and the Bot Framework
    adapter. Any configuration problem raises here so the process never starts
    serving with a broken setup.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    logger = structlog.get_logger(__name__)

    http_client = None
    if bot_services is None or adapter is None:
        bot_file = settings.effective_bot_file_path
        bot_config = BotConfiguration.load(bot_file, settings.effective_bot_file_secret or None)

        endpoint = bot_config.find_endpoint(settings.endpoint_name)

        if bot_services is None:
            http_client = httpx.AsyncClient(timeout=settings.luis_timeout_seconds)
            bot_services = BotServices.from_bot_configuration(
                bot_config,
                prediction_options=LuisPredictionOptions(timeout=settings.luis_timeout_seconds),
                http_client=http_client,
            )

        if adapter is None:
            adapter = create_adapter(endpoint.app_id, endpoint.app_password)

        logger.info("Bot Framework config",
                    bot_file=str(bot_file),
                    endpoint=endpoint.name,
                    app_id=endpoint.app_id,
                    has_password=bool(endpoint.app_password))

    # Building one handler up front checks the registry holds the LUIS service
    # every turn needs.
    NlpWithLuisBot(bot_services, settings.luis_service_name)

    app = FastAPI(
        title=settings.app_name,
        description="Replies with the top scoring LUIS intent for each message",
        version=settings.app_version,
    )
    app.state.settings = settings
    app.state.bot_services = bot_services
    app.state.adapter = adapter
    app.state.luis_key = settings.luis_service_name

    if http_client is not None:
        @app.on_event("shutdown")
        async def shutdown_event():
            await http_client.aclose()

    app.include_router(health_router, prefix="/health", tags=["health"])
    app.include_router(bot_router, tags=["bot"])

    # Default and static files, mounted last so the routes above take precedence
    static_path = settings.effective_content_root / "wwwroot"
    if static_path.is_dir():
        app.mount("/", StaticFiles(directory=str(static_path), html=True), name="static")

    return app
