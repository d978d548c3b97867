"""
Connected service clients built from the .bot file.
"""

from types import MappingProxyType
from typing import Mapping, Optional

import httpx
import structlog

from ..config.bot_configuration import BotConfiguration, BotConfigurationError, LuisService
from ..integrations.luis import LuisApplication, LuisPredictionOptions, LuisRecognizer

logger = structlog.get_logger(__name__)


class BotServices:
    """
    Read-only registry of the clients the bot uses, keyed by service name.

    Built once at startup and handed to every turn handler. Nothing mutates
    it afterwards so it is safe to share between concurrent turns.
    """

    def __init__(self, luis_services: Mapping[str, LuisRecognizer]):
        self._luis_services = MappingProxyType(dict(luis_services))

    @property
    def luis_services(self) -> Mapping[str, LuisRecognizer]:
        return self._luis_services

    @classmethod
    def from_bot_configuration(
        cls,
        config: BotConfiguration,
        prediction_options: Optional[LuisPredictionOptions] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "BotServices":
        """Create one LUIS recognizer for every luis/dispatch service in ``config``."""
        luis_services = {}
        for service in config.services:
            if not isinstance(service, LuisService):
                continue

            endpoint_key = service.subscription_key or service.authoring_key
            if not (service.app_id and endpoint_key and service.region):
                raise BotConfigurationError(
                    f"The LUIS service '{service.name}' is not configured correctly in your '.bot' file."
                )

            application = LuisApplication(service.app_id, endpoint_key, service.get_endpoint())
            luis_services[service.name] = LuisRecognizer(
                application,
                prediction_options=prediction_options,
                http_client=http_client,
            )

        logger.info("Connected services initialized", luis_services=sorted(luis_services))
        return cls(luis_services)
