"""
Application settings and configuration.

Values are layered the same way the hosted bot samples do it: a base
``appsettings.json``, an environment specific ``appsettings.{environment}.json``,
a ``.env`` file and finally process environment variables, later sources
overriding earlier ones.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Tuple, Type

from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
)

DEFAULT_BOT_FILE_NAME = "nlp-with-luis.bot"


def _content_root(explicit: str = "") -> Path:
    return Path(explicit or os.environ.get("CONTENT_ROOT") or os.getcwd())


def _environment_name(explicit: str = "") -> str:
    return explicit or os.environ.get("ENVIRONMENT") or "development"


class Settings(BaseSettings):
    """Application configuration settings."""

    # Application settings
    app_name: str = "NLP with LUIS"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    environment: str = "development"
    content_root: str = ""

    # FastAPI settings
    api_host: str = "0.0.0.0"
    api_port: int = 3978

    # .bot file settings
    bot_file_path: str = ""
    bot_file_secret: str = ""

    # The hosted samples use camelCase keys in appsettings.json
    botFilePath: str = ""
    botFileSecret: str = ""

    # Connected service names inside the .bot file
    endpoint_name: str = "development"
    luis_service_name: str = "BCJTest"
    luis_timeout_seconds: float = 10.0

    @property
    def effective_content_root(self) -> Path:
        """Directory the configuration files and static assets are resolved from."""
        return Path(self.content_root) if self.content_root else _content_root()

    @property
    def effective_bot_file_path(self) -> Path:
        """Get the .bot file path from either naming convention."""
        path = Path(self.botFilePath or self.bot_file_path or DEFAULT_BOT_FILE_NAME)
        if not path.is_absolute():
            path = self.effective_content_root / path
        return path

    @property
    def effective_bot_file_secret(self) -> str:
        """Get the .bot file secret from either naming convention."""
        return self.botFileSecret or self.bot_file_secret

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Earlier sources win. Files live under the content root, which may
        # itself be passed in explicitly.
        explicit = init_settings()
        root = _content_root(explicit.get("content_root", ""))
        environment = _environment_name(explicit.get("environment", ""))
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(settings_cls, env_file=root / ".env", env_file_encoding="utf-8"),
            JsonConfigSettingsSource(settings_cls, json_file=root / f"appsettings.{environment}.json"),
            JsonConfigSettingsSource(settings_cls, json_file=root / "appsettings.json"),
            file_secret_settings,
        )

    class Config:
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Returns a cached instance of the application settings."""
    return Settings()
