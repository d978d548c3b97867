"""
Loader for ``.bot`` configuration files.

A ``.bot`` file is a JSON document listing the connected services a bot talks
to (its messaging endpoints, LUIS applications, ...). Secret fields may be
encrypted with AES-256-CBC using a base64 encoded 32 byte key; each encrypted
value is stored as ``base64(iv)!base64(ciphertext)``.
"""

import base64
import binascii
import json
import os
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

import structlog
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = structlog.get_logger(__name__)


class BotConfigurationError(Exception):
    """Raised when a .bot file cannot be loaded or does not describe a usable bot."""


class ServiceTypes:
    """Connected service type names used in .bot files."""
    ENDPOINT = "endpoint"
    LUIS = "luis"
    DISPATCH = "dispatch"


# --- Encryption helpers ---------------------------------------------------------

def generate_key() -> str:
    """Create a new random secret suitable for encrypting a .bot file."""
    return base64.b64encode(os.urandom(32)).decode("ascii")


def _key_bytes(secret: str) -> bytes:
    try:
        key = base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BotConfigurationError("The bot file secret is not valid base64") from e
    if len(key) != 32:
        raise BotConfigurationError("The bot file secret must decode to a 256 bit key")
    return key


def encrypt_string(plain_text: str, secret: str) -> str:
    """Encrypt a value the way .bot files store secrets."""
    if not plain_text:
        return plain_text

    iv = os.urandom(16)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    data = padder.update(plain_text.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(_key_bytes(secret)), modes.CBC(iv)).encryptor()
    cipher_text = encryptor.update(data) + encryptor.finalize()
    return f"{base64.b64encode(iv).decode('ascii')}!{base64.b64encode(cipher_text).decode('ascii')}"


def decrypt_string(encrypted_value: str, secret: str) -> str:
    """Decrypt a value produced by :func:`encrypt_string`."""
    if not encrypted_value:
        return encrypted_value

    parts = encrypted_value.split("!")
    if len(parts) != 2:
        raise BotConfigurationError("The encrypted value is not in the 'iv!value' format")

    try:
        iv = base64.b64decode(parts[0], validate=True)
        cipher_text = base64.b64decode(parts[1], validate=True)
        decryptor = Cipher(algorithms.AES(_key_bytes(secret)), modes.CBC(iv)).decryptor()
        data = decryptor.update(cipher_text) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return (unpadder.update(data) + unpadder.finalize()).decode("utf-8")
    except BotConfigurationError:
        raise
    except (binascii.Error, ValueError, UnicodeDecodeError) as e:
        raise BotConfigurationError("Unable to decrypt value, the secret is probably wrong") from e


# --- Connected services ---------------------------------------------------------

class ConnectedService(BaseModel):
    """A service entry of a .bot file."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # Fields holding secrets, by their JSON name
    encrypted_properties: ClassVar[Tuple[str, ...]] = ()

    type: str
    name: str = ""
    id: str = ""

    def decrypt(self, secret: str) -> None:
        for field_name, field in type(self).model_fields.items():
            if (field.alias or field_name) in self.encrypted_properties:
                value = getattr(self, field_name)
                if value:
                    setattr(self, field_name, decrypt_string(value, secret))

    def encrypt(self, secret: str) -> None:
        for field_name, field in type(self).model_fields.items():
            if (field.alias or field_name) in self.encrypted_properties:
                value = getattr(self, field_name)
                if value:
                    setattr(self, field_name, encrypt_string(value, secret))


class EndpointService(ConnectedService):
    """Messaging endpoint and the app registration that authenticates it."""

    encrypted_properties: ClassVar[Tuple[str, ...]] = ("appPassword",)

    app_id: str = Field(default="", alias="appId")
    app_password: str = Field(default="", alias="appPassword")
    endpoint: str = ""


class LuisService(ConnectedService):
    """A LUIS application."""

    encrypted_properties: ClassVar[Tuple[str, ...]] = ("authoringKey", "subscriptionKey")

    app_id: str = Field(default="", alias="appId")
    authoring_key: str = Field(default="", alias="authoringKey")
    subscription_key: str = Field(default="", alias="subscriptionKey")
    region: str = ""
    version: str = ""

    def get_endpoint(self) -> str:
        """Prediction endpoint host for the application's region."""
        region = (self.region or "westus").lower()
        return f"https://{region}.api.cognitive.microsoft.com"


class DispatchService(LuisService):
    """A dispatch model, a LUIS application routing to other services."""

    service_ids: List[str] = Field(default_factory=list, alias="serviceIds")


SERVICE_TYPES = {
    ServiceTypes.ENDPOINT: EndpointService,
    ServiceTypes.LUIS: LuisService,
    ServiceTypes.DISPATCH: DispatchService,
}


def parse_service(data: Dict[str, Any]) -> ConnectedService:
    """Build the typed service model for one entry of the services list."""
    service_cls = SERVICE_TYPES.get(str(data.get("type", "")).lower(), ConnectedService)
    return service_cls.model_validate(data)


# --- Configuration --------------------------------------------------------------

class BotConfiguration(BaseModel):
    """Parsed contents of a .bot file."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    description: str = ""
    version: str = "2.0"
    padlock: str = ""
    services: List[ConnectedService] = Field(default_factory=list)
    path: Optional[Path] = Field(default=None, exclude=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BotConfiguration":
        if not isinstance(data, dict):
            raise BotConfigurationError("The bot file must contain a JSON object")

        try:
            services = [parse_service(service) for service in data.get("services") or []]
            fields = {k: v for k, v in data.items() if k != "services"}
            return cls(services=services, **fields)
        except (ValidationError, TypeError, AttributeError) as e:
            raise BotConfigurationError(f"The bot file is not valid: {e}") from e

    @classmethod
    def load(cls, file: Union[str, Path], secret: Optional[str] = None) -> "BotConfiguration":
        """
        Load a .bot file and decrypt its secrets.

        Raises:
            BotConfigurationError: the file is missing, not JSON, not a valid
                bot configuration, or is encrypted and cannot be decrypted
                with ``secret``. A secret given for an unencrypted file is ignored.
        """
        path = Path(file)
        try:
            raw = path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise BotConfigurationError(f"The .bot config file could not be loaded. ({path})") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BotConfigurationError(f"The .bot config file is not valid JSON. ({path})") from e

        config = cls.from_dict(data)
        config.path = path
        if config.padlock:
            if not secret:
                raise BotConfigurationError(
                    f"The bot file is encrypted but no secret was provided. ({path})"
                )
            config.decrypt(secret)

        logger.info("Loaded bot configuration",
                    path=str(path),
                    bot_name=config.name,
                    services=[f"{s.type}:{s.name}" for s in config.services],
                    encrypted=bool(config.padlock))
        return config

    def validate_secret(self, secret: str) -> None:
        if not self.padlock:
            return
        try:
            decrypt_string(self.padlock, secret)
        except BotConfigurationError as e:
            raise BotConfigurationError("The bot file secret is incorrect.") from e

    def decrypt(self, secret: str) -> None:
        """Decrypt every secret property in place. Plain files are left as they are."""
        if not self.padlock:
            return
        self.validate_secret(secret)
        for service in self.services:
            service.decrypt(secret)

    def encrypt(self, secret: str) -> None:
        """Encrypt every secret property in place and refresh the padlock."""
        self.padlock = encrypt_string(base64.b64encode(os.urandom(16)).decode("ascii"), secret)
        for service in self.services:
            service.encrypt(secret)

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude={"services", "path"})
        data["services"] = [s.model_dump(by_alias=True) for s in self.services]
        return data

    def find_service_by_name_or_id(self, name_or_id: str) -> Optional[ConnectedService]:
        for service in self.services:
            if service.name == name_or_id or service.id == name_or_id:
                return service
        return None

    def find_endpoint(self, name: str) -> EndpointService:
        """
        Return the endpoint service registered under ``name``.

        Raises:
            BotConfigurationError: no service has that name or it is not an endpoint.
        """
        service = next(
            (s for s in self.services if s.type.lower() == ServiceTypes.ENDPOINT and s.name == name),
            None,
        )
        if not isinstance(service, EndpointService):
            raise BotConfigurationError(f"The .bot file does not contain an endpoint with name '{name}'.")
        return service
