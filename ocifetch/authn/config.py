"""Docker style credential configuration

ref: https://docs.docker.com/reference/cli/docker/login/#credential-stores
"""
import logging
import os
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ocifetch.authn.authenticator import Authenticator, Basic, Bearer
from ocifetch.errors import ConfigParseError

logger = logging.getLogger(__name__)

CONFIG_ENV = "DOCKER_CONFIG"
CONFIG_FILE = "config.json"


class AuthEntry(BaseModel):
    """A single entry of the 'auths' section"""

    model_config = ConfigDict(extra="ignore")

    auth: str | None = None
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    identitytoken: str | None = Field(default=None, repr=False)

    def authenticator(self) -> Authenticator | None:
        """Decode the entry, None when it holds no usable credentials"""
        if self.auth:
            return Basic.from_auth(self.auth)
        if self.username and self.password is not None:
            return Basic(self.username, self.password)
        if self.identitytoken:
            return Bearer(self.identitytoken)
        return None


class CredentialConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    cred_helpers: dict[str, str] = Field(default_factory=dict, alias="credHelpers")
    cred_store: str | None = Field(
        default=None,
        validation_alias=AliasChoices("credStore", "credsStore", "cred_store"),
    )
    auths: dict[str, AuthEntry] = Field(default_factory=dict)

    @classmethod
    def parse(cls, data: bytes | str) -> "CredentialConfig":
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise ConfigParseError(str(e)) from e


def config_dir() -> Path:
    """Directory holding the credential config, `$DOCKER_CONFIG` or ~/.docker"""
    if value := os.environ.get(CONFIG_ENV):
        return Path(value)
    return Path.home() / ".docker"


def config_file() -> Path:
    return config_dir() / CONFIG_FILE


def load_config(path: Path | None = None) -> CredentialConfig:
    """Read the credential config from disk

    A missing or unparseable file results in an empty config.
    Other I/O errors are raised.
    """
    path = path or config_file()
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        logger.debug("No credential config at %s", path)
        return CredentialConfig()
    try:
        return CredentialConfig.parse(data)
    except ConfigParseError as e:
        logger.warning("Unable to parse %s, using anonymous access: %s", path, e)
        return CredentialConfig()
