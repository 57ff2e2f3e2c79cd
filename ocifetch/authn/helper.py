"""Credential helper protocol

ref: https://github.com/docker/docker-credential-helpers
"""
import logging
import subprocess
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ocifetch.authn.authenticator import Basic, Bearer, Helper
from ocifetch.errors import HelperInvocationError

logger = logging.getLogger(__name__)

# Username reported by helpers when the secret is an identity token
TOKEN_USERNAME = "<token>"
HELPER_TIMEOUT = 30


class HelperCredential(BaseModel):
    """Response of `docker-credential-<name> get`"""

    model_config = ConfigDict(extra="ignore")

    username: str = Field(alias="Username")
    secret: str = Field(alias="Secret", repr=False)

    def credential(self) -> Basic | Bearer:
        if self.username == TOKEN_USERNAME:
            return Bearer(self.secret)
        return Basic(self.username, self.secret)


class HelperRunner(Protocol):
    def get(self, name: str, host: str) -> HelperCredential:
        ...


class SubprocessHelperRunner:
    """Runs docker-credential-`name` from $PATH"""

    def __init__(self, timeout: float = HELPER_TIMEOUT):
        self.timeout = timeout

    def get(self, name: str, host: str) -> HelperCredential:
        command = [f"docker-credential-{name}", "get"]
        logger.debug("Running %s for %s", command[0], host)
        try:
            result = subprocess.run(
                command,
                input=host.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise HelperInvocationError(str(e), helper=name, host=host) from e
        if result.returncode != 0:
            # Helpers report errors like "credentials not found" on stdout
            output = (result.stderr or result.stdout).decode("utf-8", "replace")
            raise HelperInvocationError(
                f"exit status {result.returncode}: {output.strip()}",
                helper=name,
                host=host,
            )
        try:
            return HelperCredential.model_validate_json(result.stdout)
        except ValidationError as e:
            raise HelperInvocationError(
                f"unparseable output: {e}", helper=name, host=host
            ) from e


def invoke(name: str, host: str, runner: HelperRunner) -> Helper:
    """Ask helper `name` for the credentials of `host`"""
    response = runner.get(name, host)
    return Helper(name=name, host=host, credential=response.credential())
