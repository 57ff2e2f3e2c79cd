import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base class for all ocifetch errors."""


class TransportError(RegistryError):
    """Raised when the connection to the registry fails."""


class ConfigParseError(RegistryError):
    """Raised when the credential config file can not be parsed."""


class HelperInvocationError(RegistryError):
    """Raised when a credential helper fails or returns garbage."""

    def __init__(self, message: str, helper: str, host: str):
        super().__init__(f"docker-credential-{helper} for {host}: {message}")
        self.helper = helper
        self.host = host


class ManifestError(RegistryError):
    """Raised when a manifest or config file does not have the expected schema."""


class DigestMismatch(RegistryError):
    """Raised when content does not hash to the digest it was fetched by."""

    def __init__(self, expected: str, actual: str, what: str = "content"):
        super().__init__(f"{what} digest: {actual} does not match {expected}")
        self.expected = expected
        self.actual = actual


class ErrorDetail(BaseModel):
    """
    ref: https://github.com/opencontainers/distribution-spec/blob/main/spec.md#error-codes
    """

    code: str
    message: str = ""
    detail: Any = None


class ErrorBody(BaseModel):
    errors: list[ErrorDetail] = []


class UnexpectedStatus(RegistryError):
    """Raised when the registry answers with a status we did not ask for."""

    def __init__(self, status_code: int, body: bytes, url: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url
        self.errors = _parse_errors(body)
        if self.errors:
            reason = "; ".join(f"{e.code}: {e.message}" for e in self.errors)
        else:
            reason = body.decode("utf-8", errors="replace")[:200]
        super().__init__(f"unexpected status code {status_code} for {url}: {reason}")


def _parse_errors(body: bytes) -> list[ErrorDetail]:
    if not body:
        return []
    try:
        return ErrorBody.model_validate_json(body).errors
    except ValidationError:
        return []


def check_status(response: httpx.Response, *expected: int):
    """Raise UnexpectedStatus unless the response has one of the expected codes.

    The response body is read, streamed responses included.
    """
    if response.status_code in expected:
        return
    body = response.read()
    logger.debug(
        "%s %s -> %s", response.request.method, response.url, response.status_code
    )
    raise UnexpectedStatus(response.status_code, body, url=str(response.url))
