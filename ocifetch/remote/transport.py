"""Registry authentication handshake

ref: https://distribution.github.io/distribution/spec/auth/token/
"""
from __future__ import annotations

import logging
import re
import threading
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ValidationError, model_validator

from ocifetch.authn.authenticator import ANONYMOUS, Authenticator
from ocifetch.errors import RegistryError, check_status

if TYPE_CHECKING:
    from ocifetch.reference import Reference

logger = logging.getLogger(__name__)

PULL_SCOPE = "pull"
CLIENT_ID = "ocifetch"
DEFAULT_TIMEOUT = httpx.Timeout(30.0)

_CHALLENGE_PARAM_RE = re.compile(r'(\w+)\s*=\s*(?:"([^"]*)"|([^,\s]*))')


class AuthenticationError(RegistryError):
    """Raised when the registry token exchange fails."""


class TokenResponse(BaseModel):
    token: str | None = None
    access_token: str | None = None

    @model_validator(mode="after")
    def _either_token(self):
        if not (self.token or self.access_token):
            raise ValueError("response contains no token")
        return self

    @property
    def value(self) -> str:
        return self.token or self.access_token


def parse_www_auth(www_authenticate: str) -> tuple[str, dict[str, str]]:
    """Parse the WWW-Authenticate header into its scheme and parameters"""
    scheme, _, rest = www_authenticate.strip().partition(" ")
    params = {
        key.lower(): quoted if quoted else bare
        for key, quoted, bare in _CHALLENGE_PARAM_RE.findall(rest)
    }
    return scheme.lower(), params


class RegistryAuth(httpx.Auth):
    """Attaches registry credentials to requests for a single repository.

    A 401 Bearer challenge is answered by fetching a token from the challenge
    realm with the Authenticator's credentials, a 401 Basic challenge by
    sending the Authenticator's value directly.
    The token is kept for later requests.
    """

    def __init__(
        self,
        reference: Reference,
        authenticator: Authenticator = ANONYMOUS,
        actions: str = PULL_SCOPE,
    ):
        self.reference = reference
        self.authenticator = authenticator
        self.scope = f"repository:{reference.repository}:{actions}"
        self._lock = threading.Lock()
        self._header: str | None = None

    def _apply(self, request: httpx.Request):
        with self._lock:
            header = self._header
        if header:
            request.headers["Authorization"] = header

    def auth_flow(self, request: httpx.Request):
        self._apply(request)
        response = yield request
        if response.status_code != 401:
            return

        scheme, params = parse_www_auth(response.headers.get("WWW-Authenticate", ""))
        logger.debug("%s challenge from %s: %s", scheme, request.url.host, params)
        if scheme == "bearer":
            token_response = yield self._token_request(params)
            token_response.read()
            header = f"Bearer {self._parse_token(token_response)}"
        elif scheme == "basic":
            header = self.authenticator.authorization()
            if not header:
                return
        else:
            return

        with self._lock:
            self._header = header
        request.headers["Authorization"] = header
        yield request

    def _token_request(self, params: dict[str, str]) -> httpx.Request:
        if "realm" not in params:
            raise AuthenticationError("Bearer challenge without realm")
        query = {"scope": self.scope}
        if "service" in params:
            query["service"] = params["service"]

        authorization = self.authenticator.authorization()
        if authorization.startswith("Bearer "):
            # Identity tokens are exchanged using the OAuth2 refresh flow
            return httpx.Request(
                "POST",
                params["realm"],
                data=query
                | {
                    "grant_type": "refresh_token",
                    "refresh_token": authorization.removeprefix("Bearer "),
                    "client_id": CLIENT_ID,
                },
            )
        headers = {"Authorization": authorization} if authorization else {}
        return httpx.Request("GET", params["realm"], params=query, headers=headers)

    def _parse_token(self, response: httpx.Response) -> str:
        check_status(response, 200)
        try:
            return TokenResponse.model_validate_json(response.content).value
        except ValidationError as e:
            raise AuthenticationError(
                f"Invalid token response from {response.url}: {e}"
            ) from e


def new_client(
    reference: Reference,
    authenticator: Authenticator = ANONYMOUS,
    transport: httpx.BaseTransport | None = None,
    timeout: httpx.Timeout | float | None = DEFAULT_TIMEOUT,
) -> httpx.Client:
    """Return an httpx.Client that authenticates against the reference's registry"""
    return httpx.Client(
        base_url=reference.url,
        auth=RegistryAuth(reference, authenticator),
        transport=transport,
        timeout=timeout,
        follow_redirects=True,
    )
