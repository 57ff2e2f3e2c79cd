import base64
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@runtime_checkable
class Authenticator(Protocol):
    """Something that produces the value of an Authorization header"""

    def authorization(self) -> str:
        ...


@dataclass(frozen=True, slots=True)
class Anonymous:
    """No credentials, no Authorization header"""

    def authorization(self) -> str:
        return ""


@dataclass(frozen=True, slots=True)
class Basic:
    """HTTP Basic authentication"""

    username: str
    password: str = field(repr=False)

    def authorization(self) -> str:
        token = base64.b64encode(f"{self.username}:{self.password}".encode("utf-8"))
        return f"Basic {token.decode('ascii')}"

    @classmethod
    def from_auth(cls, auth: str) -> "Basic":
        """Decode a base64 encoded 'username:password' string"""
        try:
            decoded = base64.b64decode(auth, validate=True).decode("utf-8")
        except ValueError as e:
            raise ValueError("auth is not valid base64") from e
        username, sep, password = decoded.partition(":")
        if not sep:
            raise ValueError("auth is not of the form 'username:password'")
        return cls(username, password)


@dataclass(frozen=True, slots=True)
class Bearer:
    """Identity or registry token"""

    token: str = field(repr=False)

    def authorization(self) -> str:
        return f"Bearer {self.token}"


@dataclass(frozen=True, slots=True)
class Helper:
    """Credentials handed out by docker-credential-`name` for `host`"""

    name: str
    host: str
    credential: Basic | Bearer = field(repr=False)

    def authorization(self) -> str:
        return self.credential.authorization()


ANONYMOUS = Anonymous()
