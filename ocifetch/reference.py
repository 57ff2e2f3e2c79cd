import re
from dataclasses import dataclass

from ocifetch.digest import Digest

DOCKER_HUB = "index.docker.io"
DEFAULT_TAG = "latest"

TAG_RE = re.compile(r"[\w][\w.-]{0,127}")
COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*"
REFERENCE_RE = re.compile(
    rf"^(?P<repository>{COMPONENT}(?:/{COMPONENT})*)"
    r"(?::(?P<tag>[\w][\w.-]{0,127}))?"
    r"(?:@(?P<digest>[a-z0-9]+:[0-9a-f]+))?$"
)


def _is_registry(value: str) -> bool:
    return "." in value or ":" in value or value == "localhost"


def scheme(registry: str) -> str:
    """Return the URL scheme used to talk to `registry`"""
    host = registry.rsplit(":", 1)[0] if registry.count(":") == 1 else registry
    if host in ("localhost", "127.0.0.1") or registry.startswith("[::1]"):
        return "http"
    return "https"


@dataclass(frozen=True, slots=True)
class Reference:
    """Points to an image in a registry, by tag or by digest"""

    registry: str
    repository: str
    tag: str | None = None
    digest: Digest | None = None
    insecure: bool = False

    def __post_init__(self):
        if self.tag is not None and not TAG_RE.fullmatch(self.tag):
            raise ValueError(f"Invalid tag: {self.tag!r}")

    def __str__(self):
        if self.digest is not None:
            return f"{self.registry}/{self.repository}@{self.digest}"
        return f"{self.registry}/{self.repository}:{self.identifier}"

    @property
    def identifier(self) -> str:
        """The digest when pinned, the tag otherwise"""
        if self.digest is not None:
            return str(self.digest)
        return self.tag or DEFAULT_TAG

    @property
    def scheme(self) -> str:
        return "http" if self.insecure else scheme(self.registry)

    @property
    def url(self) -> str:
        """Base URL of the registry"""
        return f"{self.scheme}://{self.registry}"

    @classmethod
    def from_string(cls, value: str, insecure: bool = False) -> "Reference":
        """Parse `[registry/]repository[:tag][@digest]`

        Names without a registry point to Docker Hub, single component
        Docker Hub names live under `library/`.
        """
        registry, _, rest = value.partition("/")
        if not rest or not _is_registry(registry):
            registry, rest = DOCKER_HUB, value
        elif registry == "docker.io":
            registry = DOCKER_HUB
        match = REFERENCE_RE.fullmatch(rest)
        if not match:
            raise ValueError(f"Invalid reference: {value!r}")
        repository = match["repository"]
        if registry == DOCKER_HUB and "/" not in repository:
            repository = f"library/{repository}"
        digest = Digest.parse(match["digest"]) if match["digest"] else None
        return cls(
            registry=registry,
            repository=repository,
            tag=match["tag"],
            digest=digest,
            insecure=insecure,
        )
