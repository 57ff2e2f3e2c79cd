from typing import Annotated, Final

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PlainValidator

from ocifetch.digest import Digest

DOCKER_MANIFEST_SCHEMA2: Final = "application/vnd.docker.distribution.manifest.v2+json"


def _to_digest(value) -> Digest:
    if isinstance(value, Digest):
        return value
    if not isinstance(value, str):
        raise ValueError(f"digest must be a string, got {type(value).__name__}")
    return Digest.parse(value)


DigestField = Annotated[Digest, PlainValidator(_to_digest), PlainSerializer(str)]


class Descriptor(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md
    """

    model_config = ConfigDict(frozen=True)

    digest: DigestField
    size: int
    mediaType: str
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None


class Manifest(BaseModel):
    """
    ref: https://docs.docker.com/registry/spec/manifest-v2-2/
    """

    config: Descriptor
    layers: list[Descriptor] = []
    annotations: dict[str, str] | None = None

    mediaType: str = DOCKER_MANIFEST_SCHEMA2
    schemaVersion: int = 2


class RootFS(BaseModel):
    type: str = "layers"
    diff_ids: list[str] = []


class ConfigFile(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/config.md
    """

    model_config = ConfigDict(extra="allow")

    architecture: str = ""
    os: str = ""
    created: str | None = None
    author: str | None = None
    config: dict | None = None
    rootfs: RootFS = Field(default_factory=RootFS)
    history: list[dict] = []
