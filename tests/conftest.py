import json
from hashlib import sha256
from pathlib import Path

import httpx
import pytest

from ocifetch.reference import Reference
from ocifetch.remote import RemoteImage

REGISTRY = "registry.example.com"
REPOSITORY = "test/image"


def digest_of(data: bytes) -> str:
    return f"sha256:{sha256(data).hexdigest()}"


@pytest.fixture
def docker_config(tmp_path, monkeypatch):
    """Point DOCKER_CONFIG to an isolated directory

    Returns a function writing `content` to config.json in that directory.
    """
    monkeypatch.setenv("DOCKER_CONFIG", str(tmp_path))

    def write(content: str) -> Path:
        path = tmp_path / "config.json"
        path.write_text(content)
        return path

    return write


class FakeRegistry:
    """Serves a single image from memory and counts requests per path"""

    def __init__(self, config: bytes, layers: list[bytes]):
        self.config = config
        self.layers = layers
        self.blobs = {digest_of(b): b for b in [config, *layers]}
        self.manifest = json.dumps(
            {
                "schemaVersion": 2,
                "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
                "config": {
                    "mediaType": "application/vnd.docker.container.image.v1+json",
                    "digest": digest_of(config),
                    "size": len(config),
                },
                "layers": [
                    {
                        "mediaType": "application/vnd.docker.image.rootfs.diff.tar.gzip",
                        "digest": digest_of(layer),
                        "size": len(layer),
                    }
                    for layer in layers
                ],
            },
            indent=3,
        ).encode("utf-8")
        self.manifest_headers = {"Docker-Content-Digest": digest_of(self.manifest)}
        self.calls: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    @property
    def manifest_digest(self) -> str:
        return digest_of(self.manifest)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls[path] = self.calls.get(path, 0) + 1
        self.requests.append(request)
        prefix = f"/v2/{REPOSITORY}/"
        if path.startswith(prefix + "manifests/"):
            return httpx.Response(
                200, content=self.manifest, headers=self.manifest_headers
            )
        if path.startswith(prefix + "blobs/"):
            digest = path.rsplit("/", 1)[1]
            if digest in self.blobs:
                return httpx.Response(200, content=self.blobs[digest])
            return httpx.Response(
                404,
                json={"errors": [{"code": "BLOB_UNKNOWN", "message": "blob unknown"}]},
            )
        return httpx.Response(404)

    def image(self, reference: Reference | None = None) -> RemoteImage:
        reference = reference or Reference(REGISTRY, REPOSITORY, tag="latest")
        client = httpx.Client(transport=httpx.MockTransport(self.handler))
        return RemoteImage(reference, client, owns_client=True)


@pytest.fixture
def registry() -> FakeRegistry:
    config = json.dumps(
        {"architecture": "amd64", "os": "linux", "rootfs": {"type": "layers"}}
    ).encode("utf-8")
    return FakeRegistry(config=config, layers=[b"layer one", b"layer two" * 1000])
