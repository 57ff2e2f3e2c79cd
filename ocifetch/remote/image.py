import logging
import threading
from typing import Iterator

import httpx
from pydantic import ValidationError

from ocifetch.digest import Digest, VerifyingReader, sha256
from ocifetch.errors import DigestMismatch, ManifestError, TransportError, check_status
from ocifetch.reference import Reference
from ocifetch.remote.manifest import (
    DOCKER_MANIFEST_SCHEMA2,
    ConfigFile,
    Descriptor,
    Manifest,
)

logger = logging.getLogger(__name__)


def _iter_stream(response: httpx.Response) -> Iterator[bytes]:
    try:
        yield from response.iter_bytes()
    except httpx.TransportError as e:
        raise TransportError(str(e)) from e


class RemoteImage:
    """Access an image stored in a remote registry.

    The manifest and config are fetched once and kept for the lifetime of
    the instance, blobs are streamed on every call.
    """

    def __init__(self, reference: Reference, client: httpx.Client, owns_client=False):
        self.reference = reference
        self.client = client
        self._owns_client = owns_client
        self._manifest_lock = threading.Lock()
        self._manifest: bytes | None = None
        self._config_lock = threading.Lock()
        self._config: bytes | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return f"<RemoteImage {self.reference}>"

    def close(self):
        if self._owns_client:
            self.client.close()

    def url(self, resource: str, identifier: str) -> str:
        return (
            f"{self.reference.url}/v2/{self.reference.repository}"
            f"/{resource}/{identifier}"
        )

    def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        logger.debug("%s %s", request.method, request.url)
        try:
            return self.client.send(request, stream=stream)
        except httpx.TransportError as e:
            raise TransportError(str(e)) from e

    def media_type(self) -> str:
        # Always assumed, manifest lists and OCI manifests are not distinguished
        return DOCKER_MANIFEST_SCHEMA2

    def raw_manifest(self) -> bytes:
        with self._manifest_lock:
            if self._manifest is not None:
                return self._manifest

            request = self.client.build_request(
                "GET",
                self.url("manifests", self.reference.identifier),
                headers={"Accept": DOCKER_MANIFEST_SCHEMA2},
            )
            response = self._send(request)
            check_status(response, 200)
            manifest = response.content

            digest = sha256(manifest)
            if self.reference.digest is not None:
                # Pulling by digest, the content must match what we asked for
                if digest != self.reference.digest:
                    raise DigestMismatch(
                        str(self.reference.digest), str(digest), what="manifest"
                    )
            elif (checksum := response.headers.get("Docker-Content-Digest")) and (
                checksum != str(digest)
            ):
                # Pulling by tag, we can only check what the registry told us
                raise DigestMismatch(checksum, str(digest), what="manifest")

            self._manifest = manifest
            return self._manifest

    def manifest(self) -> Manifest:
        try:
            return Manifest.model_validate_json(self.raw_manifest())
        except ValidationError as e:
            raise ManifestError(f"Invalid manifest for {self.reference}: {e}") from e

    def digest(self) -> Digest:
        return sha256(self.raw_manifest())

    def config_name(self) -> Digest:
        return self.manifest().config.digest

    def layers(self) -> list[Descriptor]:
        return self.manifest().layers

    def raw_config_file(self) -> bytes:
        with self._config_lock:
            if self._config is not None:
                return self._config

            with self.blob(self.config_name()) as body:
                config = body.read()
            self._config = config
            return self._config

    def config_file(self) -> ConfigFile:
        try:
            return ConfigFile.model_validate_json(self.raw_config_file())
        except ValidationError as e:
            raise ManifestError(f"Invalid config file for {self.reference}: {e}") from e

    def blob(self, digest: Digest) -> VerifyingReader:
        """Stream the blob `digest`, the content is verified when the reader closes"""
        request = self.client.build_request("GET", self.url("blobs", str(digest)))
        response = self._send(request, stream=True)
        try:
            check_status(response, 200)
        except BaseException:
            response.close()
            raise
        return VerifyingReader(_iter_stream(response), digest, close=response.close)

    def layer(self, digest: Digest) -> VerifyingReader:
        """Stream a layer listed in the manifest"""
        if not any(layer.digest == digest for layer in self.layers()):
            raise ValueError(f"{digest} is not a layer of {self.reference}")
        return self.blob(digest)
