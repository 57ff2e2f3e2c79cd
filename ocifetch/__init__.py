"""OCI registry pull client for Python

This module resolves registry credentials from the local Docker config and
fetches manifests, configs and blobs, verifying them against their digests.
"""
import logging

import httpx

from ocifetch.authn import Authenticator, DefaultKeychain, Keychain
from ocifetch.digest import Digest, VerifyingReader
from ocifetch.errors import (
    ConfigParseError,
    DigestMismatch,
    HelperInvocationError,
    ManifestError,
    RegistryError,
    TransportError,
    UnexpectedStatus,
)
from ocifetch.reference import Reference
from ocifetch.remote import RemoteImage, new_client
from ocifetch.remote.transport import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


def image(
    reference: Reference | str,
    auth: Authenticator | None = None,
    keychain: Keychain = DefaultKeychain,
    transport: httpx.BaseTransport | None = None,
    timeout: httpx.Timeout | float | None = DEFAULT_TIMEOUT,
) -> RemoteImage:
    """Open an image in a remote registry

    :param reference: The image to access.
    :param auth: Credentials to use, resolved from `keychain` when omitted.
    :param keychain: Keychain used to resolve credentials for the registry.
    :param transport: httpx transport to send requests with.
    :param timeout: httpx timeout for every request.
    """
    if isinstance(reference, str):
        reference = Reference.from_string(reference)
    if auth is None:
        auth = keychain.resolve(reference.registry)
    logger.debug("Opening %s", reference)
    client = new_client(reference, auth, transport=transport, timeout=timeout)
    return RemoteImage(reference, client, owns_client=True)


__all__ = [
    "ConfigParseError",
    "Digest",
    "DigestMismatch",
    "HelperInvocationError",
    "ManifestError",
    "Reference",
    "RegistryError",
    "RemoteImage",
    "TransportError",
    "UnexpectedStatus",
    "VerifyingReader",
    "image",
]
