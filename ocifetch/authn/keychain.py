import logging
from pathlib import Path

from ocifetch.authn import helper
from ocifetch.authn.authenticator import ANONYMOUS, Authenticator
from ocifetch.authn.config import CredentialConfig, load_config

logger = logging.getLogger(__name__)


def host_variants(host: str) -> list[str]:
    """Keys under which credentials for `host` can be stored"""
    return [
        host,
        f"https://{host}",
        f"http://{host}",
        f"https://{host}/v1/",
        f"https://{host}/v2/",
        f"http://{host}/v1/",
        f"http://{host}/v2/",
    ]


def _lookup(entries: dict, host: str):
    for key in host_variants(host):
        if key in entries:
            return key, entries[key]
    return None, None


class Keychain:
    """Maps a registry host to an Authenticator using the credential config

    Precedence, first match wins:
        1. credHelpers entry for the host
        2. credStore
        3. auths entry for the host
        4. anonymous
    """

    def __init__(
        self,
        config_path: Path | None = None,
        runner: helper.HelperRunner | None = None,
    ):
        self.config_path = config_path
        self.runner = runner or helper.SubprocessHelperRunner()

    def load(self) -> CredentialConfig:
        return load_config(self.config_path)

    def resolve(self, host: str) -> Authenticator:
        config = self.load()

        key, name = _lookup(config.cred_helpers, host)
        if name:
            logger.debug("Using credential helper %s (%s) for %s", name, key, host)
            return helper.invoke(name, host, self.runner)

        if config.cred_store:
            logger.debug("Using credential store %s for %s", config.cred_store, host)
            return helper.invoke(config.cred_store, host, self.runner)

        key, entry = _lookup(config.auths, host)
        if entry is not None:
            try:
                auth = entry.authenticator()
            except ValueError as e:
                logger.warning("Ignoring auths entry %s: %s", key, e)
                auth = None
            if auth is not None:
                logger.debug("Using auths entry %s for %s", key, host)
                return auth

        logger.debug("No credentials for %s, using anonymous access", host)
        return ANONYMOUS


DefaultKeychain = Keychain()
