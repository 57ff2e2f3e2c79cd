"""Registry credential resolution"""
from ocifetch.authn.authenticator import (
    ANONYMOUS,
    Anonymous,
    Authenticator,
    Basic,
    Bearer,
    Helper,
)
from ocifetch.authn.config import CredentialConfig, config_dir, load_config
from ocifetch.authn.helper import HelperRunner, SubprocessHelperRunner
from ocifetch.authn.keychain import DefaultKeychain, Keychain

__all__ = [
    "ANONYMOUS",
    "Anonymous",
    "Authenticator",
    "Basic",
    "Bearer",
    "CredentialConfig",
    "DefaultKeychain",
    "Helper",
    "HelperRunner",
    "Keychain",
    "SubprocessHelperRunner",
    "config_dir",
    "load_config",
]
