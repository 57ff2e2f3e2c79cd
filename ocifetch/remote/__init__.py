from ocifetch.remote.image import RemoteImage
from ocifetch.remote.manifest import ConfigFile, Descriptor, Manifest
from ocifetch.remote.transport import RegistryAuth, new_client

__all__ = [
    "ConfigFile",
    "Descriptor",
    "Manifest",
    "RegistryAuth",
    "RemoteImage",
    "new_client",
]
