"""
DN42 registry access: object lookups and the git-backed sync.
"""

from autopeer.registry.objects import (
    AsObject,
    KeyCert,
    Maintainer,
    Registry,
    RegistryError,
    parse_object,
)
from autopeer.registry.sync import RegistrySync, RegistrySyncError

__all__ = [
    "AsObject",
    "KeyCert",
    "Maintainer",
    "Registry",
    "RegistryError",
    "parse_object",
    "RegistrySync",
    "RegistrySyncError",
]
