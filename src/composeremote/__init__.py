"""composeremote - Resolve oci:// compose references into local files.

This library maps scheme-prefixed references to local configuration files,
fetching compose projects published as OCI artifacts and caching the
assembled documents by manifest digest.

Example:
    >>> from composeremote import LoaderRegistry
    >>> registry = LoaderRegistry.from_environment()
    >>> path = registry.resolve("oci://registry.example/app:v1")  # doctest: +SKIP
"""

from composeremote.adapters.cache import ArtifactCache
from composeremote.adapters.loaders import OCIRemoteLoader
from composeremote.adapters.registry import HttpRegistryResolver, OCILayoutResolver
from composeremote.config import (
    default_cache_dir,
    oci_remote_loader_enabled,
)
from composeremote.core.assembly import SEPARATOR, assemble
from composeremote.core.exceptions import (
    ArtifactError,
    CacheError,
    ComposeRemoteError,
    ConfigurationError,
    DigestMismatchError,
    InvalidArtifactError,
    ManifestDecodeError,
    OperationCancelledError,
    ReferenceParseError,
    RegistryAccessError,
    RegistryError,
    RegistryNotFoundError,
    RegistryUnavailableError,
    UnsupportedDigestError,
    UnsupportedReferenceError,
)
from composeremote.core.models import CacheEntry, Descriptor, Manifest
from composeremote.core.ports import (
    ArtifactResolver,
    NullProgressReporter,
    ProgressReporter,
    ProgressTask,
    ResourceLoader,
)
from composeremote.core.reference import Reference, parse_reference
from composeremote.core.retry import RetryPolicy
from composeremote.core.services import LoaderRegistry
from composeremote.progress import RichProgressReporter


__version__ = "0.1.0"

__all__ = [
    "SEPARATOR",
    "ArtifactCache",
    "ArtifactError",
    "ArtifactResolver",
    "CacheEntry",
    "CacheError",
    "ComposeRemoteError",
    "ConfigurationError",
    "Descriptor",
    "DigestMismatchError",
    "HttpRegistryResolver",
    "InvalidArtifactError",
    "LoaderRegistry",
    "Manifest",
    "ManifestDecodeError",
    "NullProgressReporter",
    "OCILayoutResolver",
    "OCIRemoteLoader",
    "OperationCancelledError",
    "ProgressReporter",
    "ProgressTask",
    "Reference",
    "ReferenceParseError",
    "RegistryAccessError",
    "RegistryError",
    "RegistryNotFoundError",
    "RegistryUnavailableError",
    "UnsupportedDigestError",
    "ResourceLoader",
    "RetryPolicy",
    "RichProgressReporter",
    "UnsupportedReferenceError",
    "__version__",
    "assemble",
    "default_cache_dir",
    "oci_remote_loader_enabled",
    "parse_reference",
]
