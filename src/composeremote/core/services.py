"""Core domain services for composeremote."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from composeremote.core.exceptions import UnsupportedReferenceError


if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable, Mapping, Sequence

    from composeremote.core.ports import (
        ArtifactResolver,
        ProgressReporter,
        ResourceLoader,
    )


logger = logging.getLogger(__name__)


class LoaderRegistry:
    """Dispatches references to the first resource loader that accepts them.

    Loaders are consulted in registration order. Schemes are expected to
    be mutually exclusive by prefix, so order only matters for overlapping
    custom loaders.
    """

    def __init__(self, loaders: Sequence[ResourceLoader] = ()) -> None:
        self._loaders = list(loaders)

    @classmethod
    def from_environment(
        cls,
        *,
        offline: bool = False,
        environ: Mapping[str, str] | None = None,
        cache_dir: Path | str | None = None,
        resolver: ArtifactResolver | None = None,
        progress: ProgressReporter | None = None,
    ) -> LoaderRegistry:
        """Create a registry with the remote loaders enabled in the environment.

        The OCI loader is registered when COMPOSE_EXPERIMENTAL_OCI_REMOTE is
        true. Gate values are validated before any network activity.

        Args:
            offline: Build loaders in offline mode (remote sources skipped).
            environ: Environment mapping. Defaults to os.environ.
            cache_dir: Cache directory. Defaults to <user cache>/docker-compose/oci.
            resolver: Artifact resolver. Defaults to HttpRegistryResolver.
            progress: Optional progress reporter for layer fetches.

        Returns:
            LoaderRegistry holding the enabled loaders.

        Raises:
            ConfigurationError: If an environment value is invalid.
        """
        from composeremote.adapters.cache import ArtifactCache
        from composeremote.adapters.loaders import OCIRemoteLoader
        from composeremote.config import (
            cache_max_bytes,
            default_cache_dir,
            oci_remote_loader_enabled,
        )

        loaders: list[ResourceLoader] = []
        if oci_remote_loader_enabled(environ):
            if resolver is None:
                from composeremote.adapters.registry import HttpRegistryResolver

                resolver = HttpRegistryResolver()
            directory = Path(cache_dir) if cache_dir else default_cache_dir(environ)
            cache = ArtifactCache(directory, max_bytes=cache_max_bytes(environ))
            loaders.append(
                OCIRemoteLoader(resolver, cache, offline=offline, progress=progress)
            )
            logger.debug("OCI remote loader enabled, cache at %s", directory)

        return cls(loaders)

    @property
    def loaders(self) -> list[ResourceLoader]:
        """Registered loaders, in dispatch order."""
        return list(self._loaders)

    def register(self, loader: ResourceLoader) -> None:
        """Append a loader after the existing ones."""
        self._loaders.append(loader)

    def find(self, reference: str) -> ResourceLoader | None:
        """Return the first loader accepting reference, or None."""
        for loader in self._loaders:
            if loader.accept(reference):
                return loader
        return None

    def load(self, reference: str, cancel: threading.Event | None = None) -> str:
        """Load reference with the first accepting loader.

        Args:
            reference: Scheme-prefixed reference.
            cancel: Optional cancellation signal.

        Returns:
            Local file path ("" when the loader skips the source).

        Raises:
            UnsupportedReferenceError: If no loader accepts the reference.
        """
        loader = self.find(reference)
        if loader is None:
            raise UnsupportedReferenceError(
                reference, loaders=[type(lo).__name__ for lo in self._loaders]
            )
        return loader.load(reference, cancel)

    def resolve(self, reference: str, cancel: threading.Event | None = None) -> str:
        """Resolve reference to a local path.

        References no loader accepts are ordinary local paths and are
        returned unchanged.
        """
        loader = self.find(reference)
        if loader is None:
            return reference
        return loader.load(reference, cancel)

    def resolve_all(
        self, references: Iterable[str], cancel: threading.Event | None = None
    ) -> list[str]:
        """Resolve references in order, dropping skipped sources.

        A loader returning "" (offline mode) means the source is skipped,
        not that loading failed.
        """
        resolved = []
        for reference in references:
            path = self.resolve(reference, cancel)
            if path:
                resolved.append(path)
            else:
                logger.debug("Skipping %s", reference)
        return resolved
