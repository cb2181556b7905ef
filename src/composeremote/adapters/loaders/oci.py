"""Resource loader for compose projects published as OCI artifacts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from composeremote.core.assembly import assemble
from composeremote.core.exceptions import InvalidArtifactError
from composeremote.core.models import (
    COMPOSE_PROJECT_MEDIA_TYPE,
    Manifest,
    digest_hex,
    verify_digest,
)
from composeremote.core.ports import NullProgressReporter
from composeremote.core.reference import parse_reference
from composeremote.core.retry import RetryPolicy, call_with_retry


if TYPE_CHECKING:
    import threading
    from collections.abc import Iterator
    from typing import BinaryIO

    from composeremote.adapters.cache.artifact_cache import ArtifactCache
    from composeremote.core.models import Descriptor
    from composeremote.core.ports import (
        ArtifactResolver,
        ProgressReporter,
        ProgressTask,
    )
    from composeremote.core.reference import Reference


logger = logging.getLogger(__name__)

PREFIX = "oci://"


class OCIRemoteLoader:
    """Loads ``oci://`` references into local compose files.

    The manifest digest keys the cache, so layers are only downloaded once
    per manifest. Tag references fetch the manifest on every load to learn
    its current digest; digest references are served from the cache without
    contacting the registry.

    Implements the ResourceLoader protocol.

    Example:
        >>> loader = OCIRemoteLoader(
        ...     resolver=HttpRegistryResolver(),
        ...     cache=ArtifactCache(default_cache_dir()),
        ... )
        >>> loader.load("oci://registry.example/app:v1")  # doctest: +SKIP
        '/home/me/.cache/docker-compose/oci/4f2a.../compose.yaml'
    """

    def __init__(
        self,
        resolver: ArtifactResolver,
        cache: ArtifactCache,
        *,
        offline: bool = False,
        retry: RetryPolicy | None = None,
        progress: ProgressReporter | None = None,
    ) -> None:
        """Initialize the loader.

        Args:
            resolver: Fetches manifests and blobs from the registry.
            cache: Cache the composed documents are stored in.
            offline: If True, load() returns "" without touching the network.
            retry: Retry policy for transient registry failures.
            progress: Optional reporter for layer fetch progress.
        """
        self._resolver = resolver
        self._cache = cache
        self._offline = offline
        self._retry = retry if retry is not None else RetryPolicy()
        self._progress = progress if progress is not None else NullProgressReporter()

    @property
    def offline(self) -> bool:
        """Whether the loader skips remote sources."""
        return self._offline

    @property
    def cache(self) -> ArtifactCache:
        """The cache composed documents are stored in."""
        return self._cache

    def accept(self, path: str) -> bool:
        """Tell whether path is an oci:// reference."""
        return path.startswith(PREFIX)

    def load(self, path: str, cancel: threading.Event | None = None) -> str:
        """Resolve an oci:// reference to a local compose file.

        Args:
            path: Reference such as "oci://registry.example/app:v1".
            cancel: Optional cancellation signal passed to registry calls.

        Returns:
            Path of the composed document, or "" in offline mode.

        Raises:
            ReferenceParseError: If the address is malformed.
            RegistryError: If the registry request fails.
            ManifestDecodeError: If the manifest is not valid JSON.
            InvalidArtifactError: If the artifact is not a compose project.
            DigestMismatchError: If a layer does not match its digest.
            OperationCancelledError: If cancel is set.
        """
        if self._offline:
            return ""

        ref = parse_reference(path[len(PREFIX) :])

        # A digest pins the manifest, so a hit needs no registry round trip
        if ref.digest is not None:
            cached = self._cache.lookup(digest_hex(ref.digest))
            if cached is not None:
                logger.debug("Cache hit for %s", ref)
                return str(cached)

        content, descriptor = self._get(ref, cancel)
        key = descriptor.hex

        cached = self._cache.lookup(key)
        if cached is not None:
            logger.debug("Cache hit for %s (%s)", ref, descriptor.digest)
            return str(cached)

        logger.debug("Cache miss for %s (%s)", ref, descriptor.digest)
        manifest = Manifest.from_json(content, str(ref))
        if manifest.config.media_type != COMPOSE_PROJECT_MEDIA_TYPE:
            raise InvalidArtifactError(str(ref), manifest.config.media_type)

        def write(dest: BinaryIO) -> None:
            task = self._progress.start_task(str(ref), len(manifest.layers))
            try:
                assemble(self._layers(ref, manifest, cancel, task), dest)
            finally:
                task.finish()

        document = self._cache.populate(key, write)
        return str(document)

    def _layers(
        self,
        ref: Reference,
        manifest: Manifest,
        cancel: threading.Event | None,
        task: ProgressTask,
    ) -> Iterator[bytes]:
        """Fetch and verify each layer in manifest order."""
        for i, layer in enumerate(manifest.layers, 1):
            digested = ref.with_digest(layer.digest)
            content, _ = self._get(digested, cancel)
            verify_digest(str(digested), content, layer.digest)
            yield content
            task.advance(i)

    def _get(
        self, ref: Reference, cancel: threading.Event | None
    ) -> tuple[bytes, Descriptor]:
        return call_with_retry(
            lambda: self._resolver.get(str(ref), cancel),
            self._retry,
            cancel,
            description=f"fetch {ref}",
        )
