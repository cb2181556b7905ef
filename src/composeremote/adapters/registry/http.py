"""Artifact resolver speaking the OCI distribution API over HTTP."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from composeremote.core.exceptions import (
    OperationCancelledError,
    RegistryAccessError,
    RegistryError,
    RegistryNotFoundError,
    RegistryUnavailableError,
)
from composeremote.core.models import (
    DOCKER_MANIFEST_V2,
    OCI_IMAGE_MANIFEST,
    Descriptor,
    compute_digest,
    is_valid_digest,
    verify_digest,
)
from composeremote.core.reference import DEFAULT_DOMAIN, parse_reference


if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable

    from composeremote.core.reference import Reference


logger = logging.getLogger(__name__)

# Chunk size for streaming downloads (64KB)
_CHUNK_SIZE = 64 * 1024

DOCKER_HUB_HOST = "registry-1.docker.io"
MANIFEST_ACCEPT = ", ".join([OCI_IMAGE_MANIFEST, DOCKER_MANIFEST_V2])
_LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "[::1]"}


class HttpRegistryResolver:
    """Resolver fetching manifests and blobs from a registry's /v2/ API.

    Tag references are fetched from the manifests endpoint. Digest
    references are fetched from the blobs endpoint, falling back to the
    manifests endpoint when the registry reports the blob as unknown.
    Content addressed by digest is verified before it is returned.

    Implements the ArtifactResolver protocol. Requests are anonymous.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        insecure_registries: Iterable[str] = (),
        timeout: float = 30.0,
    ) -> None:
        """Initialize the resolver.

        Args:
            client: Optional httpx client. If not provided, creates one.
            insecure_registries: Registry hosts reached over plain HTTP.
                Loopback hosts always are.
            timeout: Request timeout in seconds for the default client.
        """
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._insecure = set(insecure_registries)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def get(
        self, reference: str, cancel: threading.Event | None = None
    ) -> tuple[bytes, Descriptor]:
        """Fetch the manifest or blob reference points to.

        Args:
            reference: Registry reference, tag- or digest-qualified.
            cancel: Optional cancellation signal, checked before the request
                and between received chunks.

        Returns:
            Tuple of (content, descriptor).

        Raises:
            ReferenceParseError: If reference is malformed.
            RegistryNotFoundError: If the registry returns 404.
            RegistryAccessError: If the registry returns 401 or 403.
            RegistryUnavailableError: On timeouts, connection errors, 429, 5xx.
            RegistryError: For other HTTP errors.
            DigestMismatchError: If content does not match its digest.
            OperationCancelledError: If cancel is set.
        """
        ref = parse_reference(reference)
        if ref.digest is None:
            return self._fetch(ref, "manifests", cancel)
        try:
            return self._fetch(ref, "blobs", cancel)
        except RegistryNotFoundError:
            return self._fetch(ref, "manifests", cancel)

    def _base_url(self, ref: Reference) -> str:
        host = DOCKER_HUB_HOST if ref.domain == DEFAULT_DOMAIN else ref.domain
        hostname = host.rsplit(":", 1)[0] if not host.endswith("]") else host
        insecure = host in self._insecure or hostname in _LOOPBACK_HOSTS
        scheme = "http" if insecure else "https"
        return f"{scheme}://{host}"

    def _fetch(
        self, ref: Reference, kind: str, cancel: threading.Event | None
    ) -> tuple[bytes, Descriptor]:
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(str(ref))

        url = f"{self._base_url(ref)}/v2/{ref.path}/{kind}/{ref.identifier}"
        headers = {"Accept": MANIFEST_ACCEPT} if kind == "manifests" else {}
        logger.debug("GET %s", url)

        chunks: list[bytes] = []
        try:
            with self._client.stream("GET", url, headers=headers) as response:
                if response.status_code >= 400:
                    raise self._translate_status(response.status_code, ref, url)
                for chunk in response.iter_bytes(_CHUNK_SIZE):
                    if cancel is not None and cancel.is_set():
                        raise OperationCancelledError(str(ref))
                    chunks.append(chunk)
                media_type = response.headers.get("Content-Type", "")
                header_digest = response.headers.get("Docker-Content-Digest")
        except httpx.TimeoutException as e:
            raise RegistryUnavailableError(
                f"Timed out fetching {ref}", str(ref), cause=e
            ) from e
        except httpx.TransportError as e:
            raise RegistryUnavailableError(
                f"Cannot reach {ref.domain}: {e}", str(ref), cause=e
            ) from e

        content = b"".join(chunks)
        if header_digest is not None and not is_valid_digest(header_digest):
            header_digest = None
        digest = ref.digest or header_digest or compute_digest(content)
        verify_digest(str(ref), content, digest)

        return content, Descriptor(
            digest=digest,
            media_type=media_type.split(";", 1)[0].strip(),
            size=len(content),
        )

    @staticmethod
    def _translate_status(status: int, ref: Reference, url: str) -> RegistryError:
        """Map an HTTP error status to a domain exception."""
        message = f"GET {url} returned {status}"
        if status == 404:
            return RegistryNotFoundError(
                f"{ref} not found in registry ({message})", str(ref)
            )
        if status in (401, 403):
            return RegistryAccessError(f"Access denied to {ref} ({message})", str(ref))
        if status == 429 or status >= 500:
            return RegistryUnavailableError(
                f"Registry unavailable for {ref} ({message})", str(ref)
            )
        return RegistryError(f"Registry error for {ref} ({message})", str(ref))
