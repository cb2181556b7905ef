"""Core domain models for composeremote.

These models are pure Python dataclasses with no I/O dependencies.
They describe OCI artifacts as returned by a registry and the entries
kept in the local artifact cache.
"""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Self

from composeremote.core.exceptions import (
    DigestMismatchError,
    ManifestDecodeError,
    UnsupportedDigestError,
)


COMPOSE_PROJECT_MEDIA_TYPE = "application/vnd.docker.compose.project"
OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"

_DIGEST_RE = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-zA-Z0-9=_-]+$")

# Hash constructors for digest algorithms we can verify locally
_ALGORITHMS = {
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
}


def is_valid_digest(digest: str) -> bool:
    """Return True if digest has the form algorithm:encoded."""
    return bool(_DIGEST_RE.match(digest))


def digest_hex(digest: str) -> str:
    """Return the encoded part of a digest (the text after the colon).

    Raises:
        ValueError: If digest is not of the form algorithm:encoded.
    """
    if not is_valid_digest(digest):
        raise ValueError(f"invalid digest: {digest!r}")
    return digest.split(":", 1)[1]


def compute_digest(content: bytes, algorithm: str = "sha256") -> str:
    """Compute an OCI digest string for content.

    Raises:
        ValueError: If the algorithm is not supported.
    """
    try:
        hasher = _ALGORITHMS[algorithm]
    except KeyError:
        raise ValueError(f"unsupported digest algorithm: {algorithm}") from None
    return f"{algorithm}:{hasher(content).hexdigest()}"


def verify_digest(reference: str, content: bytes, expected: str) -> None:
    """Check that content hashes to the expected digest.

    Args:
        reference: Reference used in the error message.
        content: Raw bytes received from the registry.
        expected: Digest declared for this content.

    Raises:
        DigestMismatchError: If the computed digest differs.
        UnsupportedDigestError: If the digest algorithm cannot be computed.
    """
    algorithm = expected.split(":", 1)[0]
    if algorithm not in _ALGORITHMS:
        raise UnsupportedDigestError(reference, expected)
    actual = compute_digest(content, algorithm)
    if actual != expected:
        raise DigestMismatchError(reference, expected=expected, actual=actual)


@dataclass(frozen=True, slots=True)
class Descriptor:
    """Content descriptor for a manifest or blob.

    Attributes:
        digest: Content digest (e.g., "sha256:ab12...").
        media_type: Media type of the referenced content.
        size: Content size in bytes.
        annotations: Optional OCI annotations.
    """

    digest: str
    media_type: str = ""
    size: int = 0
    annotations: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate the digest syntax."""
        if not is_valid_digest(self.digest):
            raise ValueError(f"invalid digest: {self.digest!r}")

    @property
    def hex(self) -> str:
        """The encoded part of the digest."""
        return digest_hex(self.digest)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Build a Descriptor from its JSON representation."""
        return cls(
            digest=data["digest"],
            media_type=data.get("mediaType", ""),
            size=int(data.get("size", 0)),
            annotations=dict(data.get("annotations") or {}),
        )


@dataclass(frozen=True, slots=True)
class Manifest:
    """An OCI image manifest describing one artifact.

    Attributes:
        config: Descriptor of the config blob; its media type identifies
            the artifact kind.
        layers: Ordered layer descriptors. Order is authoritative.
        media_type: Manifest media type, if declared.
        schema_version: Manifest schema version.
    """

    config: Descriptor
    layers: tuple[Descriptor, ...] = ()
    media_type: str = ""
    schema_version: int = 2

    @classmethod
    def from_json(cls, content: bytes, reference: str = "") -> Self:
        """Decode manifest JSON bytes.

        Args:
            content: Raw manifest bytes.
            reference: Reference used in error messages.

        Returns:
            The decoded Manifest.

        Raises:
            ManifestDecodeError: If content is not a valid manifest.
        """
        try:
            data = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestDecodeError(
                f"Manifest for {reference} is not valid JSON: {e}",
                reference,
                cause=e,
            ) from e

        if not isinstance(data, dict):
            raise ManifestDecodeError(
                f"Manifest for {reference} must be a JSON object", reference
            )

        try:
            config = Descriptor.from_dict(data["config"])
            layers = tuple(
                Descriptor.from_dict(layer) for layer in data.get("layers") or []
            )
            schema_version = int(data.get("schemaVersion", 2))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ManifestDecodeError(
                f"Manifest for {reference} has an invalid descriptor: {e}",
                reference,
                cause=e,
            ) from e

        return cls(
            config=config,
            layers=layers,
            media_type=data.get("mediaType", ""),
            schema_version=schema_version,
        )


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A populated artifact cache entry.

    Attributes:
        digest_hex: Hex digest of the manifest the entry was built from.
        path: Path to the composed document.
        size: Document size in bytes.
        last_used: Last time the entry was created or served.
    """

    digest_hex: str
    path: Path
    size: int
    last_used: datetime
