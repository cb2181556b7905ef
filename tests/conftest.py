"""Pytest configuration and shared fixtures.

This module registers custom markers for CI job separation and provides
shared fixtures for the test suite.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from composeremote.core.exceptions import (
    OperationCancelledError,
    RegistryNotFoundError,
)
from composeremote.core.models import (
    COMPOSE_PROJECT_MEDIA_TYPE,
    OCI_IMAGE_MANIFEST,
    Descriptor,
    compute_digest,
)
from composeremote.core.reference import parse_reference


if TYPE_CHECKING:
    import threading
    from collections.abc import Callable
    from pathlib import Path

    from composeremote.adapters.cache import ArtifactCache


LAYER_MEDIA_TYPE = "application/vnd.docker.compose.file+yaml"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "core: Core models, ports, and services")
    config.addinivalue_line("markers", "cache: Artifact cache adapter")
    config.addinivalue_line("markers", "loader: Resource loaders")
    config.addinivalue_line("markers", "registry: Artifact resolvers (http, layout)")
    config.addinivalue_line("markers", "progress: Rich progress integration")
    config.addinivalue_line("markers", "cli: CLI tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line("markers", "property: Property-based tests (hypothesis)")
    config.addinivalue_line(
        "markers", "tra: Test Responsibility Anchor (TRA) - namespace.Anchor format"
    )
    config.addinivalue_line(
        "markers",
        "tier: Test tier for CI job separation "
        "(0=instant, 1=fast, 2=standard, 3=slow, 4=manual)",
    )


def manifest_bytes(
    layers: list[bytes], config_media_type: str = COMPOSE_PROJECT_MEDIA_TYPE
) -> bytes:
    """Build OCI manifest JSON for the given layer contents."""
    config = b"{}"
    manifest = {
        "schemaVersion": 2,
        "mediaType": OCI_IMAGE_MANIFEST,
        "config": {
            "mediaType": config_media_type,
            "digest": compute_digest(config),
            "size": len(config),
        },
        "layers": [
            {
                "mediaType": LAYER_MEDIA_TYPE,
                "digest": compute_digest(layer),
                "size": len(layer),
            }
            for layer in layers
        ],
    }
    return json.dumps(manifest).encode()


class FakeRegistry:
    """In-memory ArtifactResolver that records every call.

    Blobs and manifests are stored by digest; tags map a repository tag to
    a manifest digest. Errors queued with fail_next() are raised, one per
    call, before the content is served.
    """

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.tags: dict[str, str] = {}
        self.calls: list[str] = []
        self._failures: dict[str, list[Exception]] = {}

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def add_blob(self, content: bytes) -> str:
        digest = compute_digest(content)
        self.blobs[digest] = content
        return digest

    def put_manifest(self, reference: str, content: bytes) -> str:
        """Store raw manifest bytes and point the reference's tag at them."""
        ref = parse_reference(reference)
        digest = self.add_blob(content)
        self.tags[f"{ref.name}:{ref.tag}"] = digest
        return digest

    def publish(
        self,
        reference: str,
        layers: list[bytes],
        config_media_type: str = COMPOSE_PROJECT_MEDIA_TYPE,
    ) -> str:
        """Store a compose artifact and return its manifest digest."""
        for layer in layers:
            self.add_blob(layer)
        return self.put_manifest(reference, manifest_bytes(layers, config_media_type))

    def fail_next(self, digest: str, *errors: Exception) -> None:
        """Raise errors on the next calls that fetch digest."""
        self._failures.setdefault(digest, []).extend(errors)

    def get(
        self, reference: str, cancel: threading.Event | None = None
    ) -> tuple[bytes, Descriptor]:
        self.calls.append(reference)
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(reference)

        ref = parse_reference(reference)
        digest = ref.digest or self.tags.get(f"{ref.name}:{ref.tag}")
        if digest is not None and self._failures.get(digest):
            raise self._failures[digest].pop(0)
        if digest is None or digest not in self.blobs:
            raise RegistryNotFoundError(f"{reference} not found", reference)

        content = self.blobs[digest]
        return content, Descriptor(
            digest=digest, media_type=OCI_IMAGE_MANIFEST, size=len(content)
        )


@pytest.fixture
def fake_registry() -> FakeRegistry:
    """Recording in-memory registry implementing ArtifactResolver."""
    return FakeRegistry()


@pytest.fixture
def artifact_cache(tmp_path: Path) -> ArtifactCache:
    """ArtifactCache rooted in a temporary directory."""
    from composeremote.adapters.cache import ArtifactCache

    return ArtifactCache(tmp_path / "oci")


@pytest.fixture
def make_manifest() -> Callable[..., bytes]:
    """Factory building manifest JSON bytes from layer contents."""
    return manifest_bytes
