"""Artifact resolver reading OCI image layouts from the local filesystem."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from composeremote.core.exceptions import (
    OperationCancelledError,
    RegistryError,
    RegistryNotFoundError,
)
from composeremote.core.models import (
    OCI_IMAGE_MANIFEST,
    Descriptor,
    compute_digest,
    verify_digest,
)
from composeremote.core.reference import parse_reference


if TYPE_CHECKING:
    import threading

    from composeremote.core.reference import Reference


logger = logging.getLogger(__name__)

REF_NAME_ANNOTATION = "org.opencontainers.image.ref.name"
LAYOUT_VERSION = {"imageLayoutVersion": "1.0.0"}


class OCILayoutResolver:
    """Resolver serving references from OCI image layout directories.

    Each repository lives in ``<root>/<domain>/<path>/`` as a standard
    image layout (``oci-layout``, ``index.json``, ``blobs/<alg>/<hex>``).
    Tags resolve through the ``org.opencontainers.image.ref.name``
    annotation of the index. A port in the domain is stored with ``_``
    instead of ``:``.

    Implements the ArtifactResolver protocol. Useful for air-gapped
    mirrors and for testing without a registry.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the resolver.

        Args:
            root: Directory containing one layout per repository.
        """
        self.root = root

    def layout_dir(self, ref: Reference) -> Path:
        """Get the layout directory holding a repository."""
        return self.root / ref.domain.replace(":", "_") / ref.path

    def _blob_path(self, layout: Path, digest: str) -> Path:
        algorithm, encoded = digest.split(":", 1)
        return layout / "blobs" / algorithm / encoded

    def _read_index(self, layout: Path, ref: Reference) -> dict[str, Any]:
        index_path = layout / "index.json"
        try:
            with index_path.open() as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise RegistryNotFoundError(
                f"No image layout for {ref.name} at {layout}", str(ref), cause=e
            ) from e
        except json.JSONDecodeError as e:
            raise RegistryError(
                f"Corrupt index.json in {layout}", str(ref), cause=e
            ) from e

    def _find_in_index(
        self, index: dict[str, Any], ref: Reference
    ) -> dict[str, Any] | None:
        for entry in index.get("manifests", []):
            annotations = entry.get("annotations") or {}
            if ref.digest is not None and entry.get("digest") == ref.digest:
                return entry
            if ref.digest is None and annotations.get(REF_NAME_ANNOTATION) == ref.tag:
                return entry
        return None

    def get(
        self, reference: str, cancel: threading.Event | None = None
    ) -> tuple[bytes, Descriptor]:
        """Read the manifest or blob reference points to.

        Raises:
            RegistryNotFoundError: If the layout, tag, or blob is missing.
            RegistryError: If index.json is corrupt.
            DigestMismatchError: If a blob does not match its digest.
            OperationCancelledError: If cancel is set.
        """
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(reference)

        ref = parse_reference(reference)
        layout = self.layout_dir(ref)
        index = self._read_index(layout, ref)
        entry = self._find_in_index(index, ref)

        if ref.digest is not None:
            digest = ref.digest
        elif entry is not None:
            digest = entry["digest"]
        else:
            raise RegistryNotFoundError(
                f"Tag {ref.tag} not found for {ref.name}", str(ref)
            )

        blob_path = self._blob_path(layout, digest)
        try:
            content = blob_path.read_bytes()
        except FileNotFoundError as e:
            raise RegistryNotFoundError(
                f"Blob {digest} not found for {ref.name}", str(ref), cause=e
            ) from e
        verify_digest(str(ref), content, digest)
        logger.debug("Read %s from %s", ref, blob_path)

        media_type = entry.get("mediaType", "") if entry is not None else ""
        return content, Descriptor(
            digest=digest, media_type=media_type, size=len(content)
        )

    def write_blob(self, reference: str, content: bytes) -> Descriptor:
        """Store content as a blob in the repository of reference.

        Returns:
            Descriptor of the stored blob.
        """
        ref = parse_reference(reference)
        layout = self._ensure_layout(ref)
        digest = compute_digest(content)
        blob_path = self._blob_path(layout, digest)
        blob_path.parent.mkdir(parents=True, exist_ok=True)
        blob_path.write_bytes(content)
        return Descriptor(digest=digest, size=len(content))

    def tag(self, reference: str, manifest: bytes) -> Descriptor:
        """Store a manifest and point the tag of reference at it.

        Returns:
            Descriptor of the stored manifest.
        """
        ref = parse_reference(reference)
        stored = self.write_blob(reference, manifest)
        descriptor = Descriptor(
            digest=stored.digest,
            media_type=OCI_IMAGE_MANIFEST,
            size=stored.size,
            annotations={REF_NAME_ANNOTATION: ref.tag or ""},
        )

        layout = self.layout_dir(ref)
        index = self._read_index(layout, ref)
        manifests = [
            m
            for m in index.get("manifests", [])
            if (m.get("annotations") or {}).get(REF_NAME_ANNOTATION) != ref.tag
        ]
        manifests.append(
            {
                "mediaType": descriptor.media_type,
                "digest": descriptor.digest,
                "size": descriptor.size,
                "annotations": descriptor.annotations,
            }
        )
        index["manifests"] = manifests
        (layout / "index.json").write_text(json.dumps(index, indent=2))
        return descriptor

    def _ensure_layout(self, ref: Reference) -> Path:
        layout = self.layout_dir(ref)
        layout.mkdir(parents=True, exist_ok=True)
        marker = layout / "oci-layout"
        if not marker.exists():
            marker.write_text(json.dumps(LAYOUT_VERSION))
        index_path = layout / "index.json"
        if not index_path.exists():
            index_path.write_text(json.dumps({"schemaVersion": 2, "manifests": []}))
        return layout
