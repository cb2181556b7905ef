"""Unit tests for core domain models."""

from __future__ import annotations

import hashlib
import json

import pytest

from composeremote.core.exceptions import (
    ArtifactError,
    DigestMismatchError,
    ManifestDecodeError,
    UnsupportedDigestError,
)
from composeremote.core.models import (
    COMPOSE_PROJECT_MEDIA_TYPE,
    Descriptor,
    Manifest,
    compute_digest,
    digest_hex,
    is_valid_digest,
    verify_digest,
)


@pytest.mark.core
@pytest.mark.tier(0)
class TestDigests:
    """Tests for digest helpers."""

    def test_compute_digest_sha256(self) -> None:
        """compute_digest() prefixes the hex sha256 with its algorithm."""
        expected = "sha256:" + hashlib.sha256(b"data").hexdigest()
        assert compute_digest(b"data") == expected

    def test_compute_digest_sha512(self) -> None:
        """sha512 is supported as well."""
        digest = compute_digest(b"data", "sha512")
        assert digest == "sha512:" + hashlib.sha512(b"data").hexdigest()

    def test_compute_digest_unknown_algorithm(self) -> None:
        """Unsupported algorithms raise ValueError."""
        with pytest.raises(ValueError, match="unsupported"):
            compute_digest(b"data", "md5")

    def test_is_valid_digest(self) -> None:
        assert is_valid_digest("sha256:" + "0" * 64)
        assert not is_valid_digest("sha256")
        assert not is_valid_digest("SHA256:abc")
        assert not is_valid_digest("")

    def test_digest_hex_returns_encoded_part(self) -> None:
        """digest_hex() strips the algorithm."""
        assert digest_hex("sha256:abc123") == "abc123"

    def test_digest_hex_rejects_invalid(self) -> None:
        with pytest.raises(ValueError):
            digest_hex("not-a-digest")

    def test_verify_digest_accepts_matching_content(self) -> None:
        """verify_digest() returns silently when content matches."""
        verify_digest("ref", b"data", compute_digest(b"data"))

    def test_verify_digest_raises_on_mismatch(self) -> None:
        """verify_digest() reports expected and actual digests."""
        expected = compute_digest(b"data")

        with pytest.raises(DigestMismatchError) as exc_info:
            verify_digest("registry.example/app@x", b"tampered", expected)

        assert exc_info.value.expected == expected
        assert exc_info.value.actual == compute_digest(b"tampered")
        assert exc_info.value.reference == "registry.example/app@x"

    def test_verify_digest_unsupported_algorithm(self) -> None:
        """Digests that cannot be computed raise a library error."""
        with pytest.raises(UnsupportedDigestError) as exc_info:
            verify_digest("ref", b"data", "sha384:" + "0" * 96)

        assert isinstance(exc_info.value, ArtifactError)
        assert exc_info.value.digest == "sha384:" + "0" * 96


@pytest.mark.core
@pytest.mark.tier(0)
class TestDescriptor:
    """Tests for Descriptor."""

    def test_hex_property(self) -> None:
        """hex returns the digest without its algorithm."""
        descriptor = Descriptor(digest=compute_digest(b"x"))
        assert descriptor.hex == hashlib.sha256(b"x").hexdigest()

    def test_invalid_digest_rejected(self) -> None:
        """Descriptors must carry a well-formed digest."""
        with pytest.raises(ValueError):
            Descriptor(digest="nope")

    def test_from_dict(self) -> None:
        """from_dict() reads the OCI JSON field names."""
        digest = compute_digest(b"x")
        descriptor = Descriptor.from_dict(
            {
                "mediaType": "text/plain",
                "digest": digest,
                "size": 1,
                "annotations": {"k": "v"},
            }
        )

        assert descriptor == Descriptor(
            digest=digest, media_type="text/plain", size=1, annotations={"k": "v"}
        )

    def test_is_frozen(self) -> None:
        """Descriptors are immutable."""
        descriptor = Descriptor(digest=compute_digest(b"x"))
        with pytest.raises(AttributeError):
            descriptor.size = 5  # type: ignore[misc]


@pytest.mark.core
@pytest.mark.tier(0)
class TestManifest:
    """Tests for Manifest.from_json()."""

    def test_decodes_config_and_layers(self, make_manifest) -> None:
        """Config media type and layer order are preserved."""
        layers = [b"first", b"second", b"third"]
        manifest = Manifest.from_json(make_manifest(layers))

        assert manifest.config.media_type == COMPOSE_PROJECT_MEDIA_TYPE
        assert [layer.digest for layer in manifest.layers] == [
            compute_digest(layer) for layer in layers
        ]
        assert manifest.schema_version == 2

    def test_manifest_without_layers(self) -> None:
        """A missing layers field means no layers."""
        content = json.dumps({"config": {"digest": compute_digest(b"{}")}})
        manifest = Manifest.from_json(content.encode())

        assert manifest.layers == ()

    def test_invalid_json_raises(self) -> None:
        """Non-JSON content raises ManifestDecodeError."""
        with pytest.raises(ManifestDecodeError, match="not valid JSON") as exc_info:
            Manifest.from_json(b"not json", "registry.example/app:v1")

        assert exc_info.value.reference == "registry.example/app:v1"
        assert exc_info.value.cause is not None

    def test_non_object_raises(self) -> None:
        """A JSON array is not a manifest."""
        with pytest.raises(ManifestDecodeError, match="JSON object"):
            Manifest.from_json(b"[]")

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"config": {}},
            {"config": {"digest": "bad"}},
            {"config": "x"},
            {"config": {"digest": "sha256:" + "0" * 64}, "layers": [1]},
        ],
    )
    def test_invalid_descriptor_raises(self, data: dict) -> None:
        """Missing or malformed descriptors raise ManifestDecodeError."""
        with pytest.raises(ManifestDecodeError):
            Manifest.from_json(json.dumps(data).encode())
