"""Artifact cache adapters."""

from composeremote.adapters.cache.artifact_cache import ArtifactCache


__all__ = ["ArtifactCache"]
