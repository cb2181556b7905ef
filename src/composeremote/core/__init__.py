"""Core domain module for composeremote.

This module contains pure Python domain models and port definitions.
It has no network dependencies and can be tested in isolation.
"""

from composeremote.core.models import CacheEntry, Descriptor, Manifest
from composeremote.core.ports import ArtifactResolver, ProgressTask, ResourceLoader
from composeremote.core.reference import Reference, parse_reference


__all__ = [
    "ArtifactResolver",
    "CacheEntry",
    "Descriptor",
    "Manifest",
    "ProgressTask",
    "Reference",
    "ResourceLoader",
    "parse_reference",
]
