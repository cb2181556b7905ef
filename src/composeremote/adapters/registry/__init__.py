"""Artifact resolver adapters."""

from composeremote.adapters.registry.http import HttpRegistryResolver
from composeremote.adapters.registry.layout import OCILayoutResolver


__all__ = ["HttpRegistryResolver", "OCILayoutResolver"]
