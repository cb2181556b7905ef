"""Resource loader adapters."""

from composeremote.adapters.loaders.oci import OCIRemoteLoader


__all__ = ["OCIRemoteLoader"]
