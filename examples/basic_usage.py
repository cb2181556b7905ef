"""Basic oci:// resolution example.

This example shows the simplest usage pattern: build a loader registry
from the environment and resolve a list of compose file references.
Remote references are fetched once per manifest digest and cached.
"""

import os

from composeremote import LoaderRegistry


# The OCI loader is opt-in, like in the docker compose CLI
os.environ.setdefault("COMPOSE_EXPERIMENTAL_OCI_REMOTE", "1")

# Option 1: Factory method (recommended for most cases)
# Reads the activation gate, cache location and size bound from the environment
registry = LoaderRegistry.from_environment()

# Option 2: Manual wiring (full control over adapters)
# registry = LoaderRegistry(
#     [
#         OCIRemoteLoader(
#             resolver=HttpRegistryResolver(insecure_registries=["localhost:5000"]),
#             cache=ArtifactCache(Path("./.compose-cache"), max_bytes=100_000_000),
#         )
#     ]
# )

# Local paths pass through unchanged, oci:// references become cached files
paths = registry.resolve_all(
    [
        "compose.yaml",
        "oci://docker.io/myorg/myproject:latest",
    ]
)
for path in paths:
    print(path)

# Subsequent resolutions only fetch the manifest; when its digest is
# unchanged the cached document is returned immediately
paths = registry.resolve_all(["oci://docker.io/myorg/myproject:latest"])
