"""Offline mode and local mirror example.

Offline mode skips remote references without failing, which lets a
caller keep working with the local files of a project. An OCI image
layout directory can stand in for a registry on air-gapped machines.
"""

from pathlib import Path

from composeremote import ArtifactCache, LoaderRegistry, OCILayoutResolver


# Offline: oci:// references resolve to "" and are dropped by resolve_all()
offline = LoaderRegistry.from_environment(
    offline=True,
    environ={"COMPOSE_EXPERIMENTAL_OCI_REMOTE": "1"},
)
print(offline.resolve_all(["compose.yaml", "oci://registry.example/app:v1"]))
# ['compose.yaml']

# Mirror: serve artifacts from ./mirror/<registry>/<repository>/
mirror = LoaderRegistry.from_environment(
    environ={"COMPOSE_EXPERIMENTAL_OCI_REMOTE": "1"},
    cache_dir=Path("./.compose-cache"),
    resolver=OCILayoutResolver(Path("./mirror")),
)
path = mirror.resolve("oci://registry.example/app:v1")

# Cache maintenance: keep the cache under 50 MB, oldest entries first
cache = ArtifactCache(Path("./.compose-cache"))
for entry in cache.prune(50_000_000):
    print(f"evicted {entry.digest_hex[:12]}")
