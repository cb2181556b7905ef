"""Shared fixtures for integration tests."""

from __future__ import annotations

import re

import httpx
import pytest

from composeremote.adapters.registry import HttpRegistryResolver
from composeremote.core.models import OCI_IMAGE_MANIFEST, compute_digest


_ROUTE = re.compile(r"^/v2/(?P<repo>.+)/(?P<kind>manifests|blobs)/(?P<ident>[^/]+)$")


class RegistryServer:
    """In-memory OCI distribution API served through httpx.MockTransport.

    Manifests are addressable by tag or digest on /manifests/, everything
    stored is addressable by digest on /blobs/.
    """

    def __init__(self) -> None:
        self.blobs: dict[tuple[str, str], bytes] = {}
        self.manifests: dict[tuple[str, str], bytes] = {}
        self.requests: list[httpx.Request] = []
        self.unavailable = 0

    def push_blob(self, repo: str, content: bytes) -> str:
        digest = compute_digest(content)
        self.blobs[(repo, digest)] = content
        return digest

    def push_manifest(self, repo: str, tag: str, content: bytes) -> str:
        digest = compute_digest(content)
        self.manifests[(repo, tag)] = content
        self.manifests[(repo, digest)] = content
        return digest

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unavailable:
            self.unavailable -= 1
            return httpx.Response(503)

        match = _ROUTE.match(request.url.path)
        if match is None:
            return httpx.Response(404)
        key = (match["repo"], match["ident"])
        store = self.manifests if match["kind"] == "manifests" else self.blobs
        if key not in store:
            return httpx.Response(404)

        content = store[key]
        headers = {"Docker-Content-Digest": compute_digest(content)}
        if match["kind"] == "manifests":
            headers["Content-Type"] = OCI_IMAGE_MANIFEST
        return httpx.Response(200, content=content, headers=headers)


@pytest.fixture
def registry_server() -> RegistryServer:
    """Empty in-memory registry."""
    return RegistryServer()


@pytest.fixture
def http_resolver(registry_server: RegistryServer):
    """HttpRegistryResolver talking to registry_server."""
    client = httpx.Client(transport=httpx.MockTransport(registry_server.handle))
    resolver = HttpRegistryResolver(client)
    yield resolver
    resolver.close()
