"""Registry artifact reference parsing.

Implements the Docker reference grammar used by registries:
``[domain[:port]/]path[:tag][@digest]``, including the normalization
rules applied by the docker CLI (implicit ``docker.io`` domain,
``library/`` prefix for official images, default ``latest`` tag).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Self

from composeremote.core.exceptions import ReferenceParseError


DEFAULT_DOMAIN = "docker.io"
LEGACY_DEFAULT_DOMAIN = "index.docker.io"
OFFICIAL_REPO_PREFIX = "library/"
DEFAULT_TAG = "latest"
NAME_TOTAL_LENGTH_MAX = 255

_ALPHANUMERIC = r"[a-z0-9]+"
_SEPARATOR = r"(?:[._]|__|[-]+)"
_PATH_COMPONENT = rf"{_ALPHANUMERIC}(?:{_SEPARATOR}{_ALPHANUMERIC})*"
_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_IPV6 = r"\[(?:[a-fA-F0-9:]+)\]"
_DOMAIN = rf"(?:{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*|{_IPV6})(?::[0-9]+)?"
_TAG = r"[\w][\w.-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"

_NAME = rf"(?:{_DOMAIN}/)?{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*"
_REFERENCE_RE = re.compile(
    rf"^(?P<name>{_NAME})(?::(?P<tag>{_TAG}))?(?:@(?P<digest>{_DIGEST}))?$"
)
_ANCHORED_IDENTIFIER_RE = re.compile(r"^[a-f0-9]{64}$")


@dataclass(frozen=True, slots=True)
class Reference:
    """A normalized registry artifact address.

    Attributes:
        domain: Registry host, with optional port (e.g., "docker.io").
        path: Repository path within the registry (e.g., "library/redis").
        tag: Optional tag.
        digest: Optional content digest. Takes precedence over tag.

    Example:
        >>> ref = parse_reference("registry.example/app:v1")
        >>> ref.domain, ref.path, ref.tag
        ('registry.example', 'app', 'v1')
    """

    domain: str
    path: str
    tag: str | None = None
    digest: str | None = None

    @property
    def name(self) -> str:
        """Fully qualified repository name (domain/path)."""
        return f"{self.domain}/{self.path}"

    @property
    def identifier(self) -> str:
        """The digest if present, otherwise the tag."""
        return self.digest or self.tag or DEFAULT_TAG

    def with_digest(self, digest: str) -> Self:
        """Return a reference to digest within the same repository."""
        return replace(self, digest=digest)

    def __str__(self) -> str:
        """Render as name[:tag][@digest]."""
        text = self.name
        if self.tag:
            text += f":{self.tag}"
        if self.digest:
            text += f"@{self.digest}"
        return text


def _split_domain(name: str) -> tuple[str, str]:
    """Split a repository name into domain and remainder, normalizing."""
    i = name.find("/")
    if i == -1 or (
        not any(c in name[:i] for c in ".:")
        and name[:i] != "localhost"
        and name[:i].lower() == name[:i]
    ):
        domain, remainder = DEFAULT_DOMAIN, name
    else:
        domain, remainder = name[:i], name[i + 1 :]

    if domain == LEGACY_DEFAULT_DOMAIN:
        domain = DEFAULT_DOMAIN
    if domain == DEFAULT_DOMAIN and "/" not in remainder:
        remainder = OFFICIAL_REPO_PREFIX + remainder
    return domain, remainder


def parse_reference(text: str) -> Reference:
    """Parse and normalize a registry artifact address.

    When both a tag and a digest are given, the digest wins and the tag is
    dropped. A reference with neither gets the "latest" tag.

    Args:
        text: Address without scheme (e.g., "registry.example/app:v1").

    Returns:
        The normalized Reference.

    Raises:
        ReferenceParseError: If text is not a valid reference.
    """
    if not text:
        raise ReferenceParseError(
            text, "repository name must have at least one component"
        )
    if _ANCHORED_IDENTIFIER_RE.match(text):
        raise ReferenceParseError(
            text, "cannot specify 64-byte hexadecimal strings as a repository name"
        )

    remote_name, sep, suffix = text.partition("@")
    name_part, tag_sep, tag = remote_name, "", ""
    last_colon = remote_name.rfind(":")
    if last_colon > remote_name.rfind("/"):
        name_part, tag_sep, tag = (
            remote_name[:last_colon],
            ":",
            remote_name[last_colon + 1 :],
        )

    domain, path = _split_domain(name_part)
    if path.lower() != path:
        raise ReferenceParseError(text, "repository name must be lowercase")

    normalized = f"{domain}/{path}{tag_sep}{tag}{sep}{suffix}"
    match = _REFERENCE_RE.match(normalized)
    if match is None:
        raise ReferenceParseError(text, "invalid reference format")
    if len(match.group("name")) > NAME_TOTAL_LENGTH_MAX:
        raise ReferenceParseError(
            text,
            f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters",
        )

    digest = match.group("digest")
    tag_value = match.group("tag")
    if digest is not None:
        tag_value = None
    elif tag_value is None:
        tag_value = DEFAULT_TAG

    return Reference(domain=domain, path=path, tag=tag_value, digest=digest)
