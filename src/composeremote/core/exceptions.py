"""Domain exceptions for composeremote.

All library errors inherit from ComposeRemoteError, allowing callers to catch
any library exception with a single except clause. Each exception provides
a recovery_hint property with guidance on resolving the error.
"""

from __future__ import annotations


class ComposeRemoteError(Exception):
    """Base class for all composeremote exceptions.

    Catch this to handle any error from the library.
    """

    @property
    def recovery_hint(self) -> str | None:
        """Optional guidance on how to resolve this error."""
        return None


class ConfigurationError(ComposeRemoteError):
    """Raised for configuration problems (invalid environment values)."""

    def __init__(self, message: str, variable: str | None = None) -> None:
        self.variable = variable
        super().__init__(message)

    @property
    def recovery_hint(self) -> str | None:
        """Point at the offending environment variable."""
        if self.variable:
            return f"Check the value of ${self.variable}"
        return None


class ReferenceParseError(ComposeRemoteError):
    """Raised when a reference is not a valid registry artifact address.

    Attributes:
        reference: The reference string that failed to parse.
    """

    def __init__(self, reference: str, reason: str) -> None:
        self.reference = reference
        self.reason = reason
        super().__init__(f"invalid reference format '{reference}': {reason}")

    @property
    def recovery_hint(self) -> str:
        """Show the expected address shape."""
        return "Use oci://[registry/]repository[:tag][@digest]"


class UnsupportedReferenceError(ComposeRemoteError):
    """Raised when no registered loader accepts a reference."""

    def __init__(self, reference: str, loaders: list[str] | None = None) -> None:
        self.reference = reference
        self.loaders = loaders if loaders is not None else []
        super().__init__(f"No resource loader accepts '{reference}'")

    @property
    def recovery_hint(self) -> str:
        """List the loaders that were consulted."""
        if self.loaders:
            return f"Registered loaders: {', '.join(self.loaders)}"
        return "Enable a remote loader (e.g. COMPOSE_EXPERIMENTAL_OCI_REMOTE=1)"


class RegistryError(ComposeRemoteError):
    """Base class for artifact registry errors.

    Raised when a resolver fails to retrieve a manifest or blob.

    Attributes:
        reference: The reference that caused the error.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        reference: str,
        cause: Exception | None = None,
    ) -> None:
        self.reference = reference
        self.cause = cause
        super().__init__(message)


class RegistryNotFoundError(RegistryError):
    """Raised when the manifest or blob doesn't exist in the registry."""

    @property
    def recovery_hint(self) -> str:
        """Suggest verifying the reference."""
        return f"Verify the artifact exists: {self.reference}"


class RegistryAccessError(RegistryError):
    """Raised when the registry denies access to the artifact."""

    @property
    def recovery_hint(self) -> str:
        """Suggest checking credentials."""
        return "Check registry credentials and repository permissions"


class RegistryUnavailableError(RegistryError):
    """Raised for transient failures (timeouts, throttling, server errors).

    These are the only errors retried by the loader.
    """

    @property
    def recovery_hint(self) -> str:
        """Suggest retrying later."""
        return "The registry may be temporarily unavailable, retry later"


class ArtifactError(ComposeRemoteError):
    """Base class for errors in fetched artifact content.

    Attributes:
        reference: The artifact reference.
    """

    def __init__(self, message: str, reference: str) -> None:
        self.reference = reference
        super().__init__(message)


class ManifestDecodeError(ArtifactError):
    """Raised when manifest bytes are not a valid image manifest."""

    def __init__(
        self, message: str, reference: str, cause: Exception | None = None
    ) -> None:
        self.cause = cause
        super().__init__(message, reference)


class InvalidArtifactError(ArtifactError):
    """Raised when the artifact config media type is not a compose project.

    Attributes:
        media_type: The media type found in the manifest config descriptor.
    """

    def __init__(self, reference: str, media_type: str) -> None:
        self.media_type = media_type
        super().__init__(
            f"{reference} is not a compose project OCI artifact, but {media_type}",
            reference,
        )

    @property
    def recovery_hint(self) -> str:
        """Explain how compose artifacts are published."""
        return "Publish the artifact with 'docker compose publish'"


class DigestMismatchError(ArtifactError):
    """Raised when fetched content does not hash to its declared digest.

    Attributes:
        expected: Digest declared by the descriptor.
        actual: Digest computed from the received content.
    """

    def __init__(self, reference: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Digest mismatch for {reference}: expected {expected}, got {actual}",
            reference,
        )


class UnsupportedDigestError(ArtifactError):
    """Raised when a digest uses an algorithm that cannot be verified locally.

    Attributes:
        digest: The digest that could not be verified.
    """

    def __init__(self, reference: str, digest: str) -> None:
        self.digest = digest
        super().__init__(
            f"Cannot verify {reference}: unsupported digest algorithm in {digest}",
            reference,
        )

    @property
    def recovery_hint(self) -> str:
        """Name the supported algorithms."""
        return "Reference content by a sha256 or sha512 digest"


class CacheError(ComposeRemoteError):
    """Raised when the artifact cache cannot be read or written.

    Attributes:
        path: The cache path involved.
    """

    def __init__(self, message: str, path: str) -> None:
        self.path = path
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the cache directory."""
        return f"Check permissions of {self.path} or run 'compose-remote clear'"


class OperationCancelledError(ComposeRemoteError):
    """Raised when the caller's cancellation signal is set mid-operation."""

    def __init__(self, reference: str | None = None) -> None:
        self.reference = reference
        message = "Operation cancelled"
        if reference:
            message = f"Operation cancelled while fetching {reference}"
        super().__init__(message)
