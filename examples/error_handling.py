"""Error handling patterns with recovery hints.

This example demonstrates how to handle common errors and use
the recovery_hint property to provide actionable guidance.
"""

from composeremote import (
    ComposeRemoteError,
    ConfigurationError,
    InvalidArtifactError,
    LoaderRegistry,
    ReferenceParseError,
    RegistryNotFoundError,
    RegistryUnavailableError,
)


# Pattern 1: Invalid activation gate values fail before any network call
def build_registry() -> LoaderRegistry:
    """Build the registry, explaining configuration mistakes."""
    try:
        return LoaderRegistry.from_environment()
    except ConfigurationError as e:
        print(f"Configuration problem: {e}")
        print(f"Hint: {e.recovery_hint}")
        raise


# Pattern 2: Handle malformed references
def resolve_or_explain(registry: LoaderRegistry, reference: str) -> str | None:
    """Resolve a reference, returning None if it is malformed."""
    try:
        return registry.resolve(reference)
    except ReferenceParseError as e:
        print(f"Bad reference: {e.reference}")
        print(f"Hint: {e.recovery_hint}")
        return None


# Pattern 3: Handle missing artifacts and artifacts of the wrong kind
def resolve_optional(registry: LoaderRegistry, reference: str) -> str | None:
    """Resolve a reference, returning None if it isn't a published project."""
    try:
        return registry.resolve(reference)
    except RegistryNotFoundError as e:
        print(f"Not found: {e.reference}")
        return None
    except InvalidArtifactError as e:
        print(f"{e.reference} has media type {e.media_type}")
        print(f"Hint: {e.recovery_hint}")
        return None


# Pattern 4: Report transient failures that outlasted the retries
def resolve_with_report(registry: LoaderRegistry, reference: str) -> str:
    """Resolve a reference, reporting registry outages."""
    try:
        return registry.resolve(reference)
    except RegistryUnavailableError as e:
        print(f"Registry still unavailable after retries: {e}")
        print(f"Hint: {e.recovery_hint}")
        raise


# Pattern 5: Catch all library errors
def safe_resolve(registry: LoaderRegistry, reference: str) -> str | None:
    """Resolve with comprehensive error handling."""
    try:
        return registry.resolve(reference)
    except ComposeRemoteError as e:
        print(f"Error: {e}")
        if e.recovery_hint:
            print(f"Hint: {e.recovery_hint}")
        return None
