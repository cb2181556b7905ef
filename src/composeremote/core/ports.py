"""Port interfaces for hexagonal architecture.

Ports define contracts that adapters must implement. The core domain
depends only on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    import threading

    from composeremote.core.models import Descriptor


@runtime_checkable
class ResourceLoader(Protocol):
    """Maps a scheme-prefixed reference to a locally readable file."""

    def accept(self, path: str) -> bool:
        """Tell whether this loader handles the reference.

        Must be pure: no I/O and no side effects.
        """
        ...

    def load(self, path: str, cancel: threading.Event | None = None) -> str:
        """Resolve the reference to a local file path.

        Args:
            path: The reference, including its scheme prefix.
            cancel: Optional cancellation signal observed by network calls.

        Returns:
            Path to a local file, or an empty string when the source should
            be skipped without failing the caller (offline mode).
        """
        ...


@runtime_checkable
class ArtifactResolver(Protocol):
    """Fetches manifests and blobs from an artifact registry."""

    def get(
        self, reference: str, cancel: threading.Event | None = None
    ) -> tuple[bytes, Descriptor]:
        """Fetch the content a reference points to.

        Used identically for manifests (tag or digest references) and
        blobs (digest references).

        Args:
            reference: Registry reference (e.g., "registry.example/app:v1").
            cancel: Optional cancellation signal.

        Returns:
            Tuple of (raw content, descriptor of that content).

        Raises:
            RegistryNotFoundError: If the reference does not exist.
            RegistryAccessError: If access is denied.
            RegistryUnavailableError: For transient failures.
            OperationCancelledError: If cancel was set.
        """
        ...


@runtime_checkable
class ProgressTask(Protocol):
    """Handle for one fetch shown by a ProgressReporter."""

    def advance(self, done: int) -> None:
        """Record that done layers have been fetched."""
        ...

    def finish(self) -> None:
        """Mark the fetch as complete."""
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """Reports artifact fetch progress to the user.

    The core domain uses this to report progress without depending
    on any specific UI library. Every start_task() call gets its own
    handle, so concurrent fetches of the same reference never share state.
    """

    def start_task(self, name: str, total: int) -> ProgressTask:
        """Start tracking a fetch task.

        Args:
            name: Human-readable name for the task (the reference).
            total: Number of layers to fetch.

        Returns:
            The task handle to advance and finish.
        """
        ...


class _NullTask:
    def advance(self, done: int) -> None:
        pass

    def finish(self) -> None:
        pass


class NullProgressReporter:
    """A ProgressReporter that produces no output.

    Used as the default when no progress reporting is desired.
    """

    def start_task(self, name: str, total: int) -> ProgressTask:  # noqa: ARG002
        """Return a task that ignores updates."""
        return _NullTask()
