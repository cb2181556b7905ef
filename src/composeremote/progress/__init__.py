"""Progress reporting adapters."""

from composeremote.progress.rich_progress import RichProgressReporter, RichProgressTask


__all__ = ["RichProgressReporter", "RichProgressTask"]
