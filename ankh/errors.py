"""Exception hierarchy for Ankh.

Every fatal condition surfaces as an ``AnkhError``. The CLI layer turns it
into a single human-readable message and a nonzero exit status.
"""

from __future__ import annotations

RERUN_HINT = (
    "Rerun with `ankh --ignore-config-errors ...` to ignore this error "
    "and use the merged configuration anyway."
)


class AnkhError(Exception):
    """Raised when an Ankh operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigError(AnkhError):
    """A configuration source is unreadable, unparsable or conflicting."""


class ContextError(AnkhError):
    """The requested context or environment is missing or invalid."""


class DescriptorError(AnkhError):
    """An Ankh file is malformed, missing, or cannot be satisfied."""


class ResolutionError(AnkhError):
    """A chart version or image tag could not be determined."""


class ExecutionError(AnkhError):
    """Rendering or a cluster operation failed."""


class LintError(ExecutionError):
    """Lint found problems in rendered output."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Lint found {len(errors)} errors.", details="\n".join(errors))
