"""
Custom exception hierarchy for pipeline errors.

Every fatal failure of a run is one of these. Each wraps a human-readable
message plus a ``details`` dict, and is raised ``from`` its underlying cause
so the chain survives up to the CLI, which prints the message and exits 1.

Embedded daemon/registry errors are NOT exceptions: they arrive inside a
well-formed event, are reported on the error stream and never change
control flow (see models/events.py).
"""
from typing import Optional, Dict, Any


class PipelineError(Exception):
    """Base exception for all fatal pipeline errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Checked before any archiving begins
# =============================================================================

class ConfigError(PipelineError):
    """Missing context directory, missing Dockerfile or an empty image name."""
    pass


# =============================================================================
# Archiving
# =============================================================================

class PatternError(PipelineError):
    """An ignore rule could not be compiled."""

    def __init__(self, raw_line: str, source: str, line_number: int, reason: str = ""):
        message = f"Invalid pattern in {source} line {line_number}: {raw_line!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message,
            {"raw_line": raw_line, "source": source, "line_number": line_number},
        )
        self.raw_line = raw_line
        self.source = source
        self.line_number = line_number


class ContextIOError(PipelineError):
    """A file or directory of the build context could not be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to read {path}: {reason}", {"path": path})
        self.path = path


class ArchiveError(PipelineError):
    """Writing the tar archive or compressing it failed."""
    pass


# =============================================================================
# Daemon / registry streams
# =============================================================================

class TransportError(PipelineError):
    """Fatal stream-level failure while talking to the daemon or registry."""

    def __init__(self, phase: str, reason: str):
        super().__init__(f"Error during {phase} stream: {reason}", {"phase": phase})
        self.phase = phase
