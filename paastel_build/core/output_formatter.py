"""
Output Formatter
================
THE SINGLE SOURCE OF TRUTH for all user-facing output strings.

STRICT DETERMINISM CONTRACT:
  - This module NEVER writes to a stream; callers do.
  - This module NEVER reads environment variables.
  - Given the same inputs, it ALWAYS returns the exact same output string.

Progress output (stdout) and error output (stderr) lines produced during a
run are all built here, so the consumers only decide WHERE a line goes,
never what it looks like.
"""
from typing import Optional

from paastel_build.core.constants import PROG_NAME

# ---------------------------------------------------------------------------
# Unicode Arrow (Critical)
# ---------------------------------------------------------------------------
# U+2192 RIGHTWARDS ARROW.
# NEVER use the ASCII sequence "->".
# ALWAYS import this constant from here.
ARROW = "→"

CHECK_MARK = "✅"
CROSS_MARK = "❌"

_DETAIL_LABEL_WIDTH = 10


# ---------------------------------------------------------------------------
# Pipeline narration
# ---------------------------------------------------------------------------
def format_stage(message: str) -> str:
    """Headline for a pipeline stage, e.g. ``==> Preparing build context``."""
    return f"==> {message}"


def format_detail(label: str, value) -> str:
    """Indented ``label: value`` line printed under a stage headline."""
    return f"    {label:<{_DETAIL_LABEL_WIDTH}}: {value}"


def format_build_done(image: str) -> str:
    return f"{CHECK_MARK} Build finished for image: {image}"


def format_push_done(image: str) -> str:
    return f"{CHECK_MARK} Push finished for {image}"


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------
def format_build_error(message: str) -> str:
    """Embedded error reported by the daemon inside a build message."""
    return f"Docker build error: {message}"


def format_push_error(message: str) -> str:
    """Embedded error reported by the registry inside a push message."""
    return f"{CROSS_MARK} Docker push error: {message}"


def format_push_status(status: str, progress: Optional[str] = None) -> str:
    """
    Render a push status line.

    Output format (byte-perfect):
        → {status} | {progress}     when progress is given
        → {status}                  otherwise
    """
    if progress is not None:
        return f"{ARROW} {status} | {progress}"
    return f"{ARROW} {status}"


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------
def format_fatal(message: str) -> str:
    """Final line written to stderr before a non-zero exit."""
    return f"{PROG_NAME} error: {message}"
