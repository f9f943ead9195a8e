"""
Path Utils
==========
Path normalisation and context-relative conversion helpers.

Responsibilities:
    - Convert absolute paths to context-relative paths
    - Normalise path separators to forward slashes
"""
import os


def to_posix(path: str) -> str:
    """Replace the host separator with '/'."""
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    return path


def context_relative(path: str, root: str) -> str:
    """
    Return ``path`` relative to ``root`` in forward-slash form.

    Raises ValueError for the root itself: the archive root is never an
    entry of its own.
    """
    rel = os.path.relpath(path, root)
    if rel == os.curdir:
        raise ValueError(f"{path!r} is the context root, not an entry")
    return to_posix(rel)
