"""
Context Archiver
================
Packages a build-context directory into an in-memory tar.gz, honouring the
context's ignore file.

Pipeline (two fully-buffered stages):
    1. Walk + tar   — every entry below the root, symlinks never followed,
                      sorted so the same tree always gives the same order.
                      Entries excluded by the ignore rules are skipped; only
                      regular files are added, under their forward-slash
                      context-relative path.
    2. Compress     — the finished tar is gzip-compressed as one unit.

Any walk/read failure surfaces before compression starts, so an error
always points at the stage that produced it.

Failure modes:
    PatternError    — the ignore file has an invalid rule (nothing archived)
    ContextIOError  — a directory or file of the context cannot be read
    ArchiveError    — tar finalisation or gzip compression failed
"""
import gzip
import io
import logging
import os
import stat
import tarfile
import zlib
from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple

from paastel_build.core.constants import DEFAULT_IGNORE_FILE, GZIP_COMPRESSION_LEVEL
from paastel_build.core.exceptions import ArchiveError, ContextIOError
from paastel_build.utils.ignore_rules import IgnoreRuleEngine
from paastel_build.utils.path_utils import context_relative

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Archive Result
# ---------------------------------------------------------------------------
@dataclass
class ArchiveStats:
    """Counters collected while archiving, for logging and the run summary."""
    file_count: int = 0
    excluded_count: int = 0
    special_count: int = 0
    raw_size: int = 0
    compressed_size: int = 0


@dataclass
class ContextArchive:
    """The compressed build context plus what went into it."""
    data: bytes
    stats: ArchiveStats = field(default_factory=ArchiveStats)


# ---------------------------------------------------------------------------
# Walk
# ---------------------------------------------------------------------------
def _raise_walk_error(error: OSError) -> None:
    raise ContextIOError(error.filename or "<unknown>", error.strerror or str(error)) from error


def _is_excluded_dir(engine: IgnoreRuleEngine, path: str, root_dir: str) -> bool:
    relative_path = context_relative(path, root_dir)
    return engine.is_excluded(relative_path) or engine.is_excluded(relative_path + "/")


def iter_context_files(
    root_dir: str,
    engine: Optional[IgnoreRuleEngine] = None,
    stats: Optional[ArchiveStats] = None,
) -> Iterator[Tuple[str, str]]:
    """
    Yield ``(full_path, relative_path)`` for every regular file to archive.

    Directories are descended (never yielded); symlinks and special files
    are skipped. Each entry is checked against the ignore rules on its own,
    so a '!' rule can re-include a file below an excluded directory.
    """
    stats = stats if stats is not None else ArchiveStats()

    for dirpath, dirnames, filenames in os.walk(root_dir, onerror=_raise_walk_error, followlinks=False):
        dirnames.sort()
        if engine is not None and not engine.has_negations:
            # Without re-include rules nothing below an excluded directory
            # can come back, so the subtree is pruned instead of walked.
            dirnames[:] = [d for d in dirnames if not _is_excluded_dir(engine, os.path.join(dirpath, d), root_dir)]
        for name in sorted(filenames):
            full_path = os.path.join(dirpath, name)
            relative_path = context_relative(full_path, root_dir)

            if engine is not None and engine.is_excluded(relative_path):
                stats.excluded_count += 1
                logger.debug("Excluded by ignore rules: %s", relative_path)
                continue

            try:
                mode = os.lstat(full_path).st_mode
            except OSError as e:
                raise ContextIOError(full_path, e.strerror or str(e)) from e

            if not stat.S_ISREG(mode):
                stats.special_count += 1
                logger.debug("Skipping non-regular file: %s", relative_path)
                continue

            yield full_path, relative_path


# ---------------------------------------------------------------------------
# Tar + gzip
# ---------------------------------------------------------------------------
def _write_tar(root_dir: str, engine: Optional[IgnoreRuleEngine], stats: ArchiveStats) -> bytes:
    buffer = io.BytesIO()
    try:
        with tarfile.open(fileobj=buffer, mode="w") as tar:
            for full_path, relative_path in iter_context_files(root_dir, engine, stats):
                try:
                    tarinfo = tar.gettarinfo(full_path, arcname=relative_path)
                    with open(full_path, "rb") as f:
                        tar.addfile(tarinfo, f)
                except OSError as e:
                    raise ContextIOError(full_path, e.strerror or str(e)) from e
                stats.file_count += 1
    except tarfile.TarError as e:
        raise ArchiveError(f"Failed to write tar archive: {e}") from e

    return buffer.getvalue()


def compress_archive(raw: bytes) -> bytes:
    """gzip the finished tar as a single unit (mtime pinned for reproducibility)."""
    try:
        return gzip.compress(raw, compresslevel=GZIP_COMPRESSION_LEVEL, mtime=0)
    except (zlib.error, OSError) as e:
        raise ArchiveError(f"Failed to gzip build context: {e}") from e


def archive_context(root_dir: str, ignore_file: str = DEFAULT_IGNORE_FILE) -> ContextArchive:
    """
    Build the compressed context archive for ``root_dir``.

    The ignore engine is created here, once, and discarded with the run.
    """
    engine = IgnoreRuleEngine.load(root_dir, ignore_file)
    stats = ArchiveStats()

    raw = _write_tar(root_dir, engine, stats)
    stats.raw_size = len(raw)

    data = compress_archive(raw)
    stats.compressed_size = len(data)

    logger.info(
        "Context archived | rules=%s | files=%d | excluded=%d | skipped=%d | tar=%d bytes | gzip=%d bytes",
        engine.source if engine is not None else "none",
        stats.file_count, stats.excluded_count, stats.special_count,
        stats.raw_size, stats.compressed_size,
    )
    return ContextArchive(data=data, stats=stats)


def build_context_archive(root_dir: str, ignore_file: str = DEFAULT_IGNORE_FILE) -> bytes:
    """Compressed tar.gz bytes of the filtered build context."""
    return archive_context(root_dir, ignore_file).data
