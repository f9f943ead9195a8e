"""
Pipeline Result Model
=====================
Pydantic model summarising one archive → build → push run.

Fields:
    image               — image reference as given on the command line
    repository / tag    — the split reference that was pushed
    status              — "pending" | "success" | "failure"
    stage               — last stage reached: validate / archive / build / push / done
    archive_files       — regular files placed in the context archive
    archive_excluded    — entries dropped by the ignore rules
    archive_bytes       — compressed context size
    build_log_chunks    — log chunks streamed by the daemon
    build_errors        — embedded (non-fatal) build errors, in order
    pushed              — True once the push stream drained
    push_errors         — embedded (non-fatal) push errors, in order
    error_message       — message of the fatal error, if any
    elapsed_seconds     — wall clock time of the run

Used by:
    - Orchestrator to track progress through the stages
    - Results writer to emit the optional JSON summary
"""
from typing import List

from pydantic import BaseModel


class PipelineResult(BaseModel):
    image: str
    repository: str = ""
    tag: str = ""
    status: str = "pending"
    stage: str = "validate"

    archive_files: int = 0
    archive_excluded: int = 0
    archive_bytes: int = 0

    build_log_chunks: int = 0
    build_errors: List[str] = []

    pushed: bool = False
    push_errors: List[str] = []

    error_message: str = ""
    elapsed_seconds: float = 0.0
