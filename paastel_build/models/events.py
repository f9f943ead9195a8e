"""
Stream Event Models
===================
Pydantic models for the JSON messages decoded from the daemon's build and
push streams.

Build messages (``/build``):
    stream  — a chunk of build log text, printed verbatim
    error   — an embedded (non-fatal) error reported by the daemon
    A single message may carry both.

Push messages (``/images/{name}/push``):
    status    — what the daemon is doing ("Pushing", "Pushed", ...)
    progress  — human progress bar for the current layer
    error     — an embedded (non-fatal) error reported by the registry
    Anything else (``id``, ``aux``, ``progressDetail``...) is ignored.

Events are ephemeral: consumers decode, report and drop them.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PushEventKind(str, Enum):
    EMBEDDED_ERROR = "embedded_error"
    PROGRESS_UPDATE = "progress_update"
    STATUS_ONLY = "status_only"
    IGNORED = "ignored"


class BuildEvent(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    stream: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_log_chunk(self) -> bool:
        return self.stream is not None

    @property
    def is_embedded_error(self) -> bool:
        return self.error is not None


class PushEvent(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    status: Optional[str] = None
    progress: Optional[str] = None
    error: Optional[str] = None

    @property
    def kind(self) -> PushEventKind:
        """Classify the message; an error wins over any status it carries."""
        if self.error is not None:
            return PushEventKind.EMBEDDED_ERROR
        if self.status is not None and self.progress is not None:
            return PushEventKind.PROGRESS_UPDATE
        if self.status is not None:
            return PushEventKind.STATUS_ONLY
        return PushEventKind.IGNORED
