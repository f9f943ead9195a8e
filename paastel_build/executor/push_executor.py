"""
Push Executor
=============
Pushes a built image to its registry through the Docker daemon and streams
the push progress.

Runs only after the build drained successfully: the image must exist and
carry the tag being pushed.

Per decoded message (``{status, progress, error}`` subsets):
    error               → error output, consumption continues
    status + progress   → "→ status | progress"
    status              → "→ status"
    none of these       → ignored

Credentials are an opaque ``auth_config`` pass-through; None means an
anonymous push (local registry, or the daemon's own stored login).
"""
import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional, TextIO

from paastel_build.core.output_formatter import format_push_error, format_push_status
from paastel_build.executor.stream_consumer import consume_stream
from paastel_build.models.events import PushEvent, PushEventKind

logger = logging.getLogger(__name__)

PUSH_PHASE = "push"


@dataclass
class PushOutcome:
    """What the drained push stream reported."""
    message_count: int = 0
    status_updates: int = 0
    ignored: int = 0
    embedded_errors: List[str] = field(default_factory=list)


def run_push(
    daemon_client,
    repository: str,
    tag: str,
    credentials: Optional[dict] = None,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> PushOutcome:
    """
    Push ``repository:tag`` and drain the registry's event stream.

    Raises
    ------
    TransportError
        If the stream fails before reaching its end.
    """
    out = sys.stdout if out is None else out
    err = sys.stderr if err is None else err
    outcome = PushOutcome()

    def open_stream():
        logger.info(
            "Submitting push | repository=%s | tag=%s | authenticated=%s",
            repository, tag, credentials is not None,
        )
        return daemon_client.push(
            repository,
            tag=tag,
            auth_config=credentials,
            stream=True,
            decode=True,
        )

    def on_event(event: PushEvent) -> None:
        kind = event.kind
        if kind is PushEventKind.EMBEDDED_ERROR:
            outcome.embedded_errors.append(event.error)
            logger.warning("Registry reported a push error: %s", event.error)
            err.write(format_push_error(event.error) + "\n")
            err.flush()
        elif kind is PushEventKind.PROGRESS_UPDATE:
            outcome.status_updates += 1
            out.write(format_push_status(event.status, event.progress) + "\n")
            out.flush()
        elif kind is PushEventKind.STATUS_ONLY:
            outcome.status_updates += 1
            out.write(format_push_status(event.status) + "\n")
            out.flush()
        else:
            outcome.ignored += 1

    outcome.message_count = consume_stream(PUSH_PHASE, open_stream, PushEvent, on_event)

    logger.info(
        "Push stream drained | messages=%d | updates=%d | ignored=%d | embedded_errors=%d",
        outcome.message_count, outcome.status_updates, outcome.ignored, len(outcome.embedded_errors),
    )
    return outcome
