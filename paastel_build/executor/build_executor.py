"""
Build Executor
==============
Submits the compressed build context to the Docker daemon and streams the
build's output.

PROTOCOL:
    - One ``POST /build`` per run via the docker SDK's low-level APIClient.
    - The tar.gz archive is the request body (custom_context, gzip encoding).
    - Intermediate containers are always removed (rm=True).
    - The daemon answers with line-delimited JSON messages, decoded lazily.

OUTPUT:
    - ``stream`` chunks are written verbatim to the progress output, in
      arrival order, flushed as they come.
    - ``error`` fields are written to the error output and consumption
      continues: the daemon may still say something useful afterwards.

FAILURE:
    - A broken stream (API error, reset, malformed frame) raises
      TransportError immediately. Never retried.
    - Success means the stream drained to its natural end.
"""
import io
import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional, TextIO

from paastel_build.core.constants import DEFAULT_DOCKERFILE
from paastel_build.core.output_formatter import format_build_error
from paastel_build.executor.stream_consumer import consume_stream
from paastel_build.models.events import BuildEvent

logger = logging.getLogger(__name__)

BUILD_PHASE = "build"


@dataclass(frozen=True)
class BuildParams:
    """
    Parameters of the daemon build request.

    Fields
    ------
    tag : str
        Full image reference the result is tagged with.
    dockerfile : str
        Dockerfile path inside the context.
    pull : bool
        Always attempt to pull a newer version of the base image.
    """
    tag: str
    dockerfile: str = DEFAULT_DOCKERFILE
    pull: bool = False
    remove_intermediate: bool = field(default=True, init=False)


@dataclass
class BuildOutcome:
    """What the drained build stream reported."""
    message_count: int = 0
    log_chunks: int = 0
    embedded_errors: List[str] = field(default_factory=list)


def run_build(
    daemon_client,
    params: BuildParams,
    archive: bytes,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> BuildOutcome:
    """
    Build an image from ``archive`` and drain the daemon's event stream.

    Parameters
    ----------
    daemon_client : docker.APIClient
        Low-level client (``docker.from_env().api``).
    params : BuildParams
        Tag, Dockerfile path and pull flag.
    archive : bytes
        Fully materialised tar.gz build context.
    out, err : TextIO | None
        Progress and error outputs; default to stdout / stderr.

    Returns
    -------
    BuildOutcome
        Counters and the embedded errors reported along the way.

    Raises
    ------
    TransportError
        If the stream fails before reaching its end.
    """
    out = sys.stdout if out is None else out
    err = sys.stderr if err is None else err
    outcome = BuildOutcome()

    def open_stream():
        logger.info(
            "Submitting build | tag=%s | dockerfile=%s | pull=%s | context=%d bytes",
            params.tag, params.dockerfile, params.pull, len(archive),
        )
        return daemon_client.build(
            fileobj=io.BytesIO(archive),
            custom_context=True,
            encoding="gzip",
            tag=params.tag,
            dockerfile=params.dockerfile,
            rm=params.remove_intermediate,
            pull=params.pull,
            decode=True,
        )

    def on_event(event: BuildEvent) -> None:
        if event.is_log_chunk:
            outcome.log_chunks += 1
            out.write(event.stream)
            out.flush()
        if event.is_embedded_error:
            outcome.embedded_errors.append(event.error)
            logger.warning("Daemon reported a build error: %s", event.error)
            err.write(format_build_error(event.error) + "\n")
            err.flush()

    outcome.message_count = consume_stream(BUILD_PHASE, open_stream, BuildEvent, on_event)

    logger.info(
        "Build stream drained | messages=%d | log_chunks=%d | embedded_errors=%d",
        outcome.message_count, outcome.log_chunks, len(outcome.embedded_errors),
    )
    return outcome
