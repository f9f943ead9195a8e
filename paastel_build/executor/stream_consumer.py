"""
Stream Consumer
===============
The drain loop shared by the build and push phases.

The docker SDK returns a lazy, finite, non-restartable generator of
decoded JSON messages. Each one is validated into an event model and
handed to the phase's handler in arrival order.

State machine (both phases):
    STREAMING --message ok--> STREAMING
    STREAMING --transport error--> ABORTED   (TransportError, terminal)
    STREAMING --end of stream--> DRAINED     (success, terminal)

Embedded errors are ordinary events for this loop: the handler reports
them and consumption continues. Only failures of the stream itself abort.
"""
import json
import logging
from enum import Enum
from typing import Callable, Iterable, Type, TypeVar

import requests
import urllib3
from docker.errors import DockerException, StreamParseError
from pydantic import BaseModel, ValidationError

from paastel_build.core.exceptions import TransportError

logger = logging.getLogger(__name__)

# Everything that means "the stream itself broke": daemon API errors,
# connection resets, read timeouts and frames that do not decode.
TRANSPORT_ERRORS = (
    DockerException,
    StreamParseError,
    json.JSONDecodeError,
    ValidationError,
    requests.exceptions.RequestException,
    urllib3.exceptions.HTTPError,
    OSError,
)

E = TypeVar("E", bound=BaseModel)


class StreamState(str, Enum):
    STREAMING = "streaming"
    ABORTED = "aborted"
    DRAINED = "drained"


def consume_stream(
    phase: str,
    open_stream: Callable[[], Iterable[dict]],
    event_model: Type[E],
    on_event: Callable[[E], None],
) -> int:
    """
    Submit the request, then drain its event stream to the end.

    Parameters
    ----------
    phase : str
        "build" or "push"; used in errors and logs.
    open_stream : callable
        Issues the daemon request and returns the message generator.
    event_model : type
        Pydantic model each decoded message is validated into.
    on_event : callable
        Called once per event, in arrival order.

    Returns
    -------
    int
        Number of messages consumed before the stream ended.

    Raises
    ------
    TransportError
        On any stream-level failure. Never retried.
    """
    state = StreamState.STREAMING
    count = 0

    stream = None
    while state is StreamState.STREAMING:
        try:
            if stream is None:
                stream = iter(open_stream())
            event = event_model.model_validate(next(stream))
        except StopIteration:
            state = StreamState.DRAINED
            break
        except TRANSPORT_ERRORS as e:
            state = StreamState.ABORTED
            logger.error("[%s] stream %s after %d message(s): %s", phase, state.value, count, e)
            raise TransportError(phase, f"{type(e).__name__}: {e}") from e

        # Handler errors (e.g. a closed stdout) are not transport errors
        count += 1
        on_event(event)

    logger.debug("[%s] stream %s after %d message(s)", phase, state.value, count)
    return count
