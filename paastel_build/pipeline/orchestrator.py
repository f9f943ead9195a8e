"""
Orchestrator
============
Drives one run of the image pipeline, strictly in sequence:

    Validate → Connect → Archive → Build → Push

    - Validate:  context directory, Dockerfile and image reference are
                 checked before anything is read or sent (ConfigError).
    - Connect:   docker.from_env() unless a client is injected.
    - Archive:   the whole context is packed into memory first; the build
                 request only starts once the buffer is complete.
    - Build:     drains the daemon's build stream.
    - Push:      only after the build drained; skipped when push is off.

Fatal errors (PipelineError subclasses) stop the run at the stage they
occur in and propagate to the caller. Embedded daemon/registry errors are
reported and counted but never change control flow: a run can succeed
with embedded errors on record.

No parallelism: one writer and one consumer per archive buffer, no locks.
"""
import logging
import os
import sys
import time
from typing import Optional, TextIO

import docker
from docker.errors import DockerException

from paastel_build.core.config import PipelineConfig
from paastel_build.core.exceptions import ConfigError, PipelineError, TransportError
from paastel_build.core.output_formatter import (
    format_build_done,
    format_detail,
    format_push_done,
    format_stage,
)
from paastel_build.executor.build_executor import BuildParams, run_build
from paastel_build.executor.context_archiver import archive_context
from paastel_build.executor.push_executor import run_push
from paastel_build.models.image_reference import ImageReference
from paastel_build.models.pipeline_result import PipelineResult
from paastel_build.parser.image_reference import parse_image_reference
from paastel_build.services.results_writer import ResultsWriter

logger = logging.getLogger(__name__)


def validate_config(config: PipelineConfig) -> ImageReference:
    """
    Check everything that can be checked before archiving starts.

    Returns the parsed image reference.

    Raises
    ------
    ConfigError
        Missing context directory, missing Dockerfile or empty image.
    """
    if not os.path.isdir(config.context_dir):
        raise ConfigError(
            f"Context directory '{config.context_dir}' does not exist",
            {"context_dir": config.context_dir},
        )

    if not os.path.isfile(config.dockerfile_path):
        raise ConfigError(
            f"Dockerfile '{config.dockerfile}' not found in '{config.context_dir}'",
            {"dockerfile": config.dockerfile, "context_dir": config.context_dir},
        )

    return parse_image_reference(config.image)


def connect(timeout: int):
    """Low-level API client for the daemon configured in the environment."""
    try:
        return docker.from_env(timeout=timeout).api
    except DockerException as e:
        raise TransportError("connect", f"cannot reach the Docker daemon: {e}") from e


class Orchestrator:
    """
    Runs archive → build → push for one PipelineConfig.

    Parameters
    ----------
    client : docker.APIClient | None
        Daemon client to use; created from the environment when None.
    out, err : TextIO | None
        Progress and error outputs; default to stdout / stderr.
    """

    def __init__(self, client=None, out: Optional[TextIO] = None, err: Optional[TextIO] = None):
        self.client = client
        self.out = sys.stdout if out is None else out
        self.err = sys.stderr if err is None else err

    def _say(self, line: str = "") -> None:
        self.out.write(line + "\n")
        self.out.flush()

    def run(self, config: PipelineConfig) -> PipelineResult:
        """
        Execute the pipeline.

        Returns the PipelineResult on success. On a fatal error the result
        is still recorded (and written when results_path is set) before the
        PipelineError propagates.
        """
        start_time = time.monotonic()
        result = PipelineResult(image=config.image)
        logger.info("Starting pipeline | %r", config)

        try:
            # ----------------------------------------------------------
            # 1. Validate
            # ----------------------------------------------------------
            reference = validate_config(config)
            result.repository = reference.repository
            result.tag = reference.tag

            # ----------------------------------------------------------
            # 2. Connect
            # ----------------------------------------------------------
            if self.client is None:
                self._say(format_stage("Connecting to the Docker daemon (environment defaults)..."))
                self.client = connect(config.timeout)

            # ----------------------------------------------------------
            # 3. Archive
            # ----------------------------------------------------------
            result.stage = "archive"
            self._say(format_stage("Preparing build context (tar+gzip in memory)..."))
            archive = archive_context(config.context_dir, config.ignore_file)
            result.archive_files = archive.stats.file_count
            result.archive_excluded = archive.stats.excluded_count
            result.archive_bytes = archive.stats.compressed_size

            # ----------------------------------------------------------
            # 4. Build
            # ----------------------------------------------------------
            result.stage = "build"
            self._say(format_stage(f"Starting image build: {reference.full_name}"))
            self._say(format_detail("Context", config.context_dir))
            self._say(format_detail("Dockerfile", config.dockerfile))
            self._say(format_detail("Pull base", config.pull))
            self._say()

            params = BuildParams(tag=reference.full_name, dockerfile=config.dockerfile, pull=config.pull)
            build = run_build(self.client, params, archive.data, self.out, self.err)
            # The buffer is not needed once the build request has completed
            del archive
            result.build_log_chunks = build.log_chunks
            result.build_errors = list(build.embedded_errors)

            self._say()
            self._say(format_build_done(reference.full_name))

            # ----------------------------------------------------------
            # 5. Push
            # ----------------------------------------------------------
            if config.push:
                result.stage = "push"
                self._say()
                self._say(format_stage(f"Pushing image: {reference.full_name}"))
                self._say(format_detail("Repo", reference.repository))
                self._say(format_detail("Tag", reference.tag))

                push = run_push(
                    self.client,
                    reference.repository,
                    reference.tag,
                    config.credentials,
                    self.out,
                    self.err,
                )
                result.push_errors = list(push.embedded_errors)
                result.pushed = True
                self._say(format_push_done(reference.full_name))
            else:
                logger.info("Push disabled; image %s left in the local daemon", reference.full_name)

            result.stage = "done"
            result.status = "success"

        except PipelineError as e:
            result.status = "failure"
            result.error_message = e.message
            logger.error("Pipeline failed at stage '%s': %s", result.stage, e.message)
            raise

        finally:
            result.elapsed_seconds = round(time.monotonic() - start_time, 3)
            if config.results_path:
                ResultsWriter.write_results(result, config.results_path)

        logger.info(
            "Pipeline complete | image=%s | pushed=%s | build_errors=%d | push_errors=%d | time=%.2fs",
            reference.full_name, result.pushed, len(result.build_errors),
            len(result.push_errors), result.elapsed_seconds,
        )
        return result


def run_pipeline(
    config: PipelineConfig,
    client=None,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> PipelineResult:
    """Convenience wrapper: ``Orchestrator(client, out, err).run(config)``."""
    return Orchestrator(client=client, out=out, err=err).run(config)
