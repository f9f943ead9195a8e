"""
Build CLI
=========
Command-line surface of the pipeline.

    paastel-build \\
        --context . \\
        --dockerfile Dockerfile \\
        --image localhost:5000/teste/nginx:dev \\
        --pull

Exit codes:
    0    build (and push) finished, embedded errors included
    1    any fatal error; the message goes to stderr
    130  interrupted
"""
import argparse
import logging
import sys
from typing import List, Optional

from paastel_build.core import config as settings
from paastel_build.core.config import PipelineConfig, registry_credentials
from paastel_build.core.constants import (
    DEFAULT_CONTEXT_DIR,
    DEFAULT_DOCKERFILE,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    PROG_NAME,
)
from paastel_build.core.exceptions import PipelineError
from paastel_build.core.output_formatter import format_fatal
from paastel_build.pipeline.orchestrator import run_pipeline
from paastel_build.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="Build a Docker image from a filtered build context and push it to its registry.",
    )
    parser.add_argument("--context", default=DEFAULT_CONTEXT_DIR,
                        help="Root of the build context (holds the Dockerfile and ignore file)")
    parser.add_argument("--dockerfile", default=DEFAULT_DOCKERFILE,
                        help="Dockerfile path inside the context (e.g. docker/Dockerfile)")
    parser.add_argument("--image", required=True,
                        help="Full image reference (e.g. localhost:5000/org/app:tag)")
    parser.add_argument("--pull", action="store_true",
                        help="Always attempt to pull a newer base image")
    parser.add_argument("--no-push", dest="push", action="store_false",
                        help="Build and tag only; do not push")
    parser.add_argument("--ignore-file", default=settings.IGNORE_FILE_NAME,
                        help="Ignore-rule file name inside the context")
    parser.add_argument("--results", dest="results_path", default=None,
                        help="Write a JSON run summary to this path")
    parser.add_argument("--timeout", type=int, default=settings.DOCKER_TIMEOUT,
                        help="Docker daemon request timeout in seconds")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper,
                        help="Diagnostic log level (logs go to stderr)")
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    return PipelineConfig(
        image=args.image,
        context_dir=args.context,
        dockerfile=args.dockerfile,
        pull=args.pull,
        push=args.push,
        ignore_file=args.ignore_file,
        credentials=registry_credentials(),
        timeout=args.timeout,
        results_path=args.results_path,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_dir=settings.LOG_DIR)

    try:
        run_pipeline(config_from_args(args))
    except PipelineError as e:
        sys.stderr.write(format_fatal(e.message) + "\n")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        sys.stderr.write(format_fatal("interrupted") + "\n")
        return EXIT_INTERRUPTED

    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
