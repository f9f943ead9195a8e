"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    LOG_LEVEL          — Logging level for diagnostics (default: INFO)
    LOG_DIR            — If set, daily log files are also written here
    DOCKER_TIMEOUT     — Seconds before a daemon request times out (default: 600)
    IGNORE_FILE_NAME   — Ignore-rule file looked up at the context root
                         (default: .dockerignore)
    REGISTRY_USERNAME  — Optional registry user for the push step
    REGISTRY_PASSWORD  — Optional registry password / token
    REGISTRY_SERVER    — Optional registry address the credentials apply to
    REGISTRY_EMAIL     — Optional e-mail some registries still expect

Environment values only provide DEFAULTS. Every pipeline stage receives an
explicit PipelineConfig built by the CLI; nothing below the CLI reads
os.environ or the current working directory on its own.

Credentials:
    Absent REGISTRY_USERNAME means an anonymous push (local registry or a
    daemon that already holds credentials). No credential is ever logged.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from paastel_build.core.constants import (
    DEFAULT_CONTEXT_DIR,
    DEFAULT_DOCKERFILE,
    DEFAULT_IGNORE_FILE,
)

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR") or None
DOCKER_TIMEOUT = int(os.getenv("DOCKER_TIMEOUT", 600))
IGNORE_FILE_NAME = os.getenv("IGNORE_FILE_NAME", DEFAULT_IGNORE_FILE)

REGISTRY_USERNAME = os.getenv("REGISTRY_USERNAME")
REGISTRY_PASSWORD = os.getenv("REGISTRY_PASSWORD")
REGISTRY_SERVER = os.getenv("REGISTRY_SERVER")
REGISTRY_EMAIL = os.getenv("REGISTRY_EMAIL")


def registry_credentials(
    username: Optional[str] = REGISTRY_USERNAME,
    password: Optional[str] = REGISTRY_PASSWORD,
    server: Optional[str] = REGISTRY_SERVER,
    email: Optional[str] = REGISTRY_EMAIL,
) -> Optional[dict[str, str]]:
    """
    Build the docker ``auth_config`` dict for a push, or None for anonymous.

    Only the username decides whether credentials are sent at all; the
    remaining fields are passed through untouched when present.
    """
    if not username:
        return None

    creds = {"username": username, "password": password or ""}
    if server:
        creds["serveraddress"] = server
    if email:
        creds["email"] = email
    return creds


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable configuration for one archive → build → push run.

    Fields
    ------
    image : str
        Full image reference, e.g. "localhost:5000/org/app:dev".
    context_dir : str
        Root of the build context (contains the Dockerfile and ignore file).
    dockerfile : str
        Dockerfile path relative to context_dir.
    pull : bool
        Always attempt to pull a newer base image.
    push : bool
        Push the image after a successful build.
    ignore_file : str
        Ignore-rule file name relative to context_dir.
    credentials : dict | None
        Registry auth_config pass-through; None pushes anonymously.
    timeout : int
        Daemon request timeout in seconds.
    results_path : str | None
        Where to write the JSON run summary; None disables it.
    """
    image: str
    context_dir: str = DEFAULT_CONTEXT_DIR
    dockerfile: str = DEFAULT_DOCKERFILE
    pull: bool = False
    push: bool = True
    ignore_file: str = IGNORE_FILE_NAME
    credentials: Optional[dict] = None
    timeout: int = DOCKER_TIMEOUT
    results_path: Optional[str] = None

    @property
    def dockerfile_path(self) -> str:
        return os.path.join(self.context_dir, self.dockerfile)

    def __repr__(self):
        """String representation for logging (credentials masked)."""
        return (
            f"PipelineConfig(image={self.image}, "
            f"context_dir={self.context_dir}, "
            f"dockerfile={self.dockerfile}, "
            f"pull={self.pull}, push={self.push}, "
            f"ignore_file={self.ignore_file}, "
            f"credentials={'***' if self.credentials else None}, "
            f"timeout={self.timeout})"
        )
