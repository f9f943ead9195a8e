"""
Constants
Centralised storage for build defaults, ignore-file naming and exit codes.
"""
DEFAULT_CONTEXT_DIR = "."
DEFAULT_DOCKERFILE = "Dockerfile"
DEFAULT_IGNORE_FILE = ".dockerignore"
DEFAULT_TAG = "latest"

# zlib's own default level (Z_DEFAULT_COMPRESSION)
GZIP_COMPRESSION_LEVEL = 6

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

PROG_NAME = "paastel-build"
