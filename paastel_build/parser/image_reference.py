"""
Image Reference Parser
======================
Splits a full image string into (repository, tag).

Rule: the tag separator is the last ':' that comes AFTER the last '/'.
A ':' before the last '/' belongs to a registry host:port.

    "nginx"                           → ("nginx", "latest")
    "sample-nginx:dev"                → ("sample-nginx", "dev")
    "localhost:5000/teste/nginx:dev"  → ("localhost:5000/teste/nginx", "dev")
    "localhost:5000/nginx"            → ("localhost:5000/nginx", "latest")

Total function: any shape it cannot split is returned whole as the
repository with the default tag.
"""
from typing import Tuple

from paastel_build.core.constants import DEFAULT_TAG
from paastel_build.core.exceptions import ConfigError
from paastel_build.models.image_reference import ImageReference


def split_image(image: str) -> Tuple[str, str]:
    last_colon = image.rfind(":")
    last_slash = image.rfind("/")

    if last_colon != -1 and last_colon > last_slash:
        repository, tag = image[:last_colon], image[last_colon + 1:]
        # "nginx:" or ":dev" are not splittable shapes
        if repository:
            return repository, tag or DEFAULT_TAG

    return image, DEFAULT_TAG


def parse_image_reference(image: str) -> ImageReference:
    """
    Parse ``image`` into an ImageReference.

    Raises
    ------
    ConfigError
        If the image string is empty or blank.
    """
    if not image or not image.strip():
        raise ConfigError("Image reference must not be empty", {"image": image})

    repository, tag = split_image(image.strip())
    return ImageReference(repository=repository, tag=tag)
