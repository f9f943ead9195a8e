"""
Image Reference Model
Pydantic model for a parsed ``repository[:tag]`` image string.
"""
from pydantic import BaseModel, ConfigDict, field_validator

from paastel_build.core.constants import DEFAULT_TAG


class ImageReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    repository: str
    tag: str = DEFAULT_TAG

    @field_validator("repository")
    @classmethod
    def _repository_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("repository must not be empty")
        return value

    @field_validator("tag")
    @classmethod
    def _tag_defaults_to_latest(cls, value: str) -> str:
        return value or DEFAULT_TAG

    @property
    def full_name(self) -> str:
        return f"{self.repository}:{self.tag}"
