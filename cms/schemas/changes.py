"""Pydantic schemas for file changes and commit results."""

from datetime import datetime
from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from common.blobs import Blob
from common.types import CommitAuthor
from cms.exceptions import InvalidFileChangeError

FileAction = Literal["create", "update", "move", "delete"]


class WireModel(BaseModel):
    """Base model serialized with camelCase keys, as handed to backend services."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


class FileChange(WireModel):
    """One atomic file create/update/move/delete destined for a commit."""
    action: FileAction
    path: str
    previous_path: Optional[str] = None
    previous_sha: Optional[str] = None
    slug: Optional[str] = None
    data: Optional[Union[str, bytes, Blob]] = None

    @model_validator(mode="after")
    def check_action_fields(self) -> "FileChange":
        if not self.path:
            raise ValueError("path is required")
        if self.action == "move" and not self.previous_path:
            raise ValueError("move requires previous_path")
        if self.action == "delete" and self.data is not None:
            raise ValueError("delete must not carry data")
        return self

    @classmethod
    def build(cls, **kwargs) -> "FileChange":
        """
        Create a change, raising InvalidFileChangeError instead of a ValidationError.
        """
        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise InvalidFileChangeError(str(e)) from e

    @property
    def is_text_change(self) -> bool:
        return isinstance(self.data, str)


class CommitOptions(WireModel):
    """Options for committing a batch of changes."""
    commit_type: str = "update"
    collection: Optional[str] = None
    skip_ci: Optional[bool] = None


class CommittedFile(WireModel):
    """Hash and, when available, content of a committed file."""
    sha: str
    file: Optional[Blob] = None


class CommitResults(WireModel):
    """Backend acknowledgement of a batch of changes."""
    sha: str
    author: Optional[CommitAuthor] = None
    date: Optional[datetime] = None
    files: Dict[str, CommittedFile] = {}
