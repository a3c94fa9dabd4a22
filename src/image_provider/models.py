"""Value types shared across image-provider."""

from dataclasses import dataclass
from typing import Generic, NoReturn, Optional, TypeVar, Union

from pydantic import BaseModel, Field, model_validator

from .storage.path import BucketFilePath

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """Failed outcome carrying the error that caused it."""

    error: BaseException

    @property
    def is_success(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        raise self.error


Result = Union[Success[T], Failure]


class RemoteFile(BaseModel):
    """A remote file as stored in records: a plain URL or a bucket path.

    Exactly one of ``url`` and ``storage_path`` must be set.
    """

    url: Optional[str] = Field(None, description="Absolute URL of the file")
    storage_path: Optional[str] = Field(None, description="Bucket path, e.g. 'avatars/42.png'")

    @model_validator(mode="after")
    def _check_exactly_one(self) -> "RemoteFile":
        if (self.url is None) == (self.storage_path is None):
            raise ValueError("Exactly one of url or storage_path must be set")
        if self.storage_path is not None and BucketFilePath.from_key(self.storage_path) is None:
            raise ValueError(f"Invalid bucket path: {self.storage_path}")
        return self

    @property
    def bucket_path(self) -> Optional[BucketFilePath]:
        """Parsed bucket path, for stored files."""
        if self.storage_path is None:
            return None
        return BucketFilePath.from_key(self.storage_path)
