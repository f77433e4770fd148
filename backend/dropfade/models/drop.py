# dropfade/models/drop.py

from enum import Enum
from typing import NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DropKind(str, Enum):
    FILE = "file"
    TEXT = "text"


class DropRecord(BaseModel):
    """
    The only persisted entity. Stored as JSON under ``drop:<code>``:

        {type, content, filename?, expiresAt, hasDownloaded, createdAt}

    ``payload`` is the literal text for text drops and the blob's public
    URL for file drops.
    """

    model_config = ConfigDict(populate_by_name=True)

    code: Optional[str] = Field(default=None, exclude=True)
    kind: DropKind = Field(alias="type")
    payload: str = Field(alias="content")
    display_name: Optional[str] = Field(default=None, alias="filename")
    created_at: int = Field(alias="createdAt")
    expires_at: int = Field(alias="expiresAt")
    consumed: bool = Field(default=False, alias="hasDownloaded")

    @model_validator(mode="after")
    def _expiry_after_creation(self):
        if self.expires_at <= self.created_at:
            raise ValueError("expiresAt must be later than createdAt")
        return self

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str, code: Optional[str] = None) -> "DropRecord":
        record = cls.model_validate_json(raw)
        record.code = code
        return record

    def to_wire(self) -> dict:
        """Persisted shape, as returned by a preview"""
        return self.model_dump(by_alias=True, exclude_none=True)


class BlobRef(NamedTuple):
    """Adapter-native blob identifier"""

    public_id: str
    resource_type: Optional[str] = None


class StoredBlob(NamedTuple):
    blob_ref: BlobRef
    public_url: str
    original_filename: str
    format: Optional[str] = None
    size: int = 0


class ConsumedDrop(NamedTuple):
    kind: DropKind
    payload: Union[str, bytes]
    display_name: Optional[str] = None
