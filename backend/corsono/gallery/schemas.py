"""Data models for gallery ingestion and listing.

- UploadPart: one named binary part of a multipart request (ephemeral)
- StoredItem: a part that was persisted under a generated filename
- Manifest: what a single upload call actually stored
- GalleryEntry: listing-facing view of a stored file
- UploadResponse / ErrorResponse: JSON bodies returned by the API
"""
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from pydantic import BaseModel, Field


class PartBody(Protocol):
    """Anything that can hand over the raw bytes of a part.

    Starlette's ``UploadFile`` satisfies this directly.
    """

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class UploadPart:
    field_name: str
    filename: Optional[str]
    body: PartBody


@dataclass(frozen=True)
class StoredItem:
    namespace: str
    filename: str
    size_bytes: int


@dataclass
class Manifest:
    """Result of one ingest call.

    ``rejected`` holds the sanitized client filenames of parts that arrived
    under the gallery's upload field but were refused by policy.
    """
    items: List[StoredItem] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)

    @property
    def stored(self) -> List[str]:
        return [item.filename for item in self.items]

    @property
    def count(self) -> int:
        return len(self.items)


class GalleryEntry(BaseModel):
    name: str = Field(..., description="Stored filename")
    url: str = Field(..., description="Public URL of the file")


class UploadResponse(BaseModel):
    saved: List[str] = Field(..., description="Generated filenames, in arrival order")
    count: int = Field(..., description="Number of files stored")
    message: str = Field(..., description="Human-readable summary")
    rejected: List[str] = Field(default_factory=list, description="Client filenames refused by policy")


class ErrorResponse(BaseModel):
    error: str
