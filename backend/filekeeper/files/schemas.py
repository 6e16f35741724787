"""Pydantic schemas for file metadata and the /file endpoints.

A File row keeps two names apart:
- name + extension: the original upload name split at its last dot, shown
  to users.
- filename: the generated name of the blob on disk
  (``<epoch-ms>-<random><ext>``), used for storage and download headers.
"""
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_PAGE_SIZE = 10
DEFAULT_PAGE = 1


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileRecord(CamelModel):
    """Metadata for one stored file.

    Serialized with camelCase keys (``mimeType``, ``uploadedAt``).
    """
    id: int = Field(..., description="Server-generated file ID")
    name: str = Field(..., description="Original filename without extension")
    extension: str = Field(..., description="Original extension including the dot, may be empty")
    mime_type: str = Field(..., description="MIME type declared at upload")
    size: int = Field(..., description="Blob size in bytes")
    filename: str = Field(..., description="Generated name of the blob on disk")
    uploaded_at: datetime = Field(..., description="Time of the last upload or replacement (UTC)")


class Pagination(CamelModel):
    total_files: int
    total_pages: int
    current_page: int
    page_size: int


class FileListResponse(BaseModel):
    files: List[FileRecord]
    pagination: Pagination


class FileDetailResponse(BaseModel):
    file: FileRecord


class FileUploadResponse(BaseModel):
    message: str
    file: FileRecord


class FileMessageResponse(BaseModel):
    message: str
