"""FastAPI router for file management endpoints.

Endpoints:
    POST   /file/upload         - Upload a file (multipart field ``file``)
    GET    /file/list           - Paginated metadata (``list_size``, ``page``)
    GET    /file/{id}           - Metadata for one file
    GET    /file/download/{id}  - Stream the blob as an attachment
    PUT    /file/update/{id}    - Replace the blob (multipart field ``file``)
    DELETE /file/delete/{id}    - Delete row and blob

Every route requires a bearer access token unless ``files.require_auth``
is switched off in the settings.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import FileResponse

from ..auth.guard import require_access_token
from ..auth.tokens import TokenService, get_token_service
from ..config import get_config
from . import service
from .schemas import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    FileDetailResponse,
    FileListResponse,
    FileMessageResponse,
    FileUploadResponse,
)
from .service import FileMetadataStore
from .storage import BlobStorage

logger = logging.getLogger(__name__)


async def files_guard(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Optional[Dict[str, Any]]:
    """Apply the access-token guard when file routes are protected."""
    if not get_config().files.require_auth:
        return None
    return await require_access_token(request, tokens)


router = APIRouter(prefix="/file", tags=["files"], dependencies=[Depends(files_guard)])


def get_metadata_store() -> FileMetadataStore:
    return FileMetadataStore.get_instance()


def get_blob_storage() -> BlobStorage:
    return BlobStorage.get_instance()


def _positive_int(value: Optional[str], default: int) -> int:
    """Parse a query value, falling back to *default* for junk or values < 1."""
    try:
        parsed = int(value) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


@router.post("/upload", response_model=FileUploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    store: FileMetadataStore = Depends(get_metadata_store),
    blobs: BlobStorage = Depends(get_blob_storage),
) -> FileUploadResponse:
    """Upload a file.

    The blob is stored under a generated name; the row records the original
    name, extension, MIME type, size and the generated name.

    Raises:
        413: If the file exceeds ``files.max_upload_bytes``.
        500: If the blob or the row cannot be written.
    """
    content = await file.read()
    record = await service.upload_file(
        original_filename=file.filename or "unnamed",
        mime_type=file.content_type or "application/octet-stream",
        content=content,
        store=store,
        blobs=blobs,
        max_bytes=get_config().files.max_upload_bytes,
    )
    return FileUploadResponse(
        message="File uploaded and data recorded successfully",
        file=record,
    )


@router.get("/list", response_model=FileListResponse)
async def list_files(
    list_size: Optional[str] = None,
    page: Optional[str] = None,
    store: FileMetadataStore = Depends(get_metadata_store),
) -> FileListResponse:
    """List files one page at a time, in ascending id order.

    Args:
        list_size: Page size (default 10).
        page: 1-indexed page number (default 1).
    """
    page_size = _positive_int(list_size, DEFAULT_PAGE_SIZE)
    current_page = _positive_int(page, DEFAULT_PAGE)
    files, pagination = await service.list_files(current_page, page_size, store)
    return FileListResponse(files=files, pagination=pagination)


@router.get("/download/{file_id}")
async def download_file(
    file_id: int,
    store: FileMetadataStore = Depends(get_metadata_store),
    blobs: BlobStorage = Depends(get_blob_storage),
) -> FileResponse:
    """Stream a file's blob as an attachment named after its stored filename.

    Raises:
        404: ``File not found`` when the row is absent,
             ``File not found on disk`` when only the blob is absent.
    """
    record, path = await service.resolve_download(file_id, store, blobs)
    return FileResponse(
        path=path,
        media_type=record.mime_type,
        # An explicit header stops Starlette appending a charset to text/* types.
        headers={
            "Content-Type": record.mime_type,
            "Content-Disposition": f"attachment; filename={record.filename}",
        },
    )


@router.put("/update/{file_id}", response_model=FileMessageResponse)
async def update_file(
    file_id: int,
    file: UploadFile = File(...),
    store: FileMetadataStore = Depends(get_metadata_store),
    blobs: BlobStorage = Depends(get_blob_storage),
) -> FileMessageResponse:
    """Replace a file's blob; the old blob is removed once the row points at the new one."""
    content = await file.read()
    await service.update_file(
        file_id=file_id,
        original_filename=file.filename or "unnamed",
        mime_type=file.content_type or "application/octet-stream",
        content=content,
        store=store,
        blobs=blobs,
        max_bytes=get_config().files.max_upload_bytes,
    )
    return FileMessageResponse(message="File updated successfully")


@router.delete("/delete/{file_id}", response_model=FileMessageResponse)
async def delete_file(
    file_id: int,
    store: FileMetadataStore = Depends(get_metadata_store),
    blobs: BlobStorage = Depends(get_blob_storage),
) -> FileMessageResponse:
    await service.delete_file(file_id, store, blobs)
    return FileMessageResponse(message="File deleted successfully")


# Keep after the fixed paths: routes match in registration order.
@router.get("/{file_id}", response_model=FileDetailResponse)
async def get_file(
    file_id: int,
    store: FileMetadataStore = Depends(get_metadata_store),
) -> FileDetailResponse:
    record = await service.get_file(file_id, store)
    return FileDetailResponse(file=record)
