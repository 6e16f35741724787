"""File lifecycle: metadata rows in DuckDB, blobs on disk.

No transaction spans a row write and a blob write. The flows below order the
two so that a failure between them can leave an orphaned blob but never a
row pointing at a blob that is gone:

- upload:  write blob -> insert row        (insert failure discards the blob)
- update:  write new blob -> conditional row update -> discard old blob
- delete:  delete row -> discard blob

Discards are best-effort: a failure is logged and the request still
succeeds.
"""
import logging
import math
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import duckdb

from ..database import Database, utc_now
from ..errors import BlobMissingError, NotFoundError, PayloadTooLargeError, StorageError
from .schemas import FileRecord, Pagination
from .storage import BlobStorage, split_original_name

logger = logging.getLogger(__name__)

_FILE_COLUMNS = "id, name, extension, mime_type, size, filename, uploaded_at"


def _row_to_file(row) -> FileRecord:
    return FileRecord(
        id=row[0],
        name=row[1],
        extension=row[2],
        mime_type=row[3],
        size=row[4],
        filename=row[5],
        uploaded_at=row[6],
    )


@contextmanager
def _storage_errors(message: str) -> Iterator[None]:
    """Turn database and filesystem faults into a StorageError(message)."""
    try:
        yield
    except (duckdb.Error, OSError) as e:
        logger.exception(message)
        raise StorageError(message) from e


class FileMetadataStore:
    """Singleton access to the files table."""

    _instance: Optional["FileMetadataStore"] = None

    def __init__(self, database: Optional[Database] = None) -> None:
        self._db = database or Database.get_instance()

    @classmethod
    def get_instance(cls) -> "FileMetadataStore":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    def create(
        self,
        name: str,
        extension: str,
        mime_type: str,
        size: int,
        filename: str,
    ) -> FileRecord:
        row = self._db.connection.execute(
            f"""
            INSERT INTO files (name, extension, mime_type, size, filename, uploaded_at)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING {_FILE_COLUMNS}
            """,
            [name, extension, mime_type, size, filename, utc_now()],
        ).fetchone()
        return _row_to_file(row)

    def get(self, file_id: int) -> Optional[FileRecord]:
        row = self._db.connection.execute(
            f"SELECT {_FILE_COLUMNS} FROM files WHERE id = ?",
            [file_id],
        ).fetchone()
        return _row_to_file(row) if row else None

    def count(self) -> int:
        return self._db.connection.execute("SELECT COUNT(*) FROM files").fetchone()[0]

    def list_page(self, limit: int, offset: int) -> List[FileRecord]:
        """Return one page of files in ascending id order."""
        rows = self._db.connection.execute(
            f"""
            SELECT {_FILE_COLUMNS}
            FROM files
            ORDER BY id ASC
            LIMIT ? OFFSET ?
            """,
            [limit, offset],
        ).fetchall()
        return [_row_to_file(r) for r in rows]

    def replace_blob(
        self,
        file_id: int,
        expected_filename: str,
        name: str,
        extension: str,
        mime_type: str,
        size: int,
        filename: str,
    ) -> Optional[FileRecord]:
        """Point a row at a new blob, only if it still points at *expected_filename*.

        Returns:
            The updated row, or None if the row was deleted or replaced by a
            concurrent request in the meantime.
        """
        row = self._db.connection.execute(
            f"""
            UPDATE files
            SET name = ?, extension = ?, mime_type = ?, size = ?, filename = ?, uploaded_at = ?
            WHERE id = ? AND filename = ?
            RETURNING {_FILE_COLUMNS}
            """,
            [name, extension, mime_type, size, filename, utc_now(), file_id, expected_filename],
        ).fetchone()
        return _row_to_file(row) if row else None

    def delete(self, file_id: int) -> bool:
        rows = self._db.connection.execute(
            "DELETE FROM files WHERE id = ? RETURNING id",
            [file_id],
        ).fetchall()
        return len(rows) > 0


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


def _check_size(content: bytes, max_bytes: int) -> None:
    if len(content) > max_bytes:
        raise PayloadTooLargeError(
            f"File size ({len(content)} bytes) exceeds limit ({max_bytes} bytes)"
        )


def _require_file(store: FileMetadataStore, file_id: int, message: str) -> FileRecord:
    with _storage_errors(message):
        record = store.get(file_id)
    if record is None:
        raise NotFoundError()
    return record


def paginate(total: int, page: int, page_size: int) -> Pagination:
    return Pagination(
        total_files=total,
        total_pages=math.ceil(total / page_size),
        current_page=page,
        page_size=page_size,
    )


async def upload_file(
    original_filename: str,
    mime_type: str,
    content: bytes,
    store: FileMetadataStore,
    blobs: BlobStorage,
    max_bytes: int,
) -> FileRecord:
    """Store a new blob and record its metadata.

    Raises:
        PayloadTooLargeError: If the blob exceeds *max_bytes*.
        StorageError: If the blob or the row cannot be written.
    """
    _check_size(content, max_bytes)
    name, extension = split_original_name(original_filename)

    with _storage_errors("Error saving uploaded file"):
        stored_name = blobs.save(content, original_filename)

    try:
        record = store.create(
            name=name,
            extension=extension,
            mime_type=mime_type,
            size=len(content),
            filename=stored_name,
        )
    except duckdb.Error as e:
        logger.exception("Error inserting file data into database")
        blobs.discard(stored_name)
        raise StorageError("Error inserting data into database") from e

    logger.info("File %s uploaded as %s (%d bytes)", record.id, stored_name, record.size)
    return record


async def list_files(
    page: int,
    page_size: int,
    store: FileMetadataStore,
) -> Tuple[List[FileRecord], Pagination]:
    offset = (page - 1) * page_size
    with _storage_errors("Error retrieving files from database"):
        total = store.count()
        files = store.list_page(limit=page_size, offset=offset)
    return files, paginate(total, page, page_size)


async def get_file(file_id: int, store: FileMetadataStore) -> FileRecord:
    return _require_file(store, file_id, "Error retrieving file")


async def resolve_download(
    file_id: int,
    store: FileMetadataStore,
    blobs: BlobStorage,
) -> Tuple[FileRecord, Path]:
    """Resolve a file id to its row and blob path.

    The row is looked up first; the filesystem is only touched for an
    existing row.

    Raises:
        NotFoundError: No row with this id.
        BlobMissingError: The row exists but its blob does not.
    """
    record = _require_file(store, file_id, "Error downloading file")
    if not blobs.exists(record.filename):
        logger.error("File %s references missing blob %s", file_id, record.filename)
        raise BlobMissingError()
    return record, blobs.path_for(record.filename)


async def update_file(
    file_id: int,
    original_filename: str,
    mime_type: str,
    content: bytes,
    store: FileMetadataStore,
    blobs: BlobStorage,
    max_bytes: int,
) -> FileRecord:
    """Replace a file's blob and refresh its metadata from the new upload.

    Raises:
        NotFoundError: No row with this id, or it vanished mid-update.
        PayloadTooLargeError: If the blob exceeds *max_bytes*.
        StorageError: If the new blob or the row update cannot be written.
    """
    existing = _require_file(store, file_id, "Error updating file")
    _check_size(content, max_bytes)
    name, extension = split_original_name(original_filename)

    with _storage_errors("Error updating file"):
        new_filename = blobs.save(content, original_filename)

    try:
        updated = store.replace_blob(
            file_id=file_id,
            expected_filename=existing.filename,
            name=name,
            extension=extension,
            mime_type=mime_type,
            size=len(content),
            filename=new_filename,
        )
    except duckdb.Error as e:
        logger.exception("Error updating file %s", file_id)
        blobs.discard(new_filename)
        raise StorageError("Error updating file") from e

    if updated is None:
        logger.warning("File %s changed or was deleted during update", file_id)
        blobs.discard(new_filename)
        raise NotFoundError()

    blobs.discard(existing.filename)
    logger.info("File %s updated: %s -> %s", file_id, existing.filename, new_filename)
    return updated


async def delete_file(file_id: int, store: FileMetadataStore, blobs: BlobStorage) -> None:
    """Delete a file's row, then its blob.

    Raises:
        NotFoundError: No row with this id.
        StorageError: If the row cannot be deleted.
    """
    existing = _require_file(store, file_id, "Error deleting file")
    with _storage_errors("Error deleting file"):
        deleted = store.delete(file_id)
    if not deleted:
        raise NotFoundError()
    blobs.discard(existing.filename)
    logger.info("File %s deleted", file_id)
