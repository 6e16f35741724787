"""Blob storage on the local filesystem.

Blobs live flat in the configured upload directory under generated names,
never under the name the client sent.
"""
import logging
import os
import random
import re
import tempfile
import time
from pathlib import Path
from typing import Optional, Tuple

from ..config import get_config

logger = logging.getLogger(__name__)

_SAFE_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]+")


def generate_stored_name(original_filename: str) -> str:
    """Return ``<epoch-ms>-<random 0..1e9><ext>`` for an upload.

    The extension is kept only when it is plain ASCII alphanumerics, so the
    stored name is always safe in a latin-1 ``Content-Disposition`` header.
    """
    extension = os.path.splitext(original_filename)[1]
    if not _SAFE_EXTENSION_RE.fullmatch(extension):
        extension = ""
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{extension}"


def split_original_name(original_filename: str) -> Tuple[str, str]:
    """Split an upload name into (name, extension) at the last dot.

    Any directory part the client sent is dropped.
    """
    return os.path.splitext(os.path.basename(original_filename))


class BlobStorage:
    """Reads and writes blobs in a single upload directory."""

    _instance: Optional["BlobStorage"] = None

    def __init__(self, upload_dir: Optional[str] = None) -> None:
        self._upload_dir = Path(upload_dir or get_config().files.upload_dir)
        self._upload_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def get_instance(cls) -> "BlobStorage":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    def path_for(self, stored_name: str) -> Path:
        """Resolve a stored name to its path inside the upload directory."""
        if not stored_name or Path(stored_name).name != stored_name:
            raise ValueError(f"Invalid stored filename: {stored_name!r}")
        return self._upload_dir / stored_name

    def exists(self, stored_name: str) -> bool:
        try:
            return self.path_for(stored_name).is_file()
        except ValueError:
            return False

    def save(self, content: bytes, original_filename: str) -> str:
        """Write *content* under a fresh generated name and return that name.

        The blob is written to a temp file first and renamed into place, so
        a reader never sees a partial blob.

        Raises:
            OSError: If the blob cannot be written.
        """
        stored_name = generate_stored_name(original_filename)
        fd, tmp_path = tempfile.mkstemp(dir=self._upload_dir, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(content)
            os.replace(tmp_path, self.path_for(stored_name))
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.info("Saved blob %s (%d bytes)", stored_name, len(content))
        return stored_name

    def remove(self, stored_name: str) -> None:
        """Delete a blob.

        Raises:
            OSError: If the blob is missing or cannot be deleted.
        """
        self.path_for(stored_name).unlink()
        logger.info("Deleted blob %s", stored_name)

    def discard(self, stored_name: str) -> bool:
        """Best-effort delete: log a failure instead of raising it."""
        try:
            self.remove(stored_name)
            return True
        except (OSError, ValueError) as e:
            logger.warning("Error deleting blob %s from local storage: %s", stored_name, e)
            return False
