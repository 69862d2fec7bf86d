"""Flat-directory storage for uploaded PDFs."""

import logging
import time
from pathlib import Path

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class StorageError(Exception):
    """Raised when a stored file cannot be read or written."""


class FileStorage:
    """Service for saving, reading and deleting note files on local disk."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or settings.uploads_dir)

    @staticmethod
    def make_filename(original_name: str, timestamp_ms: int | None = None) -> str:
        """
        Build the stored filename: upload timestamp (ms) + original base name.

        Directory components in the client-supplied name are discarded.
        """
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        base = Path(original_name.replace("\\", "/")).name or "upload.pdf"
        return f"{timestamp_ms}-{base}"

    def path_for(self, filename: str) -> Path:
        return self.root / Path(filename).name

    async def save(self, original_name: str, data: bytes) -> str:
        """
        Write a new file and return its stored filename.

        Raises:
            StorageError: If the file cannot be written
        """
        timestamp_ms = int(time.time() * 1000)
        filename = self.make_filename(original_name, timestamp_ms)
        # Same name within the same millisecond: move to the next free one
        while self.exists(filename):
            timestamp_ms += 1
            filename = self.make_filename(original_name, timestamp_ms)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self.path_for(filename).write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to store file {filename}: {e}") from e
        logger.info("Stored %s (%d bytes)", filename, len(data))
        return filename

    async def read(self, filename: str) -> bytes:
        """
        Read a stored file.

        Raises:
            FileNotFoundError: If the file is missing
            StorageError: If the file exists but cannot be read
        """
        path = self.path_for(filename)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise StorageError(f"Failed to read file {filename}: {e}") from e

    async def delete(self, filename: str) -> bool:
        """
        Delete a stored file. Returns False if it was already gone.

        Raises:
            StorageError: If the file exists but cannot be removed
        """
        try:
            self.path_for(filename).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete file {filename}: {e}") from e

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()


# Singleton instance
file_storage = FileStorage()
