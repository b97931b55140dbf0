"""Abstract interface for the remote file store

Issues and comments only know attachments by their opaque storage key. The
store behind this interface (S3 in production, an in-memory fake in tests)
owns the bytes.

Remote calls are never part of a database transaction: uploads happen before
records are written, and deletes are best-effort side effects.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class StorageError(Exception):
    """Raised when the remote store fails to upload or delete a file"""


@dataclass(frozen=True)
class UploadedFile:
    """A file received from a client, fully read into memory"""

    filename: str
    content_type: str
    content: bytes

    @property
    def is_empty(self) -> bool:
        return not self.content


@dataclass(frozen=True)
class StoredFile:
    """Result of a successful upload"""

    url: str
    storage_key: str


class FileStorage(ABC):
    """Contract every remote file store implementation must follow"""

    @abstractmethod
    async def upload(self, file: UploadedFile) -> StoredFile:
        """Upload a file and return its public URL and storage key

        Raises:
            StorageError: If the upload fails
        """

    @abstractmethod
    async def delete(self, storage_key: str) -> None:
        """Delete a previously uploaded file by storage key

        Raises:
            StorageError: If the delete fails
        """
