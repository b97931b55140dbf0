import logging
from typing import Iterable

from apps.storage.interface import FileStorage, StorageError

logger = logging.getLogger(__name__)


async def delete_remote_files(storage: FileStorage, storage_keys: Iterable[str]) -> int:
    """
    Best-effort remote delete. Every key is attempted; failures are logged and swallowed.
    Returns the number of failed deletes.
    """
    failures = 0
    for key in storage_keys:
        try:
            await storage.delete(key)
        except StorageError as exc:
            failures += 1
            logger.warning(
                "Failed to delete remote file: %s",
                exc,
                extra={"event": "attachment_cleanup_failed", "storage_key": key},
            )
    return failures
