import asyncio
import logging
import os
import uuid
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from apps.storage.cleanup import delete_remote_files
from apps.storage.interface import FileStorage, StorageError, StoredFile, UploadedFile
from common.exceptions import BadRequestError
from settings.config import get_settings

logger = logging.getLogger(__name__)


class S3FileStorage(FileStorage):
    """
    FileStorage backed by a single S3 bucket. Blocking boto3 calls run in a worker thread.
    """

    def __init__(self, bucket: Optional[str] = None, folder: Optional[str] = None, client=None):
        settings = get_settings()
        self.bucket = bucket or settings.AWS_S3_BUCKET
        self.folder = (folder if folder is not None else settings.UPLOAD_FOLDER).strip("/")
        self._client = client

    @staticmethod
    def _get_s3_client():
        """
        Construct a boto3 S3 client using application settings.
        Prefers explicit credentials from settings when provided.
        """
        settings = get_settings()
        kwargs: dict = {}

        if getattr(settings, "AWS_REGION", None):
            kwargs["region_name"] = settings.AWS_REGION
        if getattr(settings, "AWS_ACCESS_KEY_ID", None) and getattr(settings, "AWS_SECRET_ACCESS_KEY", None):
            kwargs["aws_access_key_id"] = settings.AWS_ACCESS_KEY_ID
            kwargs["aws_secret_access_key"] = settings.AWS_SECRET_ACCESS_KEY
            if getattr(settings, "AWS_SESSION_TOKEN", None):
                kwargs["aws_session_token"] = settings.AWS_SESSION_TOKEN

        return boto3.client("s3", **kwargs)

    @property
    def client(self):
        if self._client is None:
            self._client = self._get_s3_client()
        return self._client

    def _build_key(self, filename: str) -> str:
        _, ext = os.path.splitext(filename or "")
        name = f"{uuid.uuid4().hex}{ext.lower()}"
        return f"{self.folder}/{name}" if self.folder else name

    async def upload(self, file: UploadedFile) -> StoredFile:
        if not self.bucket:
            raise StorageError("AWS_S3_BUCKET is not configured in environment.")
        key = self._build_key(file.filename)
        client = self.client

        def _upload() -> str:
            client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=file.content,
                ContentType=file.content_type or "application/octet-stream",
            )
            # Construct URL using virtual-hosted-style URL
            region = client.meta.region_name or "us-east-1"
            return f"https://{self.bucket}.s3.{region}.amazonaws.com/{key}"

        try:
            url = await asyncio.to_thread(_upload)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 upload failed for {file.filename}: {exc}") from exc
        logger.info("Uploaded %s to s3://%s/%s", file.filename, self.bucket, key)
        return StoredFile(url=url, storage_key=key)

    async def delete(self, storage_key: str) -> None:
        if not self.bucket:
            raise StorageError("AWS_S3_BUCKET is not configured in environment.")
        client = self.client
        try:
            await asyncio.to_thread(client.delete_object, Bucket=self.bucket, Key=storage_key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 delete failed for {storage_key}: {exc}") from exc


@lru_cache()
def _default_storage() -> S3FileStorage:
    return S3FileStorage()


def get_storage() -> FileStorage:
    """
    FastAPI dependency returning the configured remote file store.
    """
    return _default_storage()


async def read_uploads(files: Optional[List[UploadFile]]) -> List[UploadedFile]:
    """
    Read multipart uploads into memory so services never touch the transport type.
    """
    uploads: List[UploadedFile] = []
    for upload in files or []:
        content = await upload.read()
        uploads.append(
            UploadedFile(
                filename=upload.filename or "file",
                content_type=upload.content_type or "application/octet-stream",
                content=content,
            )
        )
    return uploads


class StorageService:
    """
    Upload helpers shared by the issue and comment services.
    """

    @staticmethod
    async def upload_files(storage: FileStorage, files: Iterable[UploadedFile]) -> List[Tuple[UploadedFile, StoredFile]]:
        """
        Upload every file and return (file, stored) pairs.
        On the first failure, files already uploaded by this call are removed (best effort)
        and StorageError is re-raised with the offending file attached as `failed_file`.
        """
        uploaded: List[Tuple[UploadedFile, StoredFile]] = []
        for file in files:
            try:
                stored = await storage.upload(file)
            except StorageError as exc:
                await delete_remote_files(storage, [s.storage_key for _, s in uploaded])
                exc.failed_file = file
                raise
            uploaded.append((file, stored))
        return uploaded


    @staticmethod
    async def upload_or_reject(
        storage: FileStorage,
        files: Iterable[UploadedFile],
        failure_message: str = "Failed to upload file: ",
    ) -> List[Tuple[UploadedFile, StoredFile]]:
        """
        Same as upload_files, but a storage failure becomes a 400 naming the offending file.
        """
        try:
            return await StorageService.upload_files(storage, files)
        except StorageError as exc:
            failed = getattr(exc, "failed_file", None)
            filename = failed.filename if failed else "unknown"
            logger.warning("Upload rejected for %s: %s", filename, exc, extra={"event": "attachment_upload_failed"})
            raise BadRequestError(f"{failure_message}{filename}") from exc
