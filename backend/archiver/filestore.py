"""File storage for uploaded documents: a local directory or an
S3-compatible bucket (AWS, Supabase Storage, MinIO ...).

Stored paths look like ``documents/<random>_<safe filename>``. Only paths
of that shape are ever read back or deleted, so metadata pointing at an
external URL is left alone.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from archiver.errors import NotFoundError, StorageError, ValidationError
from archiver.utils.filesystem import sanitize_filename

PREFIX = "documents/"


def new_object_key(filename: str) -> str:
    return f"{PREFIX}{uuid.uuid4().hex[:12]}_{sanitize_filename(filename or 'upload')}"


class FileStore(Protocol):
    name: str

    def save(self, filename: str, content: bytes, content_type: str | None = None) -> str:
        """Store ``content`` under a fresh path and return that path."""
        ...

    def open(self, path: str) -> bytes:
        ...

    def delete(self, path: str) -> None:
        """Remove a stored file. Missing files are not an error."""
        ...

    def owns(self, path: str) -> bool:
        ...


class LocalFileStore:
    name = "local"

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()
        (self.root / PREFIX).mkdir(parents=True, exist_ok=True)

    def _full_path(self, path: str) -> Path:
        full_path = (self.root / path).resolve()
        try:
            full_path.relative_to(self.root)
        except ValueError:
            raise ValidationError("Invalid file path") from None
        return full_path

    def owns(self, path: str) -> bool:
        if not path or not path.startswith(PREFIX):
            return False
        try:
            self._full_path(path)
        except ValidationError:
            return False
        return True

    def save(self, filename: str, content: bytes, content_type: str | None = None) -> str:
        path = new_object_key(filename)
        full_path = self._full_path(path)
        try:
            full_path.write_bytes(content)
            os.chmod(full_path, 0o444)
        except OSError as exc:
            raise StorageError("File upload failed") from exc
        return path

    def open(self, path: str) -> bytes:
        full_path = self._full_path(path)
        if not full_path.is_file():
            raise NotFoundError("Document file missing from storage")
        return full_path.read_bytes()

    def delete(self, path: str) -> None:
        try:
            self._full_path(path).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError("File removal failed") from exc


class S3FileStore:
    name = "s3"

    def __init__(
        self,
        bucket: str,
        client=None,
        endpoint_url: str | None = None,
        region: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
    ):
        self.bucket = bucket
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

    def owns(self, path: str) -> bool:
        return bool(path) and path.startswith(PREFIX) and ".." not in path.split("/")

    def save(self, filename: str, content: bytes, content_type: str | None = None) -> str:
        path = new_object_key(filename)
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self._client.put_object(Bucket=self.bucket, Key=path, Body=content, **extra)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError("File upload failed") from exc
        return path

    def open(self, path: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise NotFoundError("Document file missing from storage") from exc
            raise StorageError("File download failed") from exc
        except BotoCoreError as exc:
            raise StorageError("File download failed") from exc
        return response["Body"].read()

    def delete(self, path: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=path)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError("File removal failed") from exc
