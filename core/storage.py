"""
Storage backends

Every backend exposes the same stream based interface so the rest of the
application never needs to know whether bytes live on local disk or in S3.
Backends are looked up by name through a StorageRegistry.
"""

import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

try:
    import boto3
    from botocore.exceptions import ClientError

    BOTO3_AVAILABLE = True
except ImportError:
    BOTO3_AVAILABLE = False

from core.config import Settings
from core.exceptions import (
    StorageError,
    StorageNotFoundError,
    StorageObjectNotFoundError,
)
from core.logger import logger


def parse_s3_path(s3_path: str) -> tuple[str, str]:
    """Parse S3 path into bucket and prefix"""
    if not s3_path.startswith("s3://"):
        raise ValueError("Invalid S3 path format. Must start with s3://")

    # Remove s3:// prefix
    path_without_scheme = s3_path[5:]

    # Check for empty path after s3://
    if not path_without_scheme:
        raise ValueError("Invalid S3 path format. Bucket name is required")

    # Check for leading slash (s3:///)
    if path_without_scheme.startswith("/"):
        raise ValueError("Invalid S3 path format. Bucket name cannot start with /")

    # Check for double slashes anywhere in the path
    if "//" in path_without_scheme:
        raise ValueError("Invalid S3 path format. Path cannot contain double slashes")

    # Split into bucket and key
    if "/" in path_without_scheme:
        bucket, key = path_without_scheme.split("/", 1)
    else:
        bucket = path_without_scheme
        key = ""

    return bucket, key


class StorageBackend(ABC):
    """Uniform read/write-stream interface over a storage target"""

    @abstractmethod
    def read_stream(self, path: str) -> BinaryIO:
        """Open the object at `path` for binary reading. Caller closes it."""

    @abstractmethod
    def write_stream(self, path: str, stream: BinaryIO, config: dict | None = None) -> None:
        """Write everything readable from `stream` to `path`"""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete the object at `path`; missing objects are ignored"""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether an object exists at `path`"""

    @abstractmethod
    def size(self, path: str) -> int:
        """Size in bytes of the object at `path`"""


class LocalStorage(StorageBackend):
    """
    Stores objects below a root directory on the local filesystem.

    Paths are relative to the root; a path that resolves outside the root
    is refused.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _full_path(self, path: str) -> Path:
        full_path = (self.root / path.lstrip("/")).resolve()
        # Security check: ensure the resolved path is within root
        try:
            full_path.relative_to(self.root)
        except ValueError as exc:
            raise StorageError(f"Access denied: path escapes storage root: {path}") from exc
        return full_path

    def read_stream(self, path: str) -> BinaryIO:
        try:
            return open(self._full_path(path), "rb")
        except FileNotFoundError as exc:
            raise StorageObjectNotFoundError(path) from exc

    def write_stream(self, path: str, stream: BinaryIO, config: dict | None = None) -> None:
        full_path = self._full_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        with open(full_path, "wb") as handle:
            shutil.copyfileobj(stream, handle)
        logger.debug("Wrote %s", full_path)

    def delete(self, path: str) -> None:
        self._full_path(path).unlink(missing_ok=True)

    def exists(self, path: str) -> bool:
        return self._full_path(path).is_file()

    def size(self, path: str) -> int:
        try:
            return self._full_path(path).stat().st_size
        except FileNotFoundError as exc:
            raise StorageObjectNotFoundError(path) from exc


class S3Storage(StorageBackend):
    """
    Stores objects in an S3 bucket below an optional key prefix.

    Args:
        uri: s3://bucket/prefix/ the backend is rooted at
        s3_client: Optional boto3 S3 client
    """

    def __init__(self, uri: str, s3_client=None):
        if not BOTO3_AVAILABLE:
            raise StorageError("S3 support not available. Install boto3 to enable S3 storage.")

        self.bucket, prefix = parse_s3_path(uri)
        self.prefix = prefix.rstrip("/") + "/" if prefix else ""
        self.client = s3_client if s3_client is not None else boto3.client("s3")

    def _key(self, path: str) -> str:
        return self.prefix + path.lstrip("/")

    def _raise_for(self, exc: "ClientError", path: str):
        error_code = exc.response["Error"]["Code"]
        if error_code in ("NoSuchKey", "404", "NotFound"):
            raise StorageObjectNotFoundError(path) from exc
        if error_code == "NoSuchBucket":
            raise StorageError(f"S3 bucket not found: {self.bucket}") from exc
        if error_code == "AccessDenied":
            raise StorageError(f"Access denied to S3 bucket: {self.bucket}") from exc
        raise StorageError(f"S3 error: {exc.response['Error'].get('Message', error_code)}") from exc

    def read_stream(self, path: str) -> BinaryIO:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(path))
        except ClientError as exc:
            self._raise_for(exc, path)
        return response["Body"]

    def write_stream(self, path: str, stream: BinaryIO, config: dict | None = None) -> None:
        extra_args = {}
        if config and config.get("mime_type"):
            extra_args["ContentType"] = config["mime_type"]
        try:
            self.client.upload_fileobj(
                stream, self.bucket, self._key(path), ExtraArgs=extra_args or None
            )
        except ClientError as exc:
            self._raise_for(exc, path)
        logger.debug("Uploaded s3://%s/%s", self.bucket, self._key(path))

    def delete(self, path: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._key(path))
        except ClientError as exc:
            self._raise_for(exc, path)

    def exists(self, path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(path))
        except ClientError as exc:
            if exc.response["Error"]["Code"] in ("NoSuchKey", "404", "NotFound"):
                return False
            self._raise_for(exc, path)
        return True

    def size(self, path: str) -> int:
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=self._key(path))
        except ClientError as exc:
            self._raise_for(exc, path)
        return response["ContentLength"]


class StorageRegistry:
    """Maps backend names to configured StorageBackend instances"""

    def __init__(self, backends: dict[str, StorageBackend] | None = None):
        self._backends: dict[str, StorageBackend] = dict(backends or {})

    def add(self, name: str, backend: StorageBackend) -> None:
        self._backends[name] = backend

    def has(self, name: str) -> bool:
        return name in self._backends

    def get_storage(self, name: str) -> StorageBackend:
        try:
            return self._backends[name]
        except KeyError:
            raise StorageNotFoundError(name) from None

    def names(self) -> list[str]:
        return list(self._backends)


def build_storage_registry(settings: Settings, s3_client=None) -> StorageRegistry:
    """
    Register the backends described by the settings: always `local`, plus
    `s3` when STORAGE_S3_URI is set.
    """
    registry = StorageRegistry()
    registry.add("local", LocalStorage(settings.STORAGE_LOCAL_ROOT))

    if settings.STORAGE_S3_URI:
        if s3_client is None and BOTO3_AVAILABLE:
            s3_client = boto3.client("s3", region_name=settings.AWS_REGION)
        registry.add("s3", S3Storage(settings.STORAGE_S3_URI, s3_client=s3_client))

    logger.info("Registered storage backends: %s", ", ".join(registry.names()))
    return registry
