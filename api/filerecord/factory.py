"""
Factories that build FileRecords from local files, raw bytes or objects
already present in a storage backend.
"""

import io
import mimetypes
from pathlib import Path

from api.filerecord.models import FileRecord
from core.storage import StorageRegistry


def _describe(filename: str) -> tuple[str | None, str | None]:
    """Return (extension, mime_type) guessed from a filename"""
    suffix = Path(filename).suffix
    extension = suffix[1:].lower() if suffix else None
    mime_type, _ = mimetypes.guess_type(filename)
    return extension, mime_type


def from_disk(path: str | Path, storage: str) -> FileRecord:
    """
    Build a record for a file on the local disk that should go to `storage`.

    The file is opened and kept as the record's resource so it can be
    streamed into the backend without reading it twice. The caller owns the
    stream and closes it when done.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")

    extension, mime_type = _describe(path.name)
    return FileRecord(
        storage=storage,
        filename=path.name,
        extension=extension,
        mime_type=mime_type,
        size=path.stat().st_size,
        resource=open(path, "rb"),
    )


def from_bytes(
    data: bytes, filename: str, storage: str, mime_type: str | None = None
) -> FileRecord:
    """Build a record for in-memory content, e.g. an HTTP upload"""
    extension, guessed = _describe(filename)
    return FileRecord(
        storage=storage,
        filename=filename,
        extension=extension,
        mime_type=mime_type or guessed,
        size=len(data),
        resource=io.BytesIO(data),
    )


def from_storage(registry: StorageRegistry, storage: str, path: str) -> FileRecord:
    """Build a record addressing an object that already exists in a backend"""
    backend = registry.get_storage(storage)
    filename = Path(path).name
    extension, mime_type = _describe(filename)
    return FileRecord(
        storage=storage,
        path=path,
        filename=filename,
        extension=extension,
        mime_type=mime_type,
        size=backend.size(path),
    )
