"""
Services for the Files API
"""

import json
from fastapi import HTTPException, status

from api.filerecord import factory
from api.filerecord.models import FileRecord
from api.filerecord.services import FileStorage
from api.files.models import VariantsRequest
from api.variants.models import ImageVariantCollection
from api.variants.processor import ImageProcessor
from core.exceptions import (
    FileStorageError,
    StorageError,
    StorageNotFoundError,
    StorageObjectNotFoundError,
    VariantError,
)
from core.logger import logger


def _http_error(exc: FileStorageError) -> HTTPException:
    """Translate a domain error into an HTTPException"""
    if isinstance(exc, VariantError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, (StorageNotFoundError, StorageObjectNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, StorageError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    logger.error("Processing failed: %s", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Unexpected error processing file: {exc}",
    )


def parse_variants(variants: str | dict | None) -> ImageVariantCollection:
    """
    Build a variant collection from its JSON (or already decoded) form:
    {"thumbnail": {"operations": {"scale": {"width": 300, "height": 300}}, "optimize": true}}
    """
    if not variants:
        return ImageVariantCollection.create()

    if isinstance(variants, str):
        try:
            variants = json.loads(variants)
        except json.JSONDecodeError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Variants must be valid JSON: {exc}",
            ) from exc

    if not isinstance(variants, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Variants must be a JSON object keyed by variant name",
        )

    try:
        return ImageVariantCollection.from_dict(variants)
    except VariantError as exc:
        raise _http_error(exc) from exc


def upload_file(
    data: bytes,
    filename: str,
    storage: str,
    file_storage: FileStorage,
    processor: ImageProcessor,
    mime_type: str | None = None,
    collection: str | None = None,
    model: str | None = None,
    model_id: str | None = None,
    variants: str | None = None,
) -> FileRecord:
    """
    Store an uploaded file and generate its declared variants.

    The returned record is not persisted anywhere; storing it is up to the
    caller.
    """
    collection_variants = parse_variants(variants)

    file = factory.from_bytes(data, filename, storage, mime_type=mime_type)
    if collection:
        file = file.add_to_collection(collection)
    if model and model_id:
        file = file.belongs_to_model(model, model_id)
    if len(collection_variants):
        file = file.with_variants(collection_variants.to_dict())

    try:
        file = file_storage.store(file)
        file = processor.process(file)
    except FileStorageError as exc:
        raise _http_error(exc) from exc
    finally:
        file.resource.close()

    return file.without_resource()


def generate_variants(request: VariantsRequest, processor: ImageProcessor) -> FileRecord:
    """
    (Re)generate variants of a file that is already in its storage backend,
    optionally limited to `request.only`.
    """
    file = request.file.to_record()

    if request.variants:
        declared = parse_variants(
            {name: variant.model_dump() for name, variant in request.variants.items()}
        )
        file = file.with_variants(declared.to_dict())

    if not file.path:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File has no storage path, upload it first",
        )

    if request.only is not None:
        unknown = sorted(set(request.only) - set(file.variants))
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown variants: {', '.join(unknown)}",
            )

    try:
        return processor.process(file, variants=request.only)
    except FileStorageError as exc:
        raise _http_error(exc) from exc
