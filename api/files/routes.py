"""
Routes/endpoints for the Files API
"""

from fastapi import APIRouter, File, Form, UploadFile

from api.filerecord.models import FileRecordPublic
from api.files import services
from api.files.models import VariantsRequest
from core.config import get_settings
from core.deps import FileStorageDep, ImageProcessorDep

router = APIRouter(prefix="/files", tags=["File Endpoints"])


@router.post("/upload", response_model=FileRecordPublic, tags=["File Endpoints"])
def upload_file(
    file_storage: FileStorageDep,
    processor: ImageProcessorDep,
    file: UploadFile = File(..., description="File to upload"),
    storage: str | None = Form(None, description="Storage backend, defaults to STORAGE_DEFAULT"),
    collection: str | None = Form(None, description="Collection tag, e.g. avatar"),
    model: str | None = Form(None, description="Name of the owning model"),
    model_id: str | None = Form(None, description="Id of the owning model"),
    variants: str | None = Form(
        None,
        description='Variants as JSON, e.g. {"thumbnail": {"operations": '
        '{"scale": {"width": 300, "height": 300}}, "optimize": true}}',
    ),
):
    """
    Upload a file, store it and generate its image variants.

    The response is the file record including the path (and URL) of every
    generated variant. Persisting the record is up to the client.
    """
    data = file.file.read()
    record = services.upload_file(
        data=data,
        filename=file.filename or "upload",
        storage=storage or get_settings().STORAGE_DEFAULT,
        file_storage=file_storage,
        processor=processor,
        mime_type=file.content_type,
        collection=collection,
        model=model,
        model_id=model_id,
        variants=variants,
    )
    return record.to_dict()


@router.post("/variants", response_model=FileRecordPublic, tags=["File Endpoints"])
def generate_variants(
    request: VariantsRequest,
    processor: ImageProcessorDep,
):
    """
    Regenerate the variants of an already stored file.

    Use `only` to regenerate a subset, e.g. after a partial failure.
    """
    return services.generate_variants(request, processor).to_dict()
