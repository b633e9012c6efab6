"""
FileRecord Models - storage-agnostic file metadata records.

A FileRecord describes one stored file: its identity, where it lives and
which image variants are declared (and, once processed, generated) for it.
Records are frozen; every ``with_*`` transition returns a new record and
never shares mutable maps with the record it was derived from.
"""

import copy
import uuid
from typing import Any, BinaryIO
from pydantic import BaseModel, ConfigDict, Field

from api.variants.models import copy_operations


class VariantDescriptor(BaseModel):
    """
    Declared operations of one variant and, after processing, where the
    generated file was written.

    `path` is empty until the variant has been written at least once.
    """
    operations: dict[str, dict[str, Any]] = Field(default_factory=dict)
    optimize: bool = False
    path: str = ""
    url: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def is_generated(self) -> bool:
        return bool(self.path)


class FileRecord(BaseModel):
    """
    Metadata record for a file stored in one of the storage backends.

    `id`, `storage` and `path` together address the physical object. Uses a
    polymorphic association via `model` and `model_id` to link the file to
    the entity that owns it without a hard foreign key.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    storage: str
    path: str | None = None
    filename: str
    extension: str | None = None
    mime_type: str | None = None
    size: int | None = None  # File size in bytes
    url: str | None = None

    model: str | None = None
    model_id: str | None = None
    collection: str | None = None  # e.g. "avatar"

    metadata: dict[str, Any] = Field(default_factory=dict)
    variants: dict[str, VariantDescriptor] = Field(default_factory=dict)

    # Open stream with the file content, not part of the persisted record
    resource: Any = Field(default=None, exclude=True, repr=False)

    model_config = ConfigDict(
        frozen=True, arbitrary_types_allowed=True, protected_namespaces=()
    )

    def _evolve(self, **changes) -> "FileRecord":
        # Copy the mutable maps so the new record shares nothing with this one
        if "metadata" not in changes:
            changes["metadata"] = copy.deepcopy(self.metadata)
        if "variants" not in changes:
            changes["variants"] = self._copy_variants()
        return self.model_copy(update=changes)

    def _copy_variants(self) -> dict[str, VariantDescriptor]:
        return {name: _copy_descriptor(v) for name, v in self.variants.items()}

    # Identity / location ---------------------------------------------------

    def with_uuid(self, value: uuid.UUID | str) -> "FileRecord":
        return self._evolve(id=uuid.UUID(str(value)))

    def with_filename(self, filename: str) -> "FileRecord":
        return self._evolve(filename=filename)

    def with_path(self, path: str) -> "FileRecord":
        return self._evolve(path=path)

    def with_storage(self, storage: str) -> "FileRecord":
        return self._evolve(storage=storage)

    def with_url(self, url: str) -> "FileRecord":
        return self._evolve(url=url)

    def with_resource(self, resource: BinaryIO) -> "FileRecord":
        return self._evolve(resource=resource)

    def without_resource(self) -> "FileRecord":
        return self._evolve(resource=None)

    # Association -----------------------------------------------------------

    def add_to_collection(self, collection: str) -> "FileRecord":
        return self._evolve(collection=collection)

    def belongs_to_model(self, model: str, model_id: str) -> "FileRecord":
        return self._evolve(model=model, model_id=str(model_id))

    # Metadata --------------------------------------------------------------

    def with_metadata(self, metadata: dict[str, Any]) -> "FileRecord":
        return self._evolve(metadata=copy.deepcopy(dict(metadata)))

    def with_metadata_key(self, key: str, value: Any) -> "FileRecord":
        metadata = copy.deepcopy(self.metadata)
        metadata[key] = value
        return self._evolve(metadata=metadata)

    # Variants --------------------------------------------------------------

    @property
    def has_variants(self) -> bool:
        return bool(self.variants)

    def with_variants(self, variants: dict[str, Any], merge: bool = True) -> "FileRecord":
        """
        Attach variants, e.g. from ImageVariantCollection.to_dict().

        With `merge` the given variants are added to (and replace same-named)
        existing ones, otherwise they replace the whole mapping.
        """
        result = self._copy_variants() if merge else {}
        for name, data in variants.items():
            result[name] = _to_descriptor(data)
        return self._evolve(variants=result)

    def with_variant(self, name: str, data: "VariantDescriptor | dict[str, Any]") -> "FileRecord":
        result = self._copy_variants()
        result[name] = _to_descriptor(data)
        return self._evolve(variants=result)

    def variant_paths(self) -> dict[str, str]:
        """Paths of all variants that have been generated"""
        return {name: v.path for name, v in self.variants.items() if v.path}

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


def _to_descriptor(data: "VariantDescriptor | dict[str, Any]") -> VariantDescriptor:
    if isinstance(data, VariantDescriptor):
        return _copy_descriptor(data)
    # Detach from the caller's dicts so later edits do not leak in
    data = dict(data)
    if "operations" in data:
        data["operations"] = copy_operations(data["operations"] or {})
    return VariantDescriptor.model_validate(data)


def _copy_descriptor(descriptor: VariantDescriptor) -> VariantDescriptor:
    # Callbacks in the operations are shared, never copied
    return descriptor.model_copy(update={"operations": copy_operations(descriptor.operations)})


# ============================================================================
# Request/Response Models (Pydantic)
# ============================================================================


class VariantPublic(BaseModel):
    """Public representation of a variant"""
    operations: dict[str, dict[str, Any]]
    optimize: bool
    path: str
    url: str


class FileRecordPublic(BaseModel):
    """Public representation of a file record."""
    id: uuid.UUID
    storage: str
    path: str | None
    filename: str
    extension: str | None
    mime_type: str | None
    size: int | None
    url: str | None
    model: str | None
    model_id: str | None
    collection: str | None
    metadata: dict[str, Any]
    variants: dict[str, VariantPublic]

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    def to_record(self) -> FileRecord:
        return FileRecord.model_validate(self.model_dump())
