"""
Build backend-relative paths for stored files and their variants.
"""

import hashlib
from pathlib import PurePosixPath

from api.filerecord.models import FileRecord


DEFAULT_PATH_TEMPLATE = "{model}/{random_path}/{stripped_id}/{stripped_id}.{extension}"
DEFAULT_VARIANT_PATH_TEMPLATE = (
    "{model}/{random_path}/{stripped_id}/{basename}.{variant}.{extension}"
)


class PathBuilder:
    """
    Expands path templates for a FileRecord.

    Available placeholders:
        {model}           owning model name, empty when unset
        {collection}      collection tag, empty when unset
        {random_path}     directory levels derived from the id, e.g. `8/d/0`
        {id}              the record id
        {stripped_id}     the record id without dashes
        {filename}        full filename
        {basename}        filename without extension
        {extension}       extension without dot
        {variant}         variant name (variant templates only)
        {hashed_variant}  short sha1 of the variant name

    Empty segments are dropped, so `{model}/...` does not produce a leading
    slash for files that belong to no model. The result only depends on the
    record and the variant name.
    """

    def __init__(
        self,
        template: str = DEFAULT_PATH_TEMPLATE,
        variant_template: str = DEFAULT_VARIANT_PATH_TEMPLATE,
        random_path_levels: int = 3,
    ):
        if "{variant}" not in variant_template and "{hashed_variant}" not in variant_template:
            raise ValueError("Variant path template needs {variant} or {hashed_variant}")
        self.template = template
        self.variant_template = variant_template
        self.random_path_levels = random_path_levels

    def _random_path(self, file: FileRecord) -> str:
        digest = hashlib.md5(str(file.id).encode("utf-8")).hexdigest()
        return "/".join(digest[: self.random_path_levels])

    def _placeholders(self, file: FileRecord) -> dict[str, str]:
        filename = PurePosixPath(file.filename)
        return {
            "model": file.model or "",
            "collection": file.collection or "",
            "random_path": self._random_path(file),
            "id": str(file.id),
            "stripped_id": str(file.id).replace("-", ""),
            "filename": file.filename,
            "basename": filename.stem,
            "extension": file.extension or filename.suffix.lstrip("."),
        }

    @staticmethod
    def _render(template: str, values: dict[str, str]) -> str:
        path = template.format(**values)
        segments = [segment for segment in path.split("/") if segment]
        # `name.` when the file has no extension
        if segments:
            segments[-1] = segments[-1].rstrip(".")
        return "/".join(segments)

    def path(self, file: FileRecord) -> str:
        return self._render(self.template, self._placeholders(file))

    def path_for_variant(self, file: FileRecord, variant: str) -> str:
        values = self._placeholders(file)
        values["variant"] = variant
        values["hashed_variant"] = hashlib.sha1(variant.encode("utf-8")).hexdigest()[:8]
        return self._render(self.variant_template, values)
