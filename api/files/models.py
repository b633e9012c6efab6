"""
Models for the Files API
"""

from typing import Any
from pydantic import BaseModel, ConfigDict

from api.filerecord.models import FileRecordPublic


class VariantInput(BaseModel):
    """Declared variant in a request: operations by name plus optimize flag"""

    operations: dict[str, dict[str, Any]] = {}
    optimize: bool = False

    model_config = ConfigDict(extra="forbid")


class VariantsRequest(BaseModel):
    """Request model for (re)generating the variants of a stored file"""

    file: FileRecordPublic
    variants: dict[str, VariantInput] | None = None  # added to the declared ones
    only: list[str] | None = None  # restrict processing to these variants

    model_config = ConfigDict(extra="forbid")
