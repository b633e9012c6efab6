"""
Resolve public URLs for stored files and variants.
"""

from api.filerecord.models import FileRecord
from core.exceptions import VariantNotFoundError


class UrlBuilder:
    """
    Joins a per-storage base URL with the backend path.

    Storages without a configured base URL get no URL (None).
    """

    def __init__(self, base_urls: dict[str, str]):
        self.base_urls = {name: url.rstrip("/") for name, url in base_urls.items()}

    def _join(self, storage: str, path: str | None) -> str | None:
        base = self.base_urls.get(storage)
        if base is None or not path:
            return None
        return f"{base}/{path.lstrip('/')}"

    def url(self, file: FileRecord) -> str | None:
        return self._join(file.storage, file.path)

    def url_for_variant(self, file: FileRecord, variant: str) -> str | None:
        """Uses the path the variant was written to, so call after writing"""
        if variant not in file.variants:
            raise VariantNotFoundError(variant)
        return self._join(file.storage, file.variants[variant].path)
