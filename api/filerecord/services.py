"""
Services for storing and removing FileRecords in their storage backend
"""

from api.filerecord.models import FileRecord
from api.filerecord.paths import PathBuilder
from api.filerecord.urls import UrlBuilder
from core.exceptions import StorageError
from core.logger import logger
from core.storage import StorageRegistry


class FileStorage:
    """
    Writes the original file of a record to its backend and removes it (and
    its generated variants) again.
    """

    def __init__(
        self,
        registry: StorageRegistry,
        path_builder: PathBuilder,
        url_builder: UrlBuilder | None = None,
    ):
        self.registry = registry
        self.path_builder = path_builder
        self.url_builder = url_builder

    def store(self, file: FileRecord) -> FileRecord:
        """
        Stream the record's resource into its backend.

        The path is built by the path builder unless the record already has
        one. Returns the record with path (and url, if resolvable) set.
        """
        if file.resource is None:
            raise StorageError(f"File {file.id} has no resource to store")

        storage = self.registry.get_storage(file.storage)
        if not file.path:
            file = file.with_path(self.path_builder.path(file))

        file.resource.seek(0)
        storage.write_stream(file.path, file.resource, {"mime_type": file.mime_type})
        logger.info("Stored file %s in `%s` at %s", file.id, file.storage, file.path)

        if self.url_builder is not None:
            url = self.url_builder.url(file)
            if url:
                file = file.with_url(url)

        return file

    def remove(self, file: FileRecord) -> None:
        """Delete the original and every generated variant from the backend"""
        storage = self.registry.get_storage(file.storage)
        for variant, path in file.variant_paths().items():
            storage.delete(path)
            logger.info("Removed variant `%s` of file %s at %s", variant, file.id, path)

        if file.path:
            storage.delete(file.path)
            logger.info("Removed file %s at %s", file.id, file.path)
