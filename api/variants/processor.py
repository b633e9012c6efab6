"""
Variant processor

Generates the declared image variants of a FileRecord:

1. skip files without variants or with a MIME type that is not accepted
2. stage the source bytes in one local temp file
3. per variant: load a fresh image, apply its operations, encode
   (optionally optimize) and write it to the file's storage backend
4. record the written path (and URL) on the variant
5. remove the staged temp file

Processing keeps no state between calls; everything a call needs travels
in a _ProcessingContext.
"""

import copy
import io
from collections.abc import Iterable
from contextlib import ExitStack, closing, contextmanager
from dataclasses import dataclass

from api.filerecord.models import FileRecord, VariantDescriptor
from api.filerecord.paths import PathBuilder
from api.filerecord.urls import UrlBuilder
from api.variants.image import ImageManager
from api.variants.operations import Operations
from api.variants.optimizer import ImageOptimizer
from core.config import DEFAULT_MIME_TYPES
from core.exceptions import InvalidArgumentError, StorageError
from core.logger import logger
from core.storage import StorageBackend, StorageRegistry
from core.utils import extension_suffix, temporary_file


@dataclass(frozen=True)
class _ProcessingContext:
    """Everything one process() call works with"""

    storage: StorageBackend
    staged_path: str
    only: frozenset[str]


class ImageProcessor:
    """
    Applies the variants declared on a FileRecord and stores the results.

    Args:
        registry: resolves the file's storage backend by name
        path_builder: computes where each variant is written
        image_manager: loads images, defaults to the Pillow ImageManager
        url_builder: optional, resolves public URLs of written variants
        optimizer: used for variants declared with optimize()
        quality: encoder quality between 1 and 100
        mime_types: MIME types the processor accepts
        temp_dir: directory for staging and optimizer temp files
    """

    def __init__(
        self,
        registry: StorageRegistry,
        path_builder: PathBuilder,
        image_manager: ImageManager | None = None,
        url_builder: UrlBuilder | None = None,
        optimizer: ImageOptimizer | None = None,
        quality: int = 90,
        mime_types: Iterable[str] | None = None,
        temp_dir: str | None = None,
    ):
        self.registry = registry
        self.path_builder = path_builder
        self.image_manager = image_manager or ImageManager()
        self.url_builder = url_builder
        self.optimizer = optimizer or ImageOptimizer()
        self.mime_types = frozenset(mime_types or DEFAULT_MIME_TYPES)
        self.temp_dir = temp_dir
        self.set_quality(quality)
        self._only: frozenset[str] = frozenset()

    def set_quality(self, quality: int) -> "ImageProcessor":
        if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 100:
            raise InvalidArgumentError(
                f"Quality has to be a positive integer between 1 and 100. {quality} was provided"
            )
        self.quality = quality
        return self

    def process_only_these_variants(self, variants: Iterable[str]) -> "ImageProcessor":
        """
        Processor restricted to the named variants.

        Returns a copy; the restriction stays on that copy until
        process_all() is called on it.
        """
        processor = copy.copy(self)
        processor._only = frozenset(variants)
        return processor

    def process_all(self) -> "ImageProcessor":
        """Processor without a variant restriction (a copy)"""
        processor = copy.copy(self)
        processor._only = frozenset()
        return processor

    @property
    def only_variants(self) -> frozenset[str]:
        return self._only

    def is_applicable(self, file: FileRecord) -> bool:
        return file.has_variants and file.mime_type in self.mime_types

    @staticmethod
    def should_process_variant(
        name: str, variant: VariantDescriptor, only: frozenset[str]
    ) -> bool:
        if not variant.operations:
            return False
        return not only or name in only

    def process(self, file: FileRecord, variants: Iterable[str] | None = None) -> FileRecord:
        """
        Generate the variants of `file` and return the updated record.

        `variants` restricts this call to the named variants and takes
        precedence over process_only_these_variants(). Files that are not
        applicable are returned unchanged.
        """
        if not self.is_applicable(file):
            logger.debug("File %s (%s) has nothing to process", file.id, file.mime_type)
            return file

        only = frozenset(variants) if variants is not None else self._only
        storage = self.registry.get_storage(file.storage)

        with self._stage(file, storage) as staged_path:
            context = _ProcessingContext(storage=storage, staged_path=staged_path, only=only)
            for name, variant in list(file.variants.items()):
                if not self.should_process_variant(name, variant, context.only):
                    continue
                file = self._process_variant(context, file, name, variant)

        return file

    @contextmanager
    def _stage(self, file: FileRecord, storage: StorageBackend):
        """
        Copy the source into a temp file. Uses the record's open resource
        when present, otherwise reads it from the backend.
        """
        with ExitStack() as stack:
            if file.resource is not None:
                file.resource.seek(0)
                source = file.resource
            elif file.path:
                source = stack.enter_context(closing(storage.read_stream(file.path)))
            else:
                raise StorageError(f"File {file.id} has neither a resource nor a path")

            yield stack.enter_context(
                temporary_file(extension_suffix(file.extension), self.temp_dir, source=source)
            )

    def _process_variant(
        self,
        context: _ProcessingContext,
        file: FileRecord,
        name: str,
        variant: VariantDescriptor,
    ) -> FileRecord:
        image = self.image_manager.read(context.staged_path)
        operations = Operations(image)
        for operation, arguments in variant.operations.items():
            operations.apply(operation, arguments)

        path = self.path_builder.path_for_variant(file, name)
        encoded = image.encode_by_extension(file.extension, self.quality)

        if variant.optimize:
            self._optimize_and_store(context.storage, file, encoded, path)
        else:
            context.storage.write_stream(path, io.BytesIO(encoded), {"mime_type": file.mime_type})

        logger.info("Generated variant `%s` of file %s at %s", name, file.id, path)

        file = file.with_variant(name, variant.model_copy(update={"path": path}))
        if self.url_builder is not None:
            url = self.url_builder.url_for_variant(file, name)
            if url:
                file = file.with_variant(name, file.variants[name].model_copy(update={"url": url}))

        return file

    def _optimize_and_store(
        self, storage: StorageBackend, file: FileRecord, encoded: bytes, path: str
    ) -> None:
        # The optimizer tools need files rather than streams
        suffix = extension_suffix(file.extension)
        with temporary_file(suffix, self.temp_dir, data=encoded) as encoded_path:
            with temporary_file(suffix, self.temp_dir) as optimized_path:
                self.optimizer.optimize(encoded_path, optimized_path)
                with open(optimized_path, "rb") as handle:
                    storage.write_stream(path, handle, {"mime_type": file.mime_type})
