"""
Define functions/aliases for dependency injection
"""
from functools import lru_cache
from typing import Annotated, TypeAlias
from fastapi import Depends

from api.filerecord.paths import PathBuilder
from api.filerecord.services import FileStorage
from api.filerecord.urls import UrlBuilder
from api.variants.processor import ImageProcessor
from core.config import get_settings
from core.storage import StorageRegistry, build_storage_registry


@lru_cache
def get_storage_registry() -> StorageRegistry:
  return build_storage_registry(get_settings())

def get_path_builder() -> PathBuilder:
  settings = get_settings()
  return PathBuilder(settings.PATH_TEMPLATE, settings.VARIANT_PATH_TEMPLATE)

def get_url_builder() -> UrlBuilder | None:
  base_urls = get_settings().STORAGE_PUBLIC_URLS
  return UrlBuilder(base_urls) if base_urls else None

def get_file_storage(
  registry: Annotated[StorageRegistry, Depends(get_storage_registry)],
  path_builder: Annotated[PathBuilder, Depends(get_path_builder)],
  url_builder: Annotated[UrlBuilder | None, Depends(get_url_builder)],
) -> FileStorage:
  return FileStorage(registry, path_builder, url_builder)

def get_image_processor(
  registry: Annotated[StorageRegistry, Depends(get_storage_registry)],
  path_builder: Annotated[PathBuilder, Depends(get_path_builder)],
  url_builder: Annotated[UrlBuilder | None, Depends(get_url_builder)],
) -> ImageProcessor:
  settings = get_settings()
  return ImageProcessor(
    registry,
    path_builder,
    url_builder=url_builder,
    quality=settings.IMAGE_QUALITY,
    mime_types=settings.IMAGE_MIME_TYPES,
    temp_dir=settings.TEMP_DIR,
  )

StorageRegistryDep: TypeAlias = Annotated[StorageRegistry, Depends(get_storage_registry)]
FileStorageDep: TypeAlias = Annotated[FileStorage, Depends(get_file_storage)]
ImageProcessorDep: TypeAlias = Annotated[ImageProcessor, Depends(get_image_processor)]
