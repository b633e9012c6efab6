#!/usr/bin/env python
"""
Store an image and generate a set of variants for it.

Demonstrates the whole flow: build a file record from disk, store it in a
backend, declare variants, process them and print the resulting record.

Usage:
    PYTHONPATH=.
    python scripts/generate_variants.py photo.jpg
    python scripts/generate_variants.py photo.jpg --storage s3 --only thumbnail
    python scripts/generate_variants.py photo.jpg --model User --model-id 1 --collection avatar
"""

import argparse
import json
import sys

from api.filerecord import factory
from api.filerecord.paths import PathBuilder
from api.filerecord.services import FileStorage
from api.filerecord.urls import UrlBuilder
from api.variants.models import ImageVariantCollection
from api.variants.processor import ImageProcessor
from core.config import get_settings
from core.exceptions import FileStorageError
from core.logger import logger
from core.storage import build_storage_registry


def build_collection() -> ImageVariantCollection:
    """Variants generated by this script"""
    collection = ImageVariantCollection.create()

    # Fits into 300x300, keeps the aspect ratio
    collection.add_new("thumbnail").scale(300, 300).optimize()

    # Exactly 300x300, may distort
    collection.add_new("resizeAndFlip").flip_horizontal().resize(300, 300).optimize()

    collection.add_new("crop").crop(100, 100)

    collection.add_new("avatar").cover(128, 128, prevent_upscale=True).sharpen(10)

    return collection


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("source", help="Image file on the local disk")
    parser.add_argument("--storage", default=None, help="Storage backend name")
    parser.add_argument("--model", default=None)
    parser.add_argument("--model-id", default=None)
    parser.add_argument("--collection", default=None)
    parser.add_argument(
        "--only", nargs="+", default=None, help="Process only these variants"
    )
    parser.add_argument("--remove", action="store_true", help="Remove everything again")
    args = parser.parse_args(argv)

    settings = get_settings()
    registry = build_storage_registry(settings)
    path_builder = PathBuilder(settings.PATH_TEMPLATE, settings.VARIANT_PATH_TEMPLATE)
    url_builder = UrlBuilder(settings.STORAGE_PUBLIC_URLS) if settings.STORAGE_PUBLIC_URLS else None

    file_storage = FileStorage(registry, path_builder, url_builder)
    processor = ImageProcessor(
        registry,
        path_builder,
        url_builder=url_builder,
        quality=settings.IMAGE_QUALITY,
        mime_types=settings.IMAGE_MIME_TYPES,
        temp_dir=settings.TEMP_DIR,
    )
    if args.only:
        processor = processor.process_only_these_variants(args.only)

    file = factory.from_disk(args.source, args.storage or settings.STORAGE_DEFAULT)
    try:
        if args.collection:
            file = file.add_to_collection(args.collection)
        if args.model and args.model_id:
            file = file.belongs_to_model(args.model, args.model_id)

        file = file.with_variants(build_collection().to_dict())
        file = file_storage.store(file)
        file = processor.process(file)
    except FileStorageError as exc:
        logger.error("Failed to generate variants for %s: %s", args.source, exc)
        return 1
    finally:
        file.resource.close()

    print(json.dumps(file.to_dict(), indent=2, default=str))

    if args.remove:
        file_storage.remove(file)
        logger.info("Removed %s and its variants", file.path)

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
