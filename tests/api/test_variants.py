"""
Test the variant builder and collection
"""

import threading

import pytest

from api.variants.models import ImageVariant, ImageVariantCollection, Operation
from core.exceptions import (
    DuplicateVariantError,
    InvalidArgumentError,
    InvalidDirectionError,
    MissingArgumentError,
    UnsupportedOperationError,
    VariantNotFoundError,
)


def _noop(image, arguments):
    pass


class TestImageVariant:
    """Test the fluent operation builder"""

    def test_chaining_returns_same_instance(self):
        variant = ImageVariant.create("thumb")
        assert variant.scale(300, 300) is variant
        assert variant.optimize() is variant
        assert variant.flip("h").rotate(90).sharpen(10) is variant

    def test_to_dict(self):
        variant = ImageVariant.create("thumb").scale(300, 200, prevent_upscale=True).optimize()

        assert variant.to_dict() == {
            "operations": {
                "scale": {"width": 300, "height": 200, "preventUpscale": True},
            },
            "path": "",
            "url": "",
            "optimize": True,
        }

    def test_operation_shapes(self):
        variant = (
            ImageVariant.create("all")
            .crop(100, 50, 5, 6)
            .cover(20, 30, position="left-top")
            .resize(10, 20)
            .heighten(40, prevent_upscale=True)
            .widen(60)
            .rotate(90)
            .sharpen(25)
            .flip_horizontal()
            .flip_vertical()
            .flip("v")
            .callback(_noop)
        )
        operations = variant.to_dict()["operations"]

        assert list(operations) == [
            "crop", "cover", "resize", "heighten", "widen", "rotate", "sharpen",
            "flipHorizontal", "flipVertical", "flip", "callback",
        ]
        assert operations["crop"] == {
            "width": 100, "height": 50, "x": 5, "y": 6, "position": "center",
        }
        assert operations["cover"] == {
            "width": 20, "height": 30, "preventUpscale": False, "position": "left-top",
        }
        assert operations["heighten"] == {"height": 40, "preventUpscale": True}
        assert operations["widen"] == {"width": 60, "preventUpscale": False}
        assert operations["flipHorizontal"] == {"direction": "h"}
        assert operations["flipVertical"] == {"direction": "v"}
        assert operations["callback"]["callback"] is _noop

    def test_same_operation_overwrites(self):
        variant = ImageVariant.create("thumb").resize(10, 10).rotate(90).resize(20, 30)
        operations = variant.to_dict()["operations"]

        assert list(operations) == ["resize", "rotate"]
        assert operations["resize"]["width"] == 20

    def test_to_dict_is_detached(self):
        """Changes to the builder after capture do not alter the captured dict"""
        variant = ImageVariant.create("thumb").resize(10, 10)
        captured = variant.to_dict()
        variant.resize(50, 50).rotate(90)

        assert captured["operations"] == {
            "resize": {"width": 10, "height": 10, "preventUpscale": False},
        }

    def test_to_dict_shares_callbacks(self):
        """Callbacks are kept by reference, only the argument maps are new"""
        class Holder:
            def __init__(self):
                self.lock = threading.Lock()

            def hook(self, image, arguments):
                with self.lock:
                    pass

        holder = Holder()
        variant = ImageVariant.create("hooked").callback(holder.hook)
        captured = variant.to_dict()

        assert captured["operations"]["callback"]["callback"].__self__ is holder
        assert captured["operations"]["callback"] is not variant.to_dict()["operations"]["callback"]

    def test_flip_validates_direction(self):
        with pytest.raises(InvalidDirectionError):
            ImageVariant.create("flip").flip("z")

    def test_invalid_dimensions(self):
        with pytest.raises(InvalidArgumentError):
            ImageVariant.create("x").resize(0, 10)
        with pytest.raises(InvalidArgumentError):
            ImageVariant.create("x").crop("wide", 10)
        with pytest.raises(InvalidArgumentError):
            ImageVariant.create("x").cover(10, 10, position="middle")

    def test_sharpen_range(self):
        with pytest.raises(InvalidArgumentError):
            ImageVariant.create("x").sharpen(101)

    def test_callback_must_be_callable(self):
        with pytest.raises(InvalidArgumentError):
            ImageVariant.create("x").callback("not callable")

    def test_from_dict(self):
        variant = ImageVariant.from_dict("thumb", {
            "operations": {
                "resize": {"width": 300, "height": 300, "aspectRatio": True},
                "flip": {"direction": "h"},
            },
            "optimize": True,
        })

        data = variant.to_dict()
        assert data["optimize"] is True
        assert data["operations"]["resize"]["aspectRatio"] is True
        assert data["operations"]["flip"] == {"direction": "h"}

    def test_from_dict_rejects_unknown_operations(self):
        with pytest.raises(UnsupportedOperationError) as exc_info:
            ImageVariant.from_dict("x", {"operations": {"warp": {}}})
        assert exc_info.value.name == "warp"
        assert "warp" in str(exc_info.value)

    def test_from_dict_missing_arguments(self):
        with pytest.raises(MissingArgumentError) as exc_info:
            ImageVariant.from_dict("x", {"operations": {"crop": {"width": 10}}})
        assert exc_info.value.argument == "height"

    def test_operation_enum(self):
        assert Operation.from_name("flipHorizontal") is Operation.FLIP_HORIZONTAL
        with pytest.raises(UnsupportedOperationError):
            Operation.from_name("warp")


class TestImageVariantCollection:
    """Test the variant collection"""

    def test_add_new_and_lookup(self):
        collection = ImageVariantCollection.create()
        thumb = collection.add_new("thumbnail")
        thumb.scale(300, 300).optimize()
        collection.add_new("crop").crop(100, 100)

        assert len(collection) == 2
        assert collection.has("thumbnail")
        assert "crop" in collection
        assert not collection.has("flip")
        assert collection.get("thumbnail") is thumb
        assert [v.name for v in collection] == ["thumbnail", "crop"]

    def test_duplicate_name_fails(self):
        collection = ImageVariantCollection.create()
        collection.add_new("thumbnail")
        with pytest.raises(DuplicateVariantError):
            collection.add_new("thumbnail")
        with pytest.raises(DuplicateVariantError):
            collection.add(ImageVariant.create("thumbnail"))

    def test_get_missing(self):
        with pytest.raises(VariantNotFoundError):
            ImageVariantCollection.create().get("missing")

    def test_to_dict_feeds_file_record(self):
        from api.filerecord.models import FileRecord

        collection = ImageVariantCollection.create()
        collection.add_new("thumbnail").scale(300, 300).optimize()
        collection.add_new("resizeAndFlip").flip_horizontal().resize(300, 300)

        file = FileRecord(storage="local", filename="a.jpg").with_variants(collection.to_dict())

        assert list(file.variants) == ["thumbnail", "resizeAndFlip"]
        assert file.variants["thumbnail"].optimize is True
        assert list(file.variants["resizeAndFlip"].operations) == ["flipHorizontal", "resize"]

    def test_captured_pipeline_is_not_changed_by_builder(self):
        collection = ImageVariantCollection.create()
        collection.add_new("thumbnail").scale(300, 300)
        captured = collection.to_dict()

        collection.get("thumbnail").optimize().rotate(90)

        assert captured["thumbnail"]["optimize"] is False
        assert list(captured["thumbnail"]["operations"]) == ["scale"]

    def test_from_dict(self):
        collection = ImageVariantCollection.from_dict({
            "thumb": {"operations": {"scale": {"width": 10, "height": 10}}},
            "flip": {"operations": {"flipVertical": {}}},
        })
        assert collection.names() == ["thumb", "flip"]

    def test_from_dict_rejects_non_mapping(self):
        with pytest.raises(InvalidArgumentError):
            ImageVariantCollection.from_dict({"thumb": ["scale"]})
