"""
Models for declaring image variants

ImageVariant is a fluent builder for the operations of one variant,
ImageVariantCollection groups the variants declared for a file. Both
serialize to the plain mapping stored in FileRecord.variants:

    {"thumbnail": {"operations": {"scale": {"width": 300, "height": 300,
                                            "preventUpscale": False}},
                   "optimize": True, "path": "", "url": ""}}
"""

from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any

from core.exceptions import (
    DuplicateVariantError,
    InvalidArgumentError,
    InvalidDirectionError,
    MissingArgumentError,
    UnsupportedOperationError,
    VariantNotFoundError,
)


class Operation(str, Enum):
    """Operations the dispatcher knows how to apply"""

    CROP = "crop"
    COVER = "cover"
    RESIZE = "resize"
    SCALE = "scale"
    HEIGHTEN = "heighten"
    WIDEN = "widen"
    ROTATE = "rotate"
    SHARPEN = "sharpen"
    FLIP = "flip"
    FLIP_HORIZONTAL = "flipHorizontal"
    FLIP_VERTICAL = "flipVertical"
    CALLBACK = "callback"

    @classmethod
    def from_name(cls, name: str) -> "Operation":
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedOperationError(name) from None


class Position(str, Enum):
    """Anchor used by crop and cover"""

    CENTER = "center"
    TOP_CENTER = "top-center"
    BOTTOM_CENTER = "bottom-center"
    LEFT_TOP = "left-top"
    RIGHT_TOP = "right-top"
    LEFT_CENTER = "left-center"
    RIGHT_CENTER = "right-center"
    LEFT_BOTTOM = "left-bottom"
    RIGHT_BOTTOM = "right-bottom"


FLIP_HORIZONTAL = "h"
FLIP_VERTICAL = "v"

# Signature of a custom manipulation: callback(image_handle, arguments)
ImageCallback = Callable[[Any, dict[str, Any]], None]


def copy_operations(operations: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """
    Copy an operations map one level deep: the argument maps are new, the
    values in them (e.g. a callback and the object it is bound to) are
    shared.
    """
    return {name: dict(arguments) for name, arguments in operations.items()}


# ============================================================================
# Argument validation, shared by the builder and the dispatcher
# ============================================================================


def require(operation: str, arguments: dict[str, Any], *names: str) -> None:
    for name in names:
        if arguments.get(name) is None:
            raise MissingArgumentError(operation, name)


def validate_dimension(operation: str, name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidArgumentError(
            f"`{name}` of `{operation}` must be an integer", operation, name
        )
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(
            f"`{name}` of `{operation}` must be an integer, got {value!r}", operation, name
        ) from None
    if value <= 0:
        raise InvalidArgumentError(
            f"`{name}` of `{operation}` must be positive, got {value}", operation, name
        )
    return value


def validate_int(operation: str, name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(
            f"`{name}` of `{operation}` must be an integer, got {value!r}", operation, name
        ) from None


def validate_position(operation: str, value: Any) -> str:
    try:
        return Position(value).value
    except ValueError:
        allowed = ", ".join(p.value for p in Position)
        raise InvalidArgumentError(
            f"`{value}` is not a valid position for `{operation}`, use one of: {allowed}",
            operation,
            "position",
        ) from None


def validate_direction(value: Any) -> str:
    if value not in (FLIP_HORIZONTAL, FLIP_VERTICAL):
        raise InvalidDirectionError(value)
    return value


def validate_sharpen_amount(value: Any) -> int:
    amount = validate_int("sharpen", "amount", value)
    if not 0 <= amount <= 100:
        raise InvalidArgumentError(
            f"`amount` of `sharpen` must be between 0 and 100, got {amount}",
            "sharpen",
            "amount",
        )
    return amount


def validate_callback(value: Any) -> ImageCallback:
    if value is None:
        raise MissingArgumentError("callback", "callback")
    if not callable(value):
        raise InvalidArgumentError(
            "Provided value for callback is not a callable", "callback", "callback"
        )
    return value


# ============================================================================
# Builders
# ============================================================================


class ImageVariant:
    """
    Fluent builder for the operations of one variant.

    Every method validates its arguments immediately and returns the same
    builder. Operations are keyed by name: declaring the same operation
    twice replaces the first declaration.
    """

    def __init__(self, name: str):
        if not name:
            raise InvalidArgumentError("Variant name must not be empty")
        self.name = name
        self._operations: dict[str, dict[str, Any]] = {}
        self._optimize = False

    @classmethod
    def create(cls, name: str) -> "ImageVariant":
        return cls(name)

    @property
    def operations(self) -> dict[str, dict[str, Any]]:
        return copy_operations(self._operations)

    def _set(self, operation: Operation, arguments: dict[str, Any]) -> "ImageVariant":
        self._operations[operation.value] = arguments
        return self

    def optimize(self) -> "ImageVariant":
        """Run the optimizer over the encoded result"""
        self._optimize = True
        return self

    def crop(
        self,
        width: int,
        height: int,
        x: int | None = None,
        y: int | None = None,
        position: str = Position.CENTER.value,
    ) -> "ImageVariant":
        return self._set(Operation.CROP, {
            "width": validate_dimension("crop", "width", width),
            "height": validate_dimension("crop", "height", height),
            "x": None if x is None else validate_int("crop", "x", x),
            "y": None if y is None else validate_int("crop", "y", y),
            "position": validate_position("crop", position),
        })

    def cover(
        self,
        width: int,
        height: int,
        prevent_upscale: bool = False,
        position: str = Position.CENTER.value,
    ) -> "ImageVariant":
        """Scale to fill width x height and crop the overflow at `position`"""
        return self._set(Operation.COVER, {
            "width": validate_dimension("cover", "width", width),
            "height": validate_dimension("cover", "height", height),
            "preventUpscale": bool(prevent_upscale),
            "position": validate_position("cover", position),
        })

    def resize(self, width: int, height: int, prevent_upscale: bool = False) -> "ImageVariant":
        """Resize to exact dimensions, the aspect ratio is not preserved"""
        return self._set(Operation.RESIZE, {
            "width": validate_dimension("resize", "width", width),
            "height": validate_dimension("resize", "height", height),
            "preventUpscale": bool(prevent_upscale),
        })

    def scale(self, width: int, height: int, prevent_upscale: bool = False) -> "ImageVariant":
        """Fit into width x height, preserving the aspect ratio"""
        return self._set(Operation.SCALE, {
            "width": validate_dimension("scale", "width", width),
            "height": validate_dimension("scale", "height", height),
            "preventUpscale": bool(prevent_upscale),
        })

    def heighten(self, height: int, prevent_upscale: bool = False) -> "ImageVariant":
        return self._set(Operation.HEIGHTEN, {
            "height": validate_dimension("heighten", "height", height),
            "preventUpscale": bool(prevent_upscale),
        })

    def widen(self, width: int, prevent_upscale: bool = False) -> "ImageVariant":
        return self._set(Operation.WIDEN, {
            "width": validate_dimension("widen", "width", width),
            "preventUpscale": bool(prevent_upscale),
        })

    def rotate(self, angle: int) -> "ImageVariant":
        return self._set(Operation.ROTATE, {"angle": validate_int("rotate", "angle", angle)})

    def sharpen(self, amount: int) -> "ImageVariant":
        return self._set(Operation.SHARPEN, {"amount": validate_sharpen_amount(amount)})

    def flip_horizontal(self) -> "ImageVariant":
        return self._set(Operation.FLIP_HORIZONTAL, {"direction": FLIP_HORIZONTAL})

    def flip_vertical(self) -> "ImageVariant":
        return self._set(Operation.FLIP_VERTICAL, {"direction": FLIP_VERTICAL})

    def flip(self, direction: str) -> "ImageVariant":
        return self._set(Operation.FLIP, {"direction": validate_direction(direction)})

    def callback(self, callback: ImageCallback) -> "ImageVariant":
        """
        Register a custom manipulation, called as callback(image, arguments)
        with the loaded image handle.
        """
        return self._set(Operation.CALLBACK, {"callback": validate_callback(callback)})

    def _keep_aspect_ratio(self, value: Any) -> None:
        # Deprecated: kept for records written by the old API
        self._operations[Operation.RESIZE.value]["aspectRatio"] = value

    def to_dict(self) -> dict[str, Any]:
        """
        Capture the pipeline. The result is detached from the builder: later
        builder calls never change a captured pipeline.
        """
        return {
            "operations": self.operations,
            "path": "",
            "url": "",
            "optimize": self._optimize,
        }

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "ImageVariant":
        """
        Rebuild a variant from its serialized form, e.g. a JSON request.

        Unknown operation names raise UnsupportedOperationError here, before
        anything is processed.
        """
        variant = cls(name)
        operations = data.get("operations") or {}
        if not isinstance(operations, dict):
            raise InvalidArgumentError(f"Operations of variant `{name}` must be a mapping")

        for op_name, arguments in operations.items():
            operation = Operation.from_name(op_name)
            arguments = dict(arguments or {})
            if operation is Operation.CROP:
                require("crop", arguments, "width", "height")
                variant.crop(
                    arguments["width"], arguments["height"],
                    arguments.get("x"), arguments.get("y"),
                    arguments.get("position", Position.CENTER.value),
                )
            elif operation is Operation.COVER:
                require("cover", arguments, "width", "height")
                variant.cover(
                    arguments["width"], arguments["height"],
                    arguments.get("preventUpscale", False),
                    arguments.get("position", Position.CENTER.value),
                )
            elif operation in (Operation.RESIZE, Operation.SCALE):
                require(operation.value, arguments, "width", "height")
                getattr(variant, operation.value)(
                    arguments["width"], arguments["height"],
                    arguments.get("preventUpscale", False),
                )
                if operation is Operation.RESIZE and "aspectRatio" in arguments:
                    variant._keep_aspect_ratio(arguments["aspectRatio"])
            elif operation is Operation.HEIGHTEN:
                require("heighten", arguments, "height")
                variant.heighten(arguments["height"], arguments.get("preventUpscale", False))
            elif operation is Operation.WIDEN:
                require("widen", arguments, "width")
                variant.widen(arguments["width"], arguments.get("preventUpscale", False))
            elif operation is Operation.ROTATE:
                require("rotate", arguments, "angle")
                variant.rotate(arguments["angle"])
            elif operation is Operation.SHARPEN:
                require("sharpen", arguments, "amount")
                variant.sharpen(arguments["amount"])
            elif operation is Operation.FLIP:
                require("flip", arguments, "direction")
                variant.flip(arguments["direction"])
            elif operation is Operation.FLIP_HORIZONTAL:
                variant.flip_horizontal()
            elif operation is Operation.FLIP_VERTICAL:
                variant.flip_vertical()
            elif operation is Operation.CALLBACK:
                variant.callback(validate_callback(arguments.get("callback")))

        if data.get("optimize"):
            variant.optimize()
        return variant

    def __repr__(self):
        return f"ImageVariant({self.name!r}, operations={list(self._operations)})"


class ImageVariantCollection:
    """
    Named set of ImageVariants declared for one file.

    The collection holds the builders themselves, so variants can still be
    configured after they were added; to_dict() is the capture point.
    """

    def __init__(self):
        self._variants: dict[str, ImageVariant] = {}

    @classmethod
    def create(cls) -> "ImageVariantCollection":
        return cls()

    def add_new(self, name: str) -> ImageVariant:
        """Create, register and return a new variant builder"""
        variant = ImageVariant.create(name)
        self.add(variant)
        return variant

    def add(self, variant: ImageVariant) -> None:
        if variant.name in self._variants:
            raise DuplicateVariantError(variant.name)
        self._variants[variant.name] = variant

    def get(self, name: str) -> ImageVariant:
        try:
            return self._variants[name]
        except KeyError:
            raise VariantNotFoundError(name) from None

    def has(self, name: str) -> bool:
        return name in self._variants

    def names(self) -> list[str]:
        return list(self._variants)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return len(self._variants)

    def __iter__(self) -> Iterator[ImageVariant]:
        return iter(self._variants.values())

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {name: variant.to_dict() for name, variant in self._variants.items()}

    @classmethod
    def from_dict(cls, data: dict[str, dict[str, Any]]) -> "ImageVariantCollection":
        collection = cls()
        for name, variant_data in data.items():
            if not isinstance(variant_data, dict):
                raise InvalidArgumentError(f"Variant `{name}` must be a mapping")
            collection.add(ImageVariant.from_dict(name, variant_data))
        return collection
