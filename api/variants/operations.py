"""
Apply variant operations to a loaded image

Operations translates one (operation name, arguments) pair from a variant
descriptor into calls on an ImageHandle. Arguments are validated completely
before the handle is touched, so an invalid operation never leaves a half
transformed image behind.
"""

from typing import Any

from api.variants.models import (
    FLIP_HORIZONTAL,
    FLIP_VERTICAL,
    Operation,
    Position,
    require,
    validate_callback,
    validate_dimension,
    validate_direction,
    validate_int,
    validate_position,
    validate_sharpen_amount,
)


class Operations:
    """Dispatches named operations against one image handle"""

    def __init__(self, image):
        self.image = image
        self._handlers = {
            Operation.CROP: self.crop,
            Operation.COVER: self.cover,
            Operation.RESIZE: self.resize,
            Operation.SCALE: self.scale,
            Operation.HEIGHTEN: self.heighten,
            Operation.WIDEN: self.widen,
            Operation.ROTATE: self.rotate,
            Operation.SHARPEN: self.sharpen,
            Operation.FLIP: self.flip,
            Operation.FLIP_HORIZONTAL: self.flip_horizontal,
            Operation.FLIP_VERTICAL: self.flip_vertical,
            Operation.CALLBACK: self.callback,
        }

    def apply(self, name: str, arguments: dict[str, Any] | None = None) -> None:
        """
        Apply the operation called `name`.

        Raises UnsupportedOperationError for unknown names and
        MissingArgumentError / InvalidArgumentError for bad arguments.
        """
        operation = Operation.from_name(name)
        self._handlers[operation](dict(arguments or {}))

    def crop(self, arguments: dict[str, Any]) -> None:
        require("crop", arguments, "width", "height")
        width = validate_dimension("crop", "width", arguments["width"])
        height = validate_dimension("crop", "height", arguments["height"])
        x = validate_int("crop", "x", arguments.get("x") or 0)
        y = validate_int("crop", "y", arguments.get("y") or 0)
        position = validate_position("crop", arguments.get("position") or Position.CENTER.value)

        self.image.crop(width, height, x, y, position)

    def cover(self, arguments: dict[str, Any]) -> None:
        require("cover", arguments, "width", "height")
        width = validate_dimension("cover", "width", arguments["width"])
        height = validate_dimension("cover", "height", arguments["height"])
        position = validate_position("cover", arguments.get("position") or Position.CENTER.value)

        if arguments.get("preventUpscale", False):
            self.image.cover_down(width, height, position)
            return

        self.image.cover(width, height, position)

    def scale(self, arguments: dict[str, Any]) -> None:
        require("scale", arguments, "width", "height")
        width = validate_dimension("scale", "width", arguments["width"])
        height = validate_dimension("scale", "height", arguments["height"])

        if arguments.get("preventUpscale", False):
            self.image.scale_down(width, height)
            return

        self.image.scale(width, height)

    def resize(self, arguments: dict[str, Any]) -> None:
        """Exact resize; a legacy `aspectRatio` argument turns it into scale"""
        require("resize", arguments, "width", "height")

        # Deprecated: coming from the old API
        if arguments.get("aspectRatio") is not None:
            self.scale(arguments)
            return

        width = validate_dimension("resize", "width", arguments["width"])
        height = validate_dimension("resize", "height", arguments["height"])

        if arguments.get("preventUpscale", False):
            self.image.resize_down(width, height)
            return

        self.image.resize(width, height)

    def heighten(self, arguments: dict[str, Any]) -> None:
        require("heighten", arguments, "height")
        height = validate_dimension("heighten", "height", arguments["height"])

        if arguments.get("preventUpscale", False):
            self.image.scale_down(height=height)
            return

        self.image.scale(height=height)

    def widen(self, arguments: dict[str, Any]) -> None:
        require("widen", arguments, "width")
        width = validate_dimension("widen", "width", arguments["width"])

        if arguments.get("preventUpscale", False):
            self.image.scale_down(width=width)
            return

        self.image.scale(width=width)

    def rotate(self, arguments: dict[str, Any]) -> None:
        require("rotate", arguments, "angle")
        self.image.rotate(validate_int("rotate", "angle", arguments["angle"]))

    def sharpen(self, arguments: dict[str, Any]) -> None:
        require("sharpen", arguments, "amount")
        self.image.sharpen(validate_sharpen_amount(arguments["amount"]))

    def flip_horizontal(self, arguments: dict[str, Any] | None = None) -> None:
        self.flip({"direction": FLIP_HORIZONTAL})

    def flip_vertical(self, arguments: dict[str, Any] | None = None) -> None:
        self.flip({"direction": FLIP_VERTICAL})

    def flip(self, arguments: dict[str, Any]) -> None:
        require("flip", arguments, "direction")
        direction = validate_direction(arguments["direction"])

        if direction == FLIP_HORIZONTAL:
            self.image.flip()
            return

        self.image.flop()

    def callback(self, arguments: dict[str, Any]) -> None:
        """Hand the image and the arguments to a user supplied callable"""
        callback = validate_callback(arguments.get("callback"))
        callback(self.image, arguments)
