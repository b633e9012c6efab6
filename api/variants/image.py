"""
Pillow backed image handle

ImageManager.read() loads an image into an ImageHandle; the handle offers
the geometric operations the dispatcher translates variant operations into
and encodes the result by file extension.
"""

import io
from pathlib import Path

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from core.exceptions import InvalidArgumentError

# Pillow format names by file extension
FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "gif": "GIF",
    "webp": "WEBP",
}


def _anchor(position: str, outer: tuple[int, int], inner: tuple[int, int]) -> tuple[int, int]:
    """Top-left offset of an `inner` box aligned at `position` inside `outer`"""
    (outer_w, outer_h), (inner_w, inner_h) = outer, inner
    free_w, free_h = outer_w - inner_w, outer_h - inner_h

    x = free_w // 2
    if position.startswith("left"):
        x = 0
    elif position.startswith("right"):
        x = free_w

    y = free_h // 2
    if position.endswith("top") or position.startswith("top"):
        y = 0
    elif position.endswith("bottom") or position.startswith("bottom"):
        y = free_h

    return x, y


class ImageHandle:
    """Mutable wrapper around one loaded PIL image"""

    def __init__(self, image: Image.Image):
        self.image = image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def _fit(self, width: int | None, height: int | None) -> tuple[int, int]:
        """Largest size inside width x height keeping the aspect ratio"""
        ratios = []
        if width:
            ratios.append(width / self.width)
        if height:
            ratios.append(height / self.height)
        ratio = min(ratios)
        return max(1, round(self.width * ratio)), max(1, round(self.height * ratio))

    def _resample(self, size: tuple[int, int]) -> None:
        if size != self.size:
            self.image = self.image.resize(size, Image.Resampling.LANCZOS)

    def crop(
        self, width: int, height: int, offset_x: int = 0, offset_y: int = 0,
        position: str = "center",
    ) -> "ImageHandle":
        """Cut a width x height box aligned at `position`, shifted by the offsets"""
        x, y = _anchor(position, self.size, (width, height))
        x, y = x + offset_x, y + offset_y
        self.image = self.image.crop((x, y, x + width, y + height))
        return self

    def resize(self, width: int, height: int) -> "ImageHandle":
        self._resample((width, height))
        return self

    def resize_down(self, width: int, height: int) -> "ImageHandle":
        self._resample((min(width, self.width), min(height, self.height)))
        return self

    def scale(self, width: int | None = None, height: int | None = None) -> "ImageHandle":
        self._resample(self._fit(width, height))
        return self

    def scale_down(self, width: int | None = None, height: int | None = None) -> "ImageHandle":
        target = self._fit(width, height)
        if target[0] < self.width or target[1] < self.height:
            self._resample(target)
        return self

    def cover(self, width: int, height: int, position: str = "center") -> "ImageHandle":
        """Scale to fill width x height and crop the overflow"""
        ratio = max(width / self.width, height / self.height)
        scaled = (max(width, round(self.width * ratio)), max(height, round(self.height * ratio)))
        self._resample(scaled)
        return self.crop(width, height, position=position)

    def cover_down(self, width: int, height: int, position: str = "center") -> "ImageHandle":
        """Like cover() but never enlarges; small images are only cropped"""
        ratio = min(1.0, max(width / self.width, height / self.height))
        self._resample((max(1, round(self.width * ratio)), max(1, round(self.height * ratio))))
        return self.crop(min(width, self.width), min(height, self.height), position=position)

    def rotate(self, angle: int) -> "ImageHandle":
        """Rotate counter-clockwise by `angle` degrees, growing the canvas"""
        self.image = self.image.rotate(angle, expand=True)
        return self

    def sharpen(self, amount: int) -> "ImageHandle":
        """Unsharp mask, `amount` from 0 (none) to 100 (strong)"""
        if amount > 0:
            self.image = self.image.filter(
                ImageFilter.UnsharpMask(radius=2, percent=amount * 3, threshold=3)
            )
        return self

    def flip(self) -> "ImageHandle":
        """Mirror left to right"""
        self.image = ImageOps.mirror(self.image)
        return self

    def flop(self) -> "ImageHandle":
        """Mirror top to bottom"""
        self.image = ImageOps.flip(self.image)
        return self

    def encode_by_extension(self, extension: str, quality: int = 90) -> bytes:
        """Encode into the format matching `extension`"""
        fmt = FORMATS.get((extension or "").lower().lstrip("."))
        if fmt is None:
            raise InvalidArgumentError(f"Cannot encode images with extension `{extension}`")
        if not 1 <= quality <= 100:
            raise InvalidArgumentError(
                f"Quality has to be a positive integer between 1 and 100. {quality} was provided"
            )

        image = self.image
        save_kwargs = {}
        if fmt == "JPEG":
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            save_kwargs.update({"quality": quality})
        elif fmt == "WEBP":
            save_kwargs.update({"quality": quality})

        buffer = io.BytesIO()
        image.save(buffer, format=fmt, **save_kwargs)
        return buffer.getvalue()


class ImageManager:
    """Loads images into ImageHandles"""

    def read(self, source: str | Path | bytes) -> ImageHandle:
        """Raises InvalidArgumentError when the content is not a readable image"""
        name = "<bytes>" if isinstance(source, bytes) else str(source)
        if isinstance(source, bytes):
            source = io.BytesIO(source)
        try:
            with Image.open(source) as image:
                image = ImageOps.exif_transpose(image)
                image.load()
                return ImageHandle(image.copy())
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidArgumentError(f"Cannot decode image `{name}`: {exc}") from exc
