"""Image pipeline: copy images, resizing and re-encoding them in production."""
import asyncio
import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from sitepipe.config import ImagesConfig
from sitepipe.pipelines.base import BasePipeline
from sitepipe.results import TransformationError

logger = logging.getLogger(__name__)

RASTER_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


def _save_options(fmt: str, settings: ImagesConfig) -> dict:
    if fmt == "JPEG":
        return {"quality": settings.quality, "progressive": settings.interlace, "optimize": True}
    if fmt == "WEBP":
        return {"quality": settings.quality}
    if fmt == "GIF":
        return {"interlace": settings.interlace, "optimize": True}
    return {"optimize": True}


def transform_image(content: bytes, settings: ImagesConfig) -> bytes:
    """Resize, interlace and re-encode one raster image.

    Images wider than ``max_width`` are scaled down keeping the aspect ratio;
    narrower ones keep their size and are only re-encoded. Animated images
    are returned unchanged.

    Args:
        content: Encoded source image
        settings: Image pipeline settings

    Returns:
        Encoded output image in the source format

    Raises:
        TransformationError: If Pillow cannot decode or encode the image
    """
    try:
        with Image.open(io.BytesIO(content)) as image:
            fmt = image.format
            if getattr(image, "is_animated", False):
                return content

            if image.width > settings.max_width:
                height = max(1, round(image.height * settings.max_width / image.width))
                output = image.resize((settings.max_width, height), Image.Resampling.LANCZOS)
            else:
                output = image.copy()

            if fmt == "JPEG" and output.mode not in ("RGB", "L", "CMYK"):
                output = output.convert("RGB")

            buffer = io.BytesIO()
            output.save(buffer, format=fmt, **_save_options(fmt, settings))
            return buffer.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise TransformationError(str(e)) from e


class ImagePipeline(BasePipeline):
    """Copies images; transforms raster images only in production mode."""

    name = "img"

    async def build(self, sources: list[Path]) -> list[tuple[Path, bytes]]:
        transform = self.config.is_production
        outputs = []
        for source in sources:
            content = source.read_bytes()
            if transform and source.suffix.lower() in RASTER_SUFFIXES:
                try:
                    content = transform_image(content, self.config.images)
                except TransformationError as e:
                    raise TransformationError(f"{source}: {e}") from e

            outputs.append((self.group.destination / source.name, content))
            await asyncio.sleep(0)
        return outputs
