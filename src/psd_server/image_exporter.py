"""
Exports raster layer pixels as standalone PNG files.
"""

import asyncio
import re
import time
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from .core.config import get_logger
from .core.exceptions import ExportError
from .models import ExportedImage, RawImage

logger = get_logger("image_exporter")

_UNSAFE_CHARS = re.compile(r"[^a-z0-9]")


def sanitize_layer_name(layer_name: str) -> str:
    """Lower-case the name and replace anything outside [a-z0-9] with '_'."""
    return _UNSAFE_CHARS.sub("_", layer_name.lower()) or "layer"


class ImageExporter:
    """Writes raw RGBA buffers to PNG files."""

    async def export(
        self,
        raw: Optional[RawImage],
        layer_name: str,
        output_dir: Union[str, Path],
    ) -> Optional[ExportedImage]:
        """Export raw RGBA pixels as a PNG file.

        Args:
            raw: Pixel buffer with its dimensions, or None
            layer_name: Name of the source layer, used for the file name
            output_dir: Directory to write the PNG into

        Returns:
            ExportedImage describing the written file, or None when there is
            nothing to export

        Raises:
            ExportError: If the pixels cannot be encoded or written
        """
        if raw is None or not raw.pixel_buffer:
            logger.debug("No image data to export for layer: %s", layer_name)
            return None

        if raw.width == 0 or raw.height == 0:
            logger.debug("Invalid dimensions for layer: %s", layer_name)
            return None

        file_name = f"{sanitize_layer_name(layer_name)}_{time.time_ns()}.png"
        file_path = Path(output_dir) / file_name

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._write_png, raw, file_path, layer_name)

        logger.debug(
            "Exported raster layer as PNG: %s (%dx%d)", file_path, raw.width, raw.height
        )
        return ExportedImage(file_path=file_path, width=raw.width, height=raw.height)

    def _write_png(self, raw: RawImage, file_path: Path, layer_name: str) -> None:
        """Synchronous encode and write."""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            image = Image.frombytes("RGBA", (raw.width, raw.height), raw.pixel_buffer)
            image.save(file_path, format="PNG")
        except (OSError, ValueError) as e:
            raise ExportError(
                f"Failed to export layer as PNG: {layer_name}",
                {"file_path": str(file_path), "reason": str(e)},
            ) from e


def cleanup_exported_images(
    output_dir: Union[str, Path], max_age_seconds: Optional[float] = None
) -> int:
    """Remove exported PNG files, returning how many were deleted.

    With max_age_seconds, only files last modified before that age are removed.
    """
    removed = 0
    directory = Path(output_dir)
    if not directory.is_dir():
        return removed

    cutoff = None if max_age_seconds is None else time.time() - max_age_seconds
    for path in directory.glob("*.png"):
        try:
            if cutoff is not None and path.stat().st_mtime >= cutoff:
                continue
            path.unlink()
            removed += 1
        except OSError as e:
            logger.warning("Failed to remove exported image %s: %s", path, e)

    logger.debug("Cleaned up %d exported images from: %s", removed, directory)
    return removed
