"""Pillow-based image probing, resizing and placeholder generation."""

from __future__ import annotations

import asyncio
import base64
from io import BytesIO

from inkwell_service_libs.error_handling import raise_processing_error
from inkwell_service_libs.logging_utils import create_service_logger
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from services.content_repository_service.models_domain import ImageProbe
from services.content_repository_service.protocols import ImageProcessorProtocol

logger = create_service_logger("content_repository.media.pillow")

SERVICE = "content_repository_service"
_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError)


def _prepare_for_format(img: Image.Image, output_format: str) -> Image.Image:
    if output_format == "JPEG" and img.mode != "RGB":
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return img.convert("RGB")
    if output_format == "PNG" and img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        return img.convert("RGBA")
    return img


class PillowImageProcessor(ImageProcessorProtocol):
    """Image collaborator running Pillow work in a worker thread."""

    async def probe_image(self, content: bytes) -> ImageProbe | None:
        return await asyncio.to_thread(self._probe, content)

    async def resize_image(
        self, content: bytes, max_edge: int, quality: int, output_format: str
    ) -> bytes:
        return await asyncio.to_thread(self._resize, content, max_edge, quality, output_format)

    async def generate_placeholder(self, content: bytes, width: int) -> str:
        return await asyncio.to_thread(self._placeholder, content, width)

    @staticmethod
    def _probe(content: bytes) -> ImageProbe | None:
        try:
            with Image.open(BytesIO(content)) as img:
                width, height = img.size
                # EXIF orientations 5-8 swap the displayed edges
                if img.getexif().get(0x0112, 1) in (5, 6, 7, 8):
                    width, height = height, width
                return ImageProbe(width=width, height=height, format=img.format)
        except _DECODE_ERRORS as e:
            logger.debug("Bytes are not a decodable image", error=str(e))
            return None

    @staticmethod
    def _resize(content: bytes, max_edge: int, quality: int, output_format: str) -> bytes:
        output_format = output_format.upper()
        try:
            with Image.open(BytesIO(content)) as source:
                img = ImageOps.exif_transpose(source)
                width, height = img.size
                if width > max_edge or height > max_edge:
                    scale = min(max_edge / width, max_edge / height)
                    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
                    img = img.resize(new_size, Image.Resampling.LANCZOS)

                img = _prepare_for_format(img, output_format)
                buffer = BytesIO()
                if output_format == "JPEG":
                    img.save(buffer, "JPEG", quality=quality, optimize=True, progressive=True)
                else:
                    img.save(buffer, output_format, optimize=True)
                return buffer.getvalue()
        except _DECODE_ERRORS as e:
            raise_processing_error(
                service=SERVICE,
                operation="resize_image",
                message=f"Failed to resize image to {max_edge}px: {e}",
                max_edge=max_edge,
            )

    @staticmethod
    def _placeholder(content: bytes, width: int) -> str:
        try:
            with Image.open(BytesIO(content)) as source:
                img = ImageOps.exif_transpose(source)
                height = max(1, round(img.height * width / img.width))
                tiny = _prepare_for_format(img.resize((width, height)), "JPEG")
                tiny = tiny.filter(ImageFilter.GaussianBlur(1))
                buffer = BytesIO()
                tiny.save(buffer, "JPEG", quality=40)
        except _DECODE_ERRORS as e:
            raise_processing_error(
                service=SERVICE,
                operation="generate_placeholder",
                message=f"Failed to build blur placeholder: {e}",
            )
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/jpeg;base64,{encoded}"
