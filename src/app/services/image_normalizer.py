# src/app/services/image_normalizer.py
"""
Turns an arbitrary source raster into the two stored recipe image variants.

- full: 800x800 JPEG, quality 85
- thumbnail: 200x200 JPEG, quality 75

Both are center-cropped to a square before scaling, so the source aspect ratio
never distorts the output. The pair shares one generated id; the thumbnail key
carries a ``_thumb`` suffix.

Normalization is all-or-nothing: if the thumbnail cannot be stored after the
full image was, the full image is removed again and the whole step fails.
"""
from __future__ import annotations

import io
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from src.app.domain.errors import ImageDecodeError, ImageEncodeError, StorageError
from src.app.domain.models import MediaKind, MediaPair, MediaVariant
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)

JPEG_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class VariantSpec:
    kind: MediaKind
    size: int
    quality: int
    directory: str
    suffix: str = ""

    def key_for(self, image_id: str) -> str:
        return f"{self.directory}/{image_id}{self.suffix}.jpg"


FULL_SPEC = VariantSpec(MediaKind.FULL, size=800, quality=85, directory="images/full")
THUMBNAIL_SPEC = VariantSpec(
    MediaKind.THUMBNAIL, size=200, quality=75, directory="images/thumbnails", suffix="_thumb"
)


def decode_image(raw: bytes) -> Image.Image:
    """
    Decode bytes in any format Pillow recognizes.

    Raises:
        ImageDecodeError: On unrecognized or corrupt data
    """
    if not raw:
        raise ImageDecodeError("Image data is empty")
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as err:
        raise ImageDecodeError(f"Failed to decode image: {err}") from err

    image = ImageOps.exif_transpose(image)
    if image.mode != "RGB":
        # JPEG has no alpha channel; flatten onto white
        if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            image = background
        else:
            image = image.convert("RGB")
    return image


def render_variant(image: Image.Image, spec: VariantSpec) -> bytes:
    """Center-crop and scale to a square, then encode as JPEG."""
    try:
        square = ImageOps.fit(
            image,
            (spec.size, spec.size),
            method=Image.Resampling.LANCZOS,
            centering=(0.5, 0.5),
        )
        buffer = io.BytesIO()
        square.save(buffer, format="JPEG", quality=spec.quality, optimize=True)
    except (OSError, ValueError) as err:
        raise ImageEncodeError(spec.kind.value, str(err)) from err

    data = buffer.getvalue()
    if not data:
        raise ImageEncodeError(spec.kind.value, "encoder produced no data")
    return data


class ImageNormalizer:
    def __init__(
        self,
        storage: StorageProvider,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.storage = storage
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def normalize(self, raw: bytes) -> MediaPair:
        """
        Decode, render and store both variants.

        Args:
            raw: Encoded source image (PNG, JPEG, WebP, ...)

        Returns:
            MediaPair with storage-relative keys

        Raises:
            ImageDecodeError: Source bytes are not a decodable image
            ImageEncodeError: A variant could not be rendered or stored
        """
        image = decode_image(raw)
        image_id = self._id_factory()

        full_bytes = render_variant(image, FULL_SPEC)
        thumb_bytes = render_variant(image, THUMBNAIL_SPEC)

        full = self._store(image_id, FULL_SPEC, full_bytes)
        try:
            thumbnail = self._store(image_id, THUMBNAIL_SPEC, thumb_bytes)
        except ImageEncodeError:
            self._discard_orphan(full)
            raise

        logger.info(
            "Normalized recipe image: id=%s, source=%dx%d, full=%d bytes, thumb=%d bytes",
            image_id,
            image.width,
            image.height,
            len(full_bytes),
            len(thumb_bytes),
        )
        return MediaPair(full=full, thumbnail=thumbnail)

    def _store(self, image_id: str, spec: VariantSpec, data: bytes) -> MediaVariant:
        key = spec.key_for(image_id)
        try:
            stored_key = self.storage.put_object(key, data, content_type=JPEG_CONTENT_TYPE)
        except StorageError as err:
            raise ImageEncodeError(spec.kind.value, str(err)) from err

        return MediaVariant(
            kind=spec.kind,
            storage_key=stored_key,
            width=spec.size,
            height=spec.size,
            encoding_quality=spec.quality,
        )

    def _discard_orphan(self, variant: MediaVariant) -> None:
        try:
            self.storage.delete_object(variant.storage_key)
            logger.warning("Discarded orphaned %s variant: %s", variant.kind.value, variant.storage_key)
        except StorageError as err:
            logger.error("Failed to discard orphaned variant %s: %s", variant.storage_key, err)
