"""Image set of a wallet pass.

This module collects the PNG assets of a pass (icon, logo, strip, etc.) in
their 1x/2x/3x variants, optionally per locale, and turns them into bundle
files. Producing the variants themselves is up to the caller.
"""

import asyncio
import io
import re
from dataclasses import dataclass
from pathlib import Path

import structlog
from PIL import Image, UnidentifiedImageError

from passbundle.exceptions import InvalidArgumentError, MissingImageError

logger = structlog.get_logger(__name__)


# Recommended 1x image sizes (Apple requirements)
IMAGE_SIZES: dict[str, tuple[int, int]] = {
    "icon": (29, 29),
    "logo": (160, 50),
    "thumbnail": (90, 90),
    "strip": (375, 123),
    "background": (180, 220),
    "footer": (286, 15),
}

IMAGE_TYPES: tuple[str, ...] = tuple(IMAGE_SIZES)
DENSITIES: tuple[str, ...] = ("1x", "2x", "3x")
REQUIRED_IMAGES: tuple[str, ...] = ("icon", "logo")

# "icon.png", "logo@2x.png", "de.lproj/strip@3x.png"
IMAGE_FILENAME_RE = re.compile(
    r"^(?:(?P<locale>[\w-]+)\.lproj/)?(?P<type>" + "|".join(IMAGE_TYPES) + r")(?:@(?P<density>[23]x))?\.png$"
)


def image_filename(image_type: str, density: str = "1x", locale: str | None = None) -> str:
    """Build the bundle path of an image variant.

    Args:
        image_type: One of IMAGE_TYPES.
        density: One of DENSITIES.
        locale: Language code for localized images.

    Returns:
        Path like "logo@2x.png" or "fr.lproj/logo.png".
    """
    suffix = "" if density == "1x" else f"@{density}"
    filename = f"{image_type}{suffix}.png"
    if locale:
        return f"{locale}.lproj/{filename}"
    return filename


@dataclass(frozen=True)
class _ImageKey:
    image_type: str
    density: str
    locale: str | None


class PassImages:
    """Image assets of a pass, keyed by type, density and locale."""

    def __init__(self) -> None:
        self._images: dict[_ImageKey, bytes | Path] = {}

    def add(
        self,
        image_type: str,
        source: bytes | str | Path,
        density: str = "1x",
        locale: str | None = None,
    ) -> None:
        """Add or replace an image variant.

        Args:
            image_type: One of IMAGE_TYPES.
            source: PNG bytes, or a path read when the bundle is produced.
            density: One of DENSITIES.
            locale: Language code for localized images.

        Raises:
            InvalidArgumentError: If the type or density is unknown, or the
                bytes are not a PNG image.
        """
        if image_type not in IMAGE_SIZES:
            raise InvalidArgumentError(f'Unknown image type "{image_type}"')
        if density not in DENSITIES:
            raise InvalidArgumentError(f'Unknown image density "{density}"')

        if isinstance(source, bytes):
            self._check_png(source, image_type, density)
        else:
            source = Path(source)

        self._images[_ImageKey(image_type, density, locale)] = source

    def _check_png(self, data: bytes, image_type: str, density: str) -> None:
        try:
            img = Image.open(io.BytesIO(data))
        except UnidentifiedImageError:
            raise InvalidArgumentError(f"{image_type} image is not a valid image")
        if img.format != "PNG":
            raise InvalidArgumentError(f"{image_type} image must be a PNG, got {img.format}")

        scale = int(density[0])
        base_width, base_height = IMAGE_SIZES[image_type]
        max_size = (base_width * scale, base_height * scale)
        if img.size[0] > max_size[0] or img.size[1] > max_size[1]:
            logger.warning(
                "image_size_mismatch",
                image_type=image_type,
                density=density,
                size=img.size,
                recommended=max_size,
            )

    def has(self, image_type: str) -> bool:
        """Check whether any variant of an image type is present."""
        return any(key.image_type == image_type for key in self._images)

    def __len__(self) -> int:
        return len(self._images)

    def validate(self) -> None:
        """Check that all required images are present.

        Raises:
            MissingImageError: If icon or logo has no non-localized variant.
        """
        for image_type in REQUIRED_IMAGES:
            # Localized variants need a non-localized fallback
            if not any(key.image_type == image_type and key.locale is None for key in self._images):
                raise MissingImageError(image_type)

    def copy(self) -> "PassImages":
        images = PassImages()
        images._images = dict(self._images)
        return images

    async def to_files(self) -> list[tuple[str, bytes]]:
        """Produce the bundle files of all images.

        Path sources are read in a worker thread.

        Returns:
            List of (bundle path, PNG bytes) pairs.

        Raises:
            InvalidArgumentError: If a path source cannot be read.
        """
        files: list[tuple[str, bytes]] = []
        for key, source in self._images.items():
            if isinstance(source, Path):
                try:
                    data = await asyncio.to_thread(source.read_bytes)
                except OSError as e:
                    raise InvalidArgumentError(f"Failed to read {key.image_type} image {source}: {e}")
            else:
                data = source
            files.append((image_filename(key.image_type, key.density, key.locale), data))
        return files
