import logging
import os
import uuid
from typing import NamedTuple

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

MEDIA_FOLDER = "campshare"
MAX_DIMENSION = 1600
MAX_PIXELS = 40_000_000
THUMBNAIL_WIDTH = 200
JPEG_QUALITY = 80
THUMBNAIL_SUFFIX = "_w200"


class MediaError(Exception):
    pass


class StoredImage(NamedTuple):
    url: str
    filename: str


def thumbnail_url(url):
    """URL of the 200px-wide rendition stored next to url."""
    root, ext = os.path.splitext(url)
    return f"{root}{THUMBNAIL_SUFFIX}{ext}"


class LocalMediaStorage:
    """
    Media collaborator that keeps uploads on local disk, served under base_url.

    Uploads are re-encoded as JPEG, capped at MAX_DIMENSION on the long side, and stored with a
    THUMBNAIL_WIDTH rendition. Images over max_pixels are refused before they are decoded.
    The returned filename is the identifier used for deletion.
    """

    def __init__(self, root, base_url="/media", max_dimension=MAX_DIMENSION, quality=JPEG_QUALITY,
                 max_pixels=MAX_PIXELS):
        self.root = root
        self.base_url = base_url.rstrip("/")
        self.max_dimension = max_dimension
        self.quality = quality
        self.max_pixels = max_pixels
        os.makedirs(os.path.join(self.root, MEDIA_FOLDER), exist_ok=True)

    def _path(self, filename, suffix=""):
        return os.path.join(self.root, f"{filename}{suffix}.jpg")

    def upload(self, stream, original_name=None) -> StoredImage:
        name = original_name or "upload"
        try:
            image = Image.open(stream)
            # Only the header has been read so far
            if image.width * image.height > self.max_pixels:
                raise MediaError(
                    f"'{name}' is too large ({image.width}x{image.height}); the limit is {self.max_pixels} pixels"
                )
            image = ImageOps.exif_transpose(image)
            image = image.convert("RGB")
        except Image.DecompressionBombError as e:
            raise MediaError(f"'{name}' is too large to process") from e
        except (UnidentifiedImageError, OSError) as e:
            raise MediaError(f"'{name}' is not a readable image") from e

        filename = f"{MEDIA_FOLDER}/{uuid.uuid4().hex}"
        try:
            image.thumbnail((self.max_dimension, self.max_dimension))
            image.save(self._path(filename), "JPEG", quality=self.quality, optimize=True)

            thumb = image.copy()
            ratio = THUMBNAIL_WIDTH / float(thumb.width)
            if ratio < 1:
                thumb = thumb.resize((THUMBNAIL_WIDTH, max(1, int(thumb.height * ratio))))
            thumb.save(self._path(filename, THUMBNAIL_SUFFIX), "JPEG", quality=self.quality)
        except OSError as e:
            raise MediaError(f"Could not store '{name}': {e}") from e

        logger.info(f"Stored image {filename} ({image.width}x{image.height}) from '{original_name}'")
        return StoredImage(url=f"{self.base_url}/{filename}.jpg", filename=filename)

    def delete(self, filename):
        paths = [self._path(filename), self._path(filename, THUMBNAIL_SUFFIX)]
        if not all(os.path.abspath(p).startswith(os.path.abspath(self.root) + os.sep) for p in paths):
            raise MediaError(f"Refusing to delete '{filename}' outside the media root")

        for path in paths:
            try:
                os.remove(path)
            except FileNotFoundError:
                logger.warning(f"Media file already gone: {path}")
            except OSError as e:
                raise MediaError(f"Could not delete '{filename}': {e}") from e
        logger.info(f"Deleted image {filename}")
