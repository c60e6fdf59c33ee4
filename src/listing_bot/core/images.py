"""
Ordered image list management for a listing.

ImageCollection does not upload anything: it only manages the URLs that
the upload pipeline (services.image_upload) hands back. The first URL is
the listing's primary image.
"""

import logging
from collections.abc import Iterator, Sequence

from listing_bot.core.errors import ImageLimitError

logger = logging.getLogger(__name__)

MIN_IMAGES = 3
DEFAULT_MAX_IMAGES = 6


class ImageCollection:
    """
    View over a form's image list that enforces the maximum count.

    The wrapped list is mutated in place, so the owning FormState always
    sees the current images.
    """

    def __init__(self, urls: list[str], *, max_images: int = DEFAULT_MAX_IMAGES) -> None:
        if max_images < 1:
            raise ValueError("max_images must be at least 1")
        self._urls = urls
        self.max_images = max_images

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    @property
    def primary(self) -> str | None:
        return self._urls[0] if self._urls else None

    @property
    def remaining(self) -> int:
        return max(self.max_images - len(self._urls), 0)

    def ensure_capacity(self, count: int) -> None:
        """Raise ImageLimitError if `count` more images would exceed the maximum."""
        if len(self._urls) + count > self.max_images:
            raise ImageLimitError(len(self._urls), count, self.max_images)

    def add(self, urls: Sequence[str]) -> None:
        """Append all URLs, or none of them if the maximum would be exceeded."""
        self.ensure_capacity(len(urls))
        self._urls.extend(urls)
        logger.debug("Added %d image(s), now %d/%d", len(urls), len(self._urls), self.max_images)

    def remove(self, index: int) -> bool:
        """Remove the image at `index`. Out-of-range indices are ignored."""
        if not 0 <= index < len(self._urls):
            logger.debug("Ignoring image removal at index %d (have %d)", index, len(self._urls))
            return False
        del self._urls[index]
        return True
