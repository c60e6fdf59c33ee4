"""Tests for ImageCollection."""

import pytest

from listing_bot.core.errors import ImageLimitError
from listing_bot.core.images import ImageCollection


def test_add_within_limit():
    urls: list[str] = []
    images = ImageCollection(urls, max_images=6)
    images.add(["a", "b"])
    assert urls == ["a", "b"]
    assert images.primary == "a"
    assert images.remaining == 4


def test_add_over_limit_adds_nothing():
    urls = ["a", "b", "c", "d", "e"]
    images = ImageCollection(urls, max_images=6)
    with pytest.raises(ImageLimitError) as exc:
        images.add(["f", "g"])
    assert urls == ["a", "b", "c", "d", "e"]
    assert str(exc.value) == (
        "You can only upload 6 images maximum. Currently have 5, tried to add 2."
    )


def test_ensure_capacity():
    images = ImageCollection(["a"] * 6, max_images=6)
    with pytest.raises(ImageLimitError):
        images.ensure_capacity(1)
    images.ensure_capacity(0)


def test_remove_first_promotes_next():
    urls = ["a", "b", "c"]
    images = ImageCollection(urls)
    assert images.remove(0) is True
    assert images.primary == "b"
    assert list(images) == ["b", "c"]


@pytest.mark.parametrize("index", [3, 10, -1])
def test_remove_out_of_range_is_noop(index):
    urls = ["a", "b", "c"]
    assert ImageCollection(urls).remove(index) is False
    assert urls == ["a", "b", "c"]


def test_empty_collection():
    images = ImageCollection([])
    assert images.primary is None
    assert len(images) == 0


def test_max_images_must_be_positive():
    with pytest.raises(ValueError):
        ImageCollection([], max_images=0)
