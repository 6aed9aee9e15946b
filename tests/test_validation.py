"""Tests for the file-type policy."""

import pytest

from image_metadata_pipeline.core.exceptions import InvalidFileTypeError
from image_metadata_pipeline.core.validation import ImageValidator, extract_extension


@pytest.mark.parametrize(
    "key,extension",
    [
        ("sunset.png", "png"),
        ("SUNSET.PNG", "png"),
        ("a.b.JPEG", "jpeg"),
        ("folder.v2/photo", "v2/photo"),
        ("README", ""),
        ("trailing.", ""),
    ],
)
def test_extract_extension(key, extension):
    assert extract_extension(key) == extension


class TestImageValidator:
    """Tests for ImageValidator."""

    @pytest.mark.parametrize("key", ["sunset.png", "beach.jpeg", "UPPER.PNG", "Mixed.JpEg"])
    def test_accepts_allowed_extensions(self, key):
        assert ImageValidator().validate(key) == key.rsplit(".", 1)[1].lower()

    @pytest.mark.parametrize("key", ["notes.pdf", "photo.jpg", "README", "archive.png.zip", "dot."])
    def test_rejects_everything_else(self, key):
        with pytest.raises(InvalidFileTypeError) as exc_info:
            ImageValidator().validate(key)

        assert exc_info.value.object_key == key
        assert key in str(exc_info.value)

    def test_custom_allowed_set(self):
        validator = ImageValidator([".JPG", "gif"])

        assert validator.allowed_extensions == frozenset({"jpg", "gif"})
        assert validator.is_valid("a.jpg")
        assert not validator.is_valid("a.png")
