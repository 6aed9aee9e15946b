"""File-type policy for ingested images."""

from typing import Iterable, Tuple

from .exceptions import InvalidFileTypeError

DEFAULT_ALLOWED_EXTENSIONS: Tuple[str, ...] = ("jpeg", "png")


def extract_extension(object_key: str) -> str:
    """Return the lower-cased text after the last '.', or '' when there is none."""
    if "." not in object_key:
        return ""
    return object_key.rsplit(".", 1)[1].lower()


class ImageValidator:
    """Enforces the allowed-extension policy on created objects."""

    def __init__(self, allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS):
        self._allowed = frozenset(ext.lower().lstrip(".") for ext in allowed_extensions)

    @property
    def allowed_extensions(self) -> frozenset:
        return self._allowed

    def validate(self, object_key: str) -> str:
        """
        Check an object key against the policy.

        Args:
            object_key: Decoded S3 object key

        Returns:
            The lower-cased extension

        Raises:
            InvalidFileTypeError: If the key has no extension or an unsupported one
        """
        extension = extract_extension(object_key)
        if not extension or extension not in self._allowed:
            raise InvalidFileTypeError(object_key, extension)
        return extension

    def is_valid(self, object_key: str) -> bool:
        try:
            self.validate(object_key)
        except InvalidFileTypeError:
            return False
        return True
