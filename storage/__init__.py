"""Upload storage backends."""

from .abstract_storage import AbstractStorage
from .local_storage import ALLOWED_IMAGE_EXTENSIONS, LocalStorage

__all__ = ["AbstractStorage", "ALLOWED_IMAGE_EXTENSIONS", "LocalStorage"]
