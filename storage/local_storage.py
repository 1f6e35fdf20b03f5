"""Local filesystem storage implementation."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import IO

from werkzeug.utils import secure_filename

from config import Config
from errors import InvalidInput

from .abstract_storage import AbstractStorage

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}


class LocalStorage(AbstractStorage):
    """Persist uploads to the local filesystem under the configured upload directory."""

    def __init__(self, upload_dir: str | None = None, url_prefix: str = "/uploads"):
        self.base_directory = Path(upload_dir or Config.UPLOAD_DIR)
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(self.base_directory, exist_ok=True)

    def save(self, file_obj: IO[bytes], filename: str) -> str:
        """Save an image under a unique name and return it relative to the upload directory."""

        safe_name = secure_filename(filename or "")
        if not safe_name:
            raise InvalidInput("Filename must contain at least one valid character.")

        extension = safe_name.rsplit(".", 1)[-1].lower() if "." in safe_name else ""
        if extension not in ALLOWED_IMAGE_EXTENSIONS:
            allowed = ", ".join(sorted(ALLOWED_IMAGE_EXTENSIONS))
            raise InvalidInput(f"File type not allowed. Allowed types: {allowed}.")

        stored_name = f"{uuid.uuid4().hex}.{extension}"
        destination = self.base_directory / stored_name
        if hasattr(file_obj, "save"):
            file_obj.save(destination)  # type: ignore[arg-type]
        else:
            with open(destination, "wb") as output:
                output.write(file_obj.read())

        return stored_name

    def exists(self, path: str) -> bool:
        return (self.base_directory / path).exists()

    def public_path(self, path: str) -> str:
        return f"{self.url_prefix}/{path}"
