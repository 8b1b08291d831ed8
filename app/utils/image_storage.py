import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from app.utils.image_processing import extension_for

logger = logging.getLogger(__name__)


class ImageStorage:
    """Local directory holding generated illustrations.

    Files get random uuid4 names so concurrent requests never write to the
    same path; they are served back under ``url_prefix`` by the app.
    """

    def __init__(self, directory: Path, url_prefix: str = "/generated"):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_directory(self) -> None:
        os.makedirs(self.directory, exist_ok=True)

    def save(self, image_bytes: bytes, extension: Optional[str] = None) -> str:
        """Write bytes to a new file and return its relative retrieval path.

        Raises OSError if the file cannot be written.
        """
        self.ensure_directory()
        filename = f"{uuid.uuid4().hex}{extension or extension_for(image_bytes)}"
        file_path = self.directory / filename

        # exclusive create: a name clash must fail loudly rather than overwrite
        with open(file_path, "xb") as f:
            f.write(image_bytes)

        logger.info(f"Stored generated image: {filename} ({len(image_bytes)} bytes)")
        return f"{self.url_prefix}/{filename}"
