from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")


@dataclass(frozen=True)
class StoredUpload:
    filename: str
    path: Path


class UploadStore:
    """Holds uploaded image bytes on disk until the pipeline has read them."""

    def __init__(self, root: str = UPLOAD_DIR):
        self.root = Path(root)

    def save(self, data: bytes) -> StoredUpload:
        self.root.mkdir(parents=True, exist_ok=True)
        filename = uuid.uuid4().hex
        path = self.root / filename
        path.write_bytes(data)
        logger.info(f"Stored upload {filename} ({len(data)} bytes)")
        return StoredUpload(filename=filename, path=path)

    def read(self, path: Path) -> bytes:
        return Path(path).read_bytes()

    def delete(self, path: Path) -> bool:
        """Remove the file; failures are logged, never raised."""
        try:
            Path(path).unlink()
            return True
        except OSError as e:
            logger.error(f"Error cleaning up upload {path}: {e}")
            return False
