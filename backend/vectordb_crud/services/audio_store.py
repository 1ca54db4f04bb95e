"""
VectorDB CRUD — Generated Audio Storage
========================================

What:  Persists synthesized speech to disk and cleans it up again.
How:   Each request writes to its own file, audio/<record id>-<uuid>.mp3,
       under the storage root, using async file I/O.
Who:   EnrichmentService.text_to_speech(); the route streams the file back.

Concurrent requests for the same record never share a path, so one request
cannot overwrite or truncate the audio another is streaming.
"""

import logging
import os
import re
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from vectordb_crud.config import settings
from vectordb_crud.exceptions import FileStorageError

logger = logging.getLogger(__name__)

AUDIO_DIR = "audio"
AUDIO_EXTENSION = ".mp3"

# Record ids are uuid4 strings; anything else is reduced to this alphabet
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class AudioStore:
    """
    Directory Structure:
        storage/
        └── audio/
            ├── 3f1c...-a1b2c3d4.mp3
            └── 3f1c...-e5f6a7b8.mp3
    """

    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.audio_root = self.storage_root / AUDIO_DIR
        self.audio_root.mkdir(parents=True, exist_ok=True)
        logger.info("AudioStore initialized with audio_root=%s", self.audio_root)

    def _generate_storage_path(self, record_id: str) -> Path:
        safe_id = _UNSAFE_CHARS.sub("", record_id)[:64] or "record"
        return self.audio_root / f"{safe_id}-{uuid.uuid4().hex[:8]}{AUDIO_EXTENSION}"

    async def store(self, record_id: str, content: bytes) -> Path:
        """
        Write audio bytes to a fresh file.

        Returns:
            Absolute path of the written file.

        Raises:
            FileStorageError if the directory or the file cannot be written.
        """
        path = self._generate_storage_path(record_id)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store audio at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save generated audio. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

        logger.info("Audio stored: %s (%d bytes)", path.name, len(content))
        return path

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a generated file once it has been streamed.

        Best effort: a missing file is fine, other failures are logged.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.debug("Cleaned up audio file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up audio file %s: %s", file_path, str(e))
