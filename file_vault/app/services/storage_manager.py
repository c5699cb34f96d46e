import stat
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import aiofiles
import aiofiles.os
from starlette.datastructures import UploadFile

from file_vault import config
from file_vault.app.models.stored_file import StoredFile
from file_vault.logger_config import setup_logger

logger = setup_logger()


class InvalidFilenameError(ValueError):
    """Raised for names that would leave the flat upload directory."""


class UploadTooLargeError(Exception):
    """Raised when an upload grows past the configured maximum size."""


class StorageManager:
    def __init__(self, upload_dir: Path, temp_dir: Path,
                 max_upload_size: int = config.MAX_UPLOAD_SIZE,
                 chunk_size: int = config.CHUNK_SIZE):
        self.upload_dir = Path(upload_dir)
        self.temp_dir = Path(temp_dir)
        self.max_upload_size = max_upload_size
        self.chunk_size = chunk_size

    async def initialize(self):
        """Create the storage directories and drop leftovers from interrupted uploads."""
        logger.info("Initializing storage manager...")

        self.upload_dir.mkdir(exist_ok=True, parents=True)
        self.temp_dir.mkdir(exist_ok=True, parents=True)
        logger.debug(f"Storage directories created/verified: {self.upload_dir}, {self.temp_dir}")

        files_removed = 0
        for file in self.temp_dir.glob("*"):
            if file.is_file():
                await aiofiles.os.unlink(file)
                files_removed += 1
        logger.info(f"Cleaned temporary directory, removed {files_removed} files")

    def resolve_path(self, filename: str) -> Path:
        """Map a stored file name onto its path inside the upload directory."""
        if not filename or filename in (".", ".."):
            raise InvalidFilenameError(f"invalid filename {filename!r}")
        if any(sep in filename for sep in ("/", "\\", "\x00")):
            raise InvalidFilenameError(f"filename {filename!r} must not contain path separators")
        return self.upload_dir / filename

    async def list_files(self) -> Tuple[List[StoredFile], Optional[str]]:
        """Enumerate stored files, most recently modified first.

        Returns the files collected so far together with an error message if
        enumeration failed partway; the caller decides how to report it.
        """
        files: List[StoredFile] = []
        error = None
        try:
            for name in await aiofiles.os.listdir(self.upload_dir):
                file_stat = await aiofiles.os.stat(self.upload_dir / name)
                if not stat.S_ISREG(file_stat.st_mode):
                    continue
                files.append(StoredFile(
                    name=name,
                    size=file_stat.st_size,
                    modified=datetime.fromtimestamp(file_stat.st_mtime),
                ))
        except OSError as e:
            logger.error(f"Error listing {self.upload_dir}: {str(e)}", exc_info=True)
            error = str(e)

        files.sort(key=lambda stored_file: stored_file.modified, reverse=True)
        return files, error

    async def save_upload(self, filename: str, upload: UploadFile) -> int:
        """Stream an uploaded file into storage, replacing any file of the same name.

        The content is written to the temp directory first and renamed into
        place, so readers see either the previous or the new file in full.
        """
        destination = self.resolve_path(filename)
        temp_path = self.temp_dir / f"{uuid.uuid4().hex}.part"

        content_size = 0
        try:
            async with aiofiles.open(temp_path, 'wb') as f:
                while chunk := await upload.read(self.chunk_size):
                    content_size += len(chunk)
                    if content_size > self.max_upload_size:
                        raise UploadTooLargeError(
                            f"file exceeds maximum upload size of {self.max_upload_size} bytes"
                        )
                    await f.write(chunk)

            await aiofiles.os.replace(temp_path, destination)
        except BaseException:
            if await aiofiles.os.path.exists(temp_path):
                await aiofiles.os.unlink(temp_path)
            raise

        logger.debug(f"Stored {destination} ({content_size} bytes)")
        return content_size

    async def open_for_read(self, filename: str):
        """Open a stored file for streaming; OSError propagates to the caller."""
        return await aiofiles.open(self.resolve_path(filename), 'rb')

    async def iter_file(self, file):
        """Yield a file opened by open_for_read in chunks, closing it afterwards."""
        try:
            while chunk := await file.read(self.chunk_size):
                yield chunk
        except OSError as e:
            logger.error(f"Error streaming {file.name}: {str(e)}", exc_info=True)
            raise
        finally:
            await file.close()
