import asyncio
import errno
import os
import stat
import uuid
from pathlib import Path
from typing import AsyncIterator, List, NamedTuple

import aiofiles
import aiofiles.os

from bucket import config
from bucket.errors import WriteIncomplete
from bucket.logger_config import setup_logger

logger = setup_logger()


class StoredFile(NamedTuple):
    name: str
    length: int
    created: float


def created_time(st: os.stat_result) -> float:
    """Creation time where the platform records it, otherwise st_ctime."""
    return getattr(st, "st_birthtime", st.st_ctime)


class StorageManager:
    """The web root on disk.

    Paths handed to it are sanitized request paths: the host separator
    followed by a single name. Uploads are streamed into TEMP_DIR and only
    renamed over their target once their length has been verified.
    """

    def __init__(self, web_root: Path, temp_dir: Path, chunk_size: int = config.CHUNK_SIZE):
        self.web_root = web_root
        self.temp_dir = temp_dir
        self.chunk_size = chunk_size

    async def initialize(self):
        """Create the storage directories and drop temp files left by an earlier run."""
        logger.info(f"Web root path {self.web_root}")

        self.web_root.mkdir(exist_ok=True, parents=True)
        self.temp_dir.mkdir(exist_ok=True, parents=True)
        logger.debug(f"Storage directories created/verified: {self.web_root}, {self.temp_dir}")

        files_removed = 0
        for file in self.temp_dir.glob("*.tmp"):
            if file.is_file():
                await aiofiles.os.unlink(file)
                files_removed += 1
        logger.info(f"Cleaned temporary directory, removed {files_removed} files")

    def resolve(self, path: str) -> Path:
        return Path(f"{self.web_root}{path}")

    def _scan(self) -> List[StoredFile]:
        files = []
        with os.scandir(self.web_root) as entries:
            for entry in entries:
                if entry.is_file():
                    st = entry.stat()
                    files.append(StoredFile(entry.name, st.st_size, created_time(st)))
        files.sort(key=lambda f: f.name)
        return files

    async def list_files(self) -> List[StoredFile]:
        """Immediate regular files of the web root, sorted by name."""
        return await asyncio.to_thread(self._scan)

    async def stat_file(self, path: str) -> os.stat_result:
        """Stat a stored file. Anything but a regular file counts as not found."""
        filename = self.resolve(path)
        st = await aiofiles.os.stat(filename)
        if not stat.S_ISREG(st.st_mode):
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(filename))
        return st

    async def iter_file(self, path: str) -> AsyncIterator[bytes]:
        async with aiofiles.open(self.resolve(path), 'rb') as file:
            while chunk := await file.read(self.chunk_size):
                yield chunk

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.isfile(self.resolve(path))

    async def store(self, path: str, chunks: AsyncIterator[bytes], expected_length: int) -> bool:
        """Stream chunks into the file at path.

        Returns True if the file was created and False if it replaced an
        existing one. Raises WriteIncomplete when the bytes written differ
        from expected_length. On that or any other failure, cancellation
        included, the target is left untouched and the temp file is removed.
        """
        target = self.resolve(path)
        existed = await self.exists(path)
        temp_path = self.temp_dir / f"{uuid.uuid4().hex}.tmp"
        committed = False

        try:
            async with aiofiles.open(temp_path, 'wb') as f:
                async for chunk in chunks:
                    await f.write(chunk)

            written = await aiofiles.os.path.getsize(temp_path)
            if written != expected_length:
                logger.warning(f"Incomplete write of {target}: expected {expected_length} bytes, got {written}")
                raise WriteIncomplete()

            await aiofiles.os.replace(temp_path, target)
            committed = True
        finally:
            if not committed:
                await self.discard(temp_path)

        logger.debug(f"Stored {written} bytes in {target}")
        return not existed

    async def discard(self, temp_path: Path):
        try:
            await aiofiles.os.unlink(temp_path)
        except FileNotFoundError:
            pass

    async def delete(self, path: str):
        """Delete a stored file, raising FileNotFoundError if it is absent."""
        await aiofiles.os.remove(self.resolve(path))
