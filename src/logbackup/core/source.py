"""
Source provider: lists log files in the input directory and opens them for
incremental reading.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List

import aiofiles
import structlog
from aiofiles.threadpool.binary import AsyncBufferedReader

from ..models.log_file import LogFile
from .exceptions import SourceReadError

logger = structlog.get_logger(__name__)


class FileLogSource:
    """
    Log files stored directly in the configured input directory.

    Files are opened read-only so writers can keep appending while a pass
    is in progress.
    """

    def __init__(self, input_path: Path) -> None:
        self.input_path = Path(input_path)
        logger.info("File log source initialized", input_path=str(self.input_path))

    def list_available(self) -> List[LogFile]:
        """
        Snapshot of the files currently in the input directory.

        Returns an empty list when the directory does not exist.

        Raises:
            SourceReadError: the directory exists but cannot be listed
        """
        if not self.input_path.is_dir():
            logger.warning("Input directory does not exist", input_path=str(self.input_path))
            return []

        try:
            files = []
            for path in sorted(self.input_path.iterdir()):
                try:
                    if not path.is_file():
                        continue
                    length = path.stat().st_size
                except FileNotFoundError:
                    logger.debug("File removed while listing, skipping", file=path.name)
                    continue
                files.append(LogFile(name=path.name, length=length))
            return files
        except OSError as e:
            logger.error(
                "Failed to list files",
                input_path=str(self.input_path),
                error=str(e),
            )
            raise SourceReadError(
                f"Failed to list files from {self.input_path}",
                details={"path": str(self.input_path), "error": str(e)},
            ) from e

    @asynccontextmanager
    async def open_for_reading_from(self, file: LogFile, offset: int) -> AsyncIterator[AsyncBufferedReader]:
        """
        Open a log file in binary mode positioned at a byte offset.

        Raises:
            SourceReadError: the file cannot be opened or positioned
        """
        path = self.input_path / file.name
        try:
            handle = await aiofiles.open(path, "rb")
        except OSError as e:
            logger.error(
                "Failed to open file",
                file=file.name,
                offset=offset,
                error=str(e),
            )
            raise SourceReadError(
                f"Failed to open {file.name}",
                details={"file": file.name, "offset": offset, "error": str(e)},
            ) from e

        try:
            await handle.seek(offset)
            yield handle
        finally:
            await handle.close()
