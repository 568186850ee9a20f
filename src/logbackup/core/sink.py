"""
Destination sink: appends sanitized content to backup files in the output
directory.
"""

from pathlib import Path

import aiofiles
import structlog

from .exceptions import SinkWriteError

logger = structlog.get_logger(__name__)


class FileLogSink:
    """
    Append-only writer for backup files.

    The output directory is created up front; each backup file is created on
    its first append.
    """

    def __init__(self, output_path: Path) -> None:
        self.output_path = Path(output_path)
        self.output_path.mkdir(parents=True, exist_ok=True)
        logger.info("File log sink initialized", output_path=str(self.output_path))

    def _resolve(self, destination: str) -> Path:
        if not destination or Path(destination).name != destination:
            raise SinkWriteError(
                f"Invalid backup file name '{destination}'",
                details={"backup_file": destination},
            )
        return self.output_path / destination

    async def append(self, destination: str, content: str) -> None:
        """
        Append content to a backup file, creating it if needed.

        Raises:
            SinkWriteError: the write did not reach the file
        """
        path = self._resolve(destination)
        try:
            async with aiofiles.open(path, "a", encoding="utf-8") as f:
                await f.write(content)
        except OSError as e:
            logger.error(
                "Failed writing to backup file",
                backup_file=destination,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SinkWriteError(
                f"Failed writing to backup file {destination}",
                details={"backup_file": destination, "error": str(e)},
            ) from e
