"""Append-only text journal for filesystem events."""

from __future__ import annotations

import logging
import os
from types import TracebackType
from typing import IO, Optional, Type, Union

logger = logging.getLogger(__name__)

DEFAULT_PATH = "journal.log"

PathLike = Union[str, "os.PathLike[str]"]


class FatJournal:
    """A journal file that collects event lines, flushing after each one.

    The file is opened in append mode, so lines written by earlier runs
    are kept. Writing while the journal is closed does nothing.
    """

    def __init__(self, path: PathLike = DEFAULT_PATH) -> None:
        self.path = os.fspath(path)
        self._file: Optional[IO[str]] = None

    @property
    def is_open(self) -> bool:
        """Whether the journal currently accepts writes."""
        return self._file is not None

    def open(self) -> None:
        """Open the journal for appending; a no-op if it is already open.

        Raises OSError if the file cannot be opened.
        """
        if self._file is not None:
            return
        try:
            self._file = open(self.path, "a", encoding="utf-8")
        except OSError:
            logger.error("failed to open journal %s", self.path)
            raise
        logger.info("opened journal %s", self.path)

    def write(self, msg: str) -> None:
        """Append ``msg`` as is and flush it to disk."""
        if self._file is None:
            return
        self._file.write(msg)
        self._file.flush()

    def close(self) -> None:
        """Flush and close the journal; a no-op if it is not open."""
        if self._file is None:
            return
        handle, self._file = self._file, None
        try:
            handle.flush()
        finally:
            handle.close()
        logger.info("closed journal %s", self.path)

    def __enter__(self) -> "FatJournal":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()