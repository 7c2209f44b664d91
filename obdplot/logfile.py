"""Thread-safe text log written for the whole session."""

from __future__ import annotations

import os
import shutil
import threading
from pathlib import Path


class SessionLog:
    """A log file that is truncated on open and written to as text arrives."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._file = open(self.path, "w", encoding="utf-8", newline="")

    def append(self, text: str) -> None:
        """Write ``text`` as is and flush it to disk."""
        with self._lock:
            self._file.write(text)
            self._file.flush()

    def save_copy(self, destination: str | os.PathLike[str]) -> None:
        """Copy everything logged so far to ``destination`` and keep logging."""
        with self._lock:
            self._file.close()
            try:
                shutil.copyfile(self.path, destination)
            finally:
                self._file = open(self.path, "a", encoding="utf-8", newline="")

    def close(self) -> None:
        """Close the log file; further appends raise ValueError."""
        with self._lock:
            self._file.close()

    def __enter__(self) -> SessionLog:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()