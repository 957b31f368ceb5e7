"""Input rules for loading non-code artifacts such as boilerplate headers."""

from __future__ import annotations

from typing import BinaryIO


class InputFromFileSystem:
    """Read artifacts straight from the file system."""

    def open_for_read(self, path: str) -> BinaryIO:
        """Open ``path`` for binary reading."""
        return open(path, "rb")