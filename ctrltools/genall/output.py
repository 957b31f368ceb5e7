"""Output rules: where generators write their artifacts.

An output rule has ``open(pkg, path)`` returning a binary, writable
context manager. A ``pkg`` of ``None`` marks the artifact as configuration
rather than code belonging to a package.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Optional


class _NoCloseWriter:
    """Wrap a binary stream so that closing it leaves the stream open."""

    def __init__(self, stream: Optional[BinaryIO]) -> None:
        self._stream = stream

    def write(self, data: bytes) -> int:
        if self._stream is None:
            return len(data)
        return self._stream.write(data)

    def close(self) -> None:
        if self._stream is not None:
            self._stream.flush()

    def __enter__(self) -> "_NoCloseWriter":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class OutputToNothing:
    """Discard everything written."""

    def open(self, pkg: Any, path: str) -> _NoCloseWriter:
        return _NoCloseWriter(None)


class OutputToStdout:
    """Write everything to standard output, with no separation."""

    def open(self, pkg: Any, path: str) -> _NoCloseWriter:
        return _NoCloseWriter(sys.stdout.buffer)


@dataclass(frozen=True)
class OutputToDirectory:
    """Write each artifact under ``directory``, whether code or config."""

    directory: str

    def open(self, pkg: Any, path: str) -> BinaryIO:
        full_path = os.path.join(self.directory, path)
        os.makedirs(os.path.dirname(full_path) or ".", exist_ok=True)
        return open(full_path, "wb")


@dataclass(frozen=True)
class OutputArtifacts:
    """Write config to ``config`` and code next to its package's sources.

    If ``code`` is set, code artifacts go there instead.
    """

    config: OutputToDirectory
    code: Optional[OutputToDirectory] = None

    def open(self, pkg: Any, path: str) -> BinaryIO:
        if pkg is None:
            return self.config.open(pkg, path)
        if self.code is not None and self.code.directory:
            return self.code.open(pkg, path)
        files = getattr(pkg, "compiled_go_files", None) or []
        if not files:
            raise ValueError("cannot output to a package with no path on disk")
        return open(os.path.join(os.path.dirname(files[0]), path), "wb")


@dataclass
class OutputRules:
    """Output rule per generator, with a fallback default.

    ``by_generator`` is keyed by ``id(generator)`` so that distinct generator
    instances get distinct rules even when they compare equal.
    """

    default: Any = None
    by_generator: Dict[int, Any] = field(default_factory=dict)

    def for_generator(self, gen: Any) -> Any:
        """Return the rule to use for ``gen``."""
        return self.by_generator.get(id(gen), self.default)


def directory_per_generator(base: str, generators: Dict[str, Any]) -> OutputRules:
    """Send each named generator's config to its own subdirectory of ``base``."""
    by_generator = {
        id(gen): OutputArtifacts(config=OutputToDirectory(os.path.join(base, name)))
        for name, gen in generators.items()
    }
    return OutputRules(
        default=OutputArtifacts(config=OutputToDirectory(base)),
        by_generator=by_generator,
    )