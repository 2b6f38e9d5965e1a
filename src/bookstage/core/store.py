"""Artifact storage keyed by request path.

File layout:
    out/
    ├── .gitignore
    └── books/
        ├── bk101.html          # Artifact for /books/bk101
        └── bk102.html
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Protocol


class ArtifactStore(Protocol):
    """Key to bytes store for prerendered documents."""

    def write(self, path: str, content: bytes) -> None: ...

    def read(self, path: str) -> bytes | None: ...


class FileArtifactStore:
    """Stores artifacts as ``<out_dir>/<path>.html`` files.

    Writes go through a temporary file and ``os.replace`` so readers see
    either the previous artifact or the new one, never a partial file.
    Writing the same path again overwrites it.
    """

    _GITIGNORE_CONTENT = "# Ignore everything in this directory\n*\n"
    _SUFFIX = ".html"

    def __init__(self, out_dir: Path) -> None:
        """Initialize store with output directory.

        Args:
            out_dir: Root directory for artifacts (e.g., target/site)
        """
        self._out_dir = out_dir

    @property
    def out_dir(self) -> Path:
        """Root output directory."""
        return self._out_dir

    def _ensure_out_dir(self) -> None:
        """Create output directory with .gitignore if it doesn't exist."""
        if not self._out_dir.exists():
            self._out_dir.mkdir(parents=True, exist_ok=True)
            gitignore_path = self._out_dir / ".gitignore"
            gitignore_path.write_text(self._GITIGNORE_CONTENT, encoding="utf-8")

    def file_for(self, path: str) -> Path:
        """Map a request path to its artifact file.

        Args:
            path: Request path (e.g., "/books/bk101")

        Returns:
            Artifact file path inside out_dir

        Raises:
            ValueError: If the path is empty or contains empty, "." or ".." segments
        """
        parts = path.removeprefix("/").split("/")
        for part in parts:
            if part in ("", ".", ".."):
                raise ValueError(f"Cannot store artifact for path: {path!r}")

        return self._out_dir.joinpath(*parts[:-1], parts[-1] + self._SUFFIX)

    def write(self, path: str, content: bytes) -> None:
        """Store artifact, replacing any existing one.

        Args:
            path: Request path
            content: Document bytes
        """
        self._ensure_out_dir()
        target = self.file_for(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-", suffix=self._SUFFIX)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def read(self, path: str) -> bytes | None:
        """Retrieve artifact bytes.

        Args:
            path: Request path

        Returns:
            Artifact content, or None if not stored
        """
        try:
            target = self.file_for(path)
        except ValueError:
            return None

        try:
            return target.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None

    def clear(self) -> None:
        """Remove all artifacts."""
        if self._out_dir.exists():
            shutil.rmtree(self._out_dir)
