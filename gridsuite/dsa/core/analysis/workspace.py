# gridsuite/dsa/core/analysis/workspace.py
"""
Per-run working directories.

Each run gets a fresh directory that only it uses. The engine reads its inputs
from it (the prior-stage dump) and may write outputs there; the directory is
removed when the run reaches a terminal outcome.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from gridsuite.dsa.core.errors import WorkingDirectoryError

logger = logging.getLogger(__name__)

WORKING_DIR_PREFIX = "dynamic_security_analysis"


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


class FileWorkspace:
    """
    A run's working directory.

    Directory structure:
        {root}/
            dynamic_security_analysis{random}/
                dump/outputState.dmp
                ...engine outputs
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _resolve_path(self, name: str) -> Path:
        resolved = (self._path / name).resolve()
        if not resolved.is_relative_to(self._path.resolve()):
            raise ValueError(f"Path '{name}' escapes workspace root")
        return resolved

    async def write_bytes(self, name: str, data: bytes) -> Path:
        path = self._resolve_path(name)
        await asyncio.to_thread(_write_file, path, data)
        logger.debug("Wrote bytes: %s (%d bytes)", path, len(data))
        return path

    async def cleanup(self) -> None:
        """Remove the entire directory. Raises OSError on failure."""
        if self._path.exists():
            await asyncio.to_thread(shutil.rmtree, self._path)
            logger.info("Cleaned up working directory: %s", self._path)


class WorkspaceManager:
    """Creates uniquely named working directories under a root."""

    def __init__(self, root_path: Optional[Path | str] = None, prefix: str = WORKING_DIR_PREFIX) -> None:
        self._root = Path(root_path) if root_path else None
        self._prefix = prefix

    def create(self) -> FileWorkspace:
        try:
            if self._root is not None:
                self._root.mkdir(parents=True, exist_ok=True)
            path = tempfile.mkdtemp(prefix=self._prefix, dir=self._root)
        except OSError as exc:
            raise WorkingDirectoryError(f"Could not create working directory: {exc}") from exc

        logger.debug("Created working directory %s", path)
        return FileWorkspace(Path(path))
