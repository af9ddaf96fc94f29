# gridsuite/dsa/core/analysis/debug.py
from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional
from uuid import UUID

logger = logging.getLogger(__name__)


class DebugFileStore:
    """Zip snapshots of working directories, one per run."""

    def __init__(self, root_path: Path | str) -> None:
        self._root = Path(root_path)

    async def save(self, result_uuid: UUID, source_dir: Path) -> str:
        self._root.mkdir(parents=True, exist_ok=True)
        archive = await asyncio.to_thread(
            shutil.make_archive,
            str(self._root / str(result_uuid)),
            "zip",
            root_dir=str(source_dir),
        )
        logger.info("Saved debug files of %s to %s", result_uuid, archive)
        return archive

    def resolve(self, location: Optional[str]) -> Optional[Path]:
        if not location:
            return None
        path = Path(location)
        return path if path.is_file() else None
