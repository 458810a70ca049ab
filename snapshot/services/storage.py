"""Snapshot persistence.

One JSON document per file under a data directory. Reads never fail a run:
anything that cannot be turned back into a Snapshot counts as "no previous
snapshot". Writes go through a temp file and a rename, and their failures
propagate.
"""
import asyncio
import json
import aiofiles
from pathlib import Path
from typing import Optional
import logging

from pydantic import ValidationError

from snapshot.models import Snapshot

logger = logging.getLogger(__name__)


class StorageService:
    """Reads and writes snapshot documents under one data directory."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self._lock = asyncio.Lock()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        """Resolve a bare filename inside base_dir; raises ValueError otherwise."""
        path = self.base_dir / filename
        if (
            not filename
            or Path(filename).name != filename
            or not path.resolve().is_relative_to(self.base_dir.resolve())
        ):
            raise ValueError(f"Invalid snapshot filename: {filename!r}")
        return path

    async def _read_document(self, path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, mode='r', encoding='utf-8') as f:
                document = json.loads(await f.read())
        except (OSError, ValueError) as e:
            # ValueError covers bad JSON and undecodable bytes
            logger.warning(f"Unreadable snapshot {path.name}: {type(e).__name__}: {e}")
            return None
        if not isinstance(document, dict) or not document:
            logger.warning(f"Snapshot {path.name} is not a JSON object, ignoring")
            return None
        return document

    async def load_snapshot(self, filename: str) -> Optional[Snapshot]:
        """Previous run's snapshot, or None when there is no usable one."""
        path = self.path_for(filename)
        async with self._lock:
            document = await self._read_document(path)
        if document is None:
            return None
        try:
            return Snapshot.model_validate(document)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid snapshot {filename}: {e.error_count()} errors")
            return None

    async def save_snapshot(self, filename: str, snapshot: Snapshot) -> None:
        """Write the snapshot atomically (temp file + rename)."""
        path = self.path_for(filename)
        temp_path = path.with_suffix('.tmp')
        body = json.dumps(snapshot.to_document(), indent=2)
        async with self._lock:
            try:
                async with aiofiles.open(temp_path, mode='w', encoding='utf-8') as f:
                    await f.write(body)
                temp_path.replace(path)
            except OSError as e:
                logger.error(f"Failed to save snapshot {path.name}: {e}")
                if temp_path.exists():
                    temp_path.unlink()
                raise
