"""Knowledge-file store for the agent's knowledge base."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from ..core.config import settings

logger = logging.getLogger(__name__)

KNOWLEDGE_HEADER = (
    "\n\n=== KNOWLEDGE BASE ===\n"
    "Use the following knowledge base to answer user questions accurately.\n\n"
)


class KnowledgeStore:
    """Reads knowledge files stored under a root directory."""

    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root or settings.storage_dir).expanduser().resolve()

    def _path_for(self, storage_path: str) -> Path | None:
        path = (self._root / storage_path.lstrip("/")).resolve()
        # Paths escaping the root are refused
        if path != self._root and self._root not in path.parents:
            return None
        return path

    async def read_text(self, storage_path: str) -> str | None:
        """Contents of a stored file, or None when missing or unreadable."""
        path = self._path_for(storage_path)
        if path is None:
            logger.warning("Refusing knowledge file outside storage root: %s", storage_path)
            return None
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to load knowledge file %s: %s", storage_path, e)
            return None

    async def build_context(self, files: list[dict[str, Any]] | None) -> str:
        """
        Render configured knowledge files as a system-prompt block.

        JSON files are pretty-printed. Files without a path or that cannot
        be read are skipped. Returns "" when nothing was loaded.
        """
        if not isinstance(files, list):
            return ""

        sections: list[str] = []
        for file in files:
            if not isinstance(file, dict):
                continue
            storage_path = file.get("path") or file.get("storagePath")
            if not storage_path:
                continue
            text = await self.read_text(str(storage_path))
            if text is None:
                continue
            try:
                text = json.dumps(json.loads(text), indent=2, ensure_ascii=False)
            except ValueError:
                pass
            sections.append(f"--- Knowledge File: {file.get('name') or storage_path} ---\n{text}")

        if not sections:
            return ""
        return KNOWLEDGE_HEADER + "\n\n".join(sections)
