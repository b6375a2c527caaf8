import asyncio
import json
import logging
import os
import tempfile
from typing import List, Optional

import aiofiles

from .models import DetectionResult, HistoryItem, RawAPIResponse

logger = logging.getLogger(__name__)


class HistoryStore:
    """Past analyses kept newest-first in a JSON file."""

    def __init__(self, path: str, max_items: Optional[int] = None):
        self.path = path
        self.max_items = max_items
        self._lock = asyncio.Lock()

    async def load(self) -> List[HistoryItem]:
        if not os.path.exists(self.path):
            return []
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
            return [HistoryItem.model_validate(item) for item in json.loads(raw)]
        except FileNotFoundError:
            return []
        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to load history from {self.path}: {e}")
            return []

    async def _save(self, items: List[HistoryItem]):
        """Write to a sibling temp file, then swap it in so readers never see a partial file."""
        payload = json.dumps([item.model_dump(mode="json") for item in items])
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".history-", suffix=".tmp")
        os.close(fd)
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    async def add(self, result: DetectionResult, api_response: Optional[RawAPIResponse] = None,
                  thumbnail_uri: Optional[str] = None) -> HistoryItem:
        item = HistoryItem.from_result(result, api_response, thumbnail_uri)
        async with self._lock:
            items = [item] + await self.load()
            if self.max_items is not None:
                items = items[:self.max_items]
            await self._save(items)
        logger.info(f"Saved analysis {item.id} to history")
        return item

    async def get(self, item_id: str) -> Optional[HistoryItem]:
        for item in await self.load():
            if item.id == item_id:
                return item
        return None

    async def remove(self, item_id: str) -> bool:
        async with self._lock:
            items = await self.load()
            remaining = [item for item in items if item.id != item_id]
            if len(remaining) == len(items):
                return False
            await self._save(remaining)
        return True

    async def clear(self):
        async with self._lock:
            if os.path.exists(self.path):
                os.remove(self.path)
        logger.info("History cleared")
