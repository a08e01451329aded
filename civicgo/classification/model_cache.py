from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Dict

log = logging.getLogger("civicgo.classify")


class ModelCache:
    """Single-flight model loader.

    The first caller for a key starts the load; callers arriving while it runs
    await the same task. Loaded models are kept; a failed load is forgotten so
    the next call tries again.
    """

    def __init__(self, loader: Callable[[str], Any]):
        self._loader = loader
        self._loaded: Dict[str, Any] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    def is_loaded(self, key: str) -> bool:
        return key in self._loaded

    async def get(self, key: str) -> Any:
        if key in self._loaded:
            return self._loaded[key]
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key))
            self._pending[key] = task
        return await asyncio.shield(task)

    async def _load(self, key: str) -> Any:
        log.info("loading model %s", key)
        try:
            model = await asyncio.to_thread(self._loader, key)
        except Exception:
            log.exception("model %s failed to load", key)
            raise
        finally:
            self._pending.pop(key, None)
        self._loaded[key] = model
        log.info("model %s loaded", key)
        return model

    def clear(self) -> None:
        self._loaded.clear()
