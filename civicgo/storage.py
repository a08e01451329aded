# storage.py
from __future__ import annotations
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import StoreError, StoreErrorKind
from .models import StoreResult
from .utils import canonical_json, cid_for_bytes, is_valid_cid

log = logging.getLogger("civicgo.store")


class ContentStore(ABC):
    """Content-addressed JSON store: ``put`` returns a CID that ``get`` accepts."""

    @abstractmethod
    async def put(self, obj: Dict[str, Any]) -> StoreResult:
        ...

    @abstractmethod
    async def get(self, cid: str) -> StoreResult:
        ...

    async def is_ready(self) -> bool:
        return True

    async def node_info(self) -> Dict[str, Any]:
        return {}

    async def aclose(self) -> None:
        return None

    @staticmethod
    def decode(raw: bytes) -> Any:
        # non-JSON content goes back as text; the verifier decides what it is worth
        text = raw.decode("utf-8", errors="replace")
        try:
            return json.loads(text)
        except ValueError:
            return text

    @staticmethod
    def failed(e: StoreError) -> StoreResult:
        return StoreResult(success=False, error=str(e), error_kind=e.kind.value)


class LocalContentStore(ContentStore):
    """Blocks on local disk, one file per CID, under ``DATA_DIR/blocks``."""

    def __init__(self, data_dir: Optional[str] = None):
        self.data_dir = Path(data_dir or os.getenv("DATA_DIR", "./seeds"))
        self.blocks_dir = self.data_dir / "blocks"
        self.blocks_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, cid: str) -> Path:
        return self.blocks_dir / cid

    async def put(self, obj: Dict[str, Any]) -> StoreResult:
        raw = canonical_json(obj)
        cid = cid_for_bytes(raw)
        fp = self._path(cid)
        try:
            if not fp.exists():
                tmp = fp.with_suffix(".tmp")
                tmp.write_bytes(raw)
                tmp.replace(fp)
        except OSError as e:
            return self.failed(StoreError(f"Failed to write block {cid}: {e}", StoreErrorKind.REJECTED))
        log.debug("stored %d bytes as %s", len(raw), cid)
        return StoreResult(success=True, cid=cid)

    async def get(self, cid: str) -> StoreResult:
        try:
            if not is_valid_cid(cid):
                raise StoreError(f"Invalid CID: {cid!r}", StoreErrorKind.INVALID_CID)
            fp = self._path(cid)
            if not fp.exists():
                raise StoreError(f"Block not found: {cid}", StoreErrorKind.NOT_FOUND)
            raw = fp.read_bytes()
        except StoreError as e:
            return self.failed(e)
        except OSError as e:
            return self.failed(StoreError(f"Failed to read block {cid}: {e}", StoreErrorKind.REJECTED))
        return StoreResult(success=True, cid=cid, data=self.decode(raw))

    async def node_info(self) -> Dict[str, Any]:
        return {"backend": "local", "path": str(self.blocks_dir.resolve()),
                "blocks": sum(1 for _ in self.blocks_dir.iterdir())}
