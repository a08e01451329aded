from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .errors import StoreError, StoreErrorKind
from .models import StoreResult
from .storage import ContentStore, LocalContentStore
from .utils import canonical_json, is_valid_cid

log = logging.getLogger("civicgo.store")


class IPFSClient(ContentStore):
    """Talks to a Kubo node over its RPC API (``/api/v0``)."""

    def __init__(self, api_url: str = "http://127.0.0.1:5001", timeout: float = 15.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _rpc(self, command: str, **kwargs) -> httpx.Response:
        url = f"{self.api_url}/api/v0/{command}"
        try:
            resp = await self.client.post(url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise StoreError(f"IPFS {command} timeout after {self.timeout}s", StoreErrorKind.TIMEOUT) from e
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to initialize IPFS service: {e}", StoreErrorKind.NETWORK) from e
        if resp.status_code >= 400:
            raise self._rpc_error(command, resp)
        return resp

    @staticmethod
    def _rpc_error(command: str, resp: httpx.Response) -> StoreError:
        try:
            body = resp.json()
        except ValueError:
            body = None
        message = body.get("Message", "") if isinstance(body, dict) else resp.text
        lower = (message or "").lower()
        if "cid" in lower and ("invalid" in lower or "decode" in lower or "parse" in lower):
            return StoreError(f"Invalid CID: {message}", StoreErrorKind.INVALID_CID)
        if "not found" in lower or "no link named" in lower:
            return StoreError(f"Block not found: {message}", StoreErrorKind.NOT_FOUND)
        return StoreError(f"IPFS {command} failed with HTTP {resp.status_code}: {message}", StoreErrorKind.REJECTED)

    async def put(self, obj: Dict[str, Any]) -> StoreResult:
        raw = canonical_json(obj)
        try:
            resp = await self._rpc(
                "add",
                params={"cid-version": "0", "pin": "true"},
                files={"file": ("proof.json", raw, "application/json")},
            )
            cid = resp.json().get("Hash")
        except StoreError as e:
            log.error("IPFS add failed: %s", e)
            return self.failed(e)
        except ValueError as e:
            return self.failed(StoreError(f"IPFS add returned malformed JSON: {e}"))
        if not cid:
            return self.failed(StoreError("IPFS add returned no CID"))
        return StoreResult(success=True, cid=cid)

    async def get(self, cid: str) -> StoreResult:
        try:
            if not is_valid_cid(cid):
                raise StoreError(f"Invalid CID: {cid!r}", StoreErrorKind.INVALID_CID)
            resp = await self._rpc("cat", params={"arg": cid})
        except StoreError as e:
            log.error("IPFS cat %s failed: %s", cid, e)
            return self.failed(e)
        return StoreResult(success=True, cid=cid, data=self.decode(resp.content))

    async def node_info(self) -> Dict[str, Any]:
        resp = await self._rpc("id")
        info = resp.json()
        return {"backend": "ipfs", "id": info.get("ID"), "agent": info.get("AgentVersion")}

    async def is_ready(self) -> bool:
        try:
            await self.node_info()
        except (StoreError, ValueError):
            return False
        return True


def build_store(settings: Settings) -> ContentStore:
    if settings.ipfs_api_url:
        log.info("using IPFS node at %s", settings.ipfs_api_url)
        return IPFSClient(settings.ipfs_api_url, timeout=settings.ipfs_timeout)
    log.info("IPFS_API_URL not set, storing proofs under %s", settings.data_dir)
    return LocalContentStore(str(settings.data_dir))
