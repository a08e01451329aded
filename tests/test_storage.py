import asyncio
import base64
import json

import httpx
import pytest

from civicgo.config import Settings
from civicgo.errors import StoreErrorKind
from civicgo.ipfs_client import IPFSClient, build_store
from civicgo.storage import LocalContentStore
from civicgo.utils import canonical_json, cid_for_bytes, decode_image_payload, is_valid_cid, parse_iso

KNOWN_CID = "QmT78zSuBmuS4z925WZfrqQ1qHaJ56DQaTfyMUF7F8ff5o"


class TestUtils:
    def test_cid_shape_and_determinism(self):
        cid = cid_for_bytes(b"hello")
        assert cid == cid_for_bytes(b"hello")
        assert cid != cid_for_bytes(b"hello!")
        assert cid.startswith("Qm") and len(cid) == 46
        assert is_valid_cid(cid)

    @pytest.mark.parametrize("cid,ok", [
        (KNOWN_CID, True),
        ("bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi", True),
        ("Qm123", False),
        ("QmT78zSuBmuS4z925WZfrqQ1qHaJ56DQaTfyMUF7F8ff50", False),  # '0' is not base58
        ("", False),
        (None, False),
    ])
    def test_is_valid_cid(self, cid, ok):
        assert is_valid_cid(cid) is ok

    def test_canonical_json_key_order(self):
        raw = canonical_json({"city": "Springfield", "timestamp": "t", "report_id": "r"})
        assert raw == b'{"report_id":"r","timestamp":"t","city":"Springfield"}'

    def test_canonical_json_keeps_unicode(self):
        assert "São Paulo" in canonical_json({"city": "São Paulo"}).decode("utf-8")

    def test_decode_image_payload(self):
        raw = b"\x89PNG\r\n"
        encoded = base64.b64encode(raw).decode()
        assert decode_image_payload(raw) == raw
        assert decode_image_payload(encoded) == raw
        assert decode_image_payload(f"data:image/png;base64,{encoded}") == raw
        with pytest.raises(ValueError):
            decode_image_payload("not base64!!")

    @pytest.mark.parametrize("value,ok", [
        ("2024-12-01T10:00:00.000Z", True),
        ("2024-12-01T10:00:00+05:30", True),
        ("2024-12-01", True),
        ("yesterday", False),
        ("", False),
    ])
    def test_parse_iso(self, value, ok):
        assert (parse_iso(value) is not None) is ok


class TestLocalContentStore:
    def test_put_get_roundtrip(self, store):
        put = asyncio.run(store.put({"report_id": "r1", "timestamp": "t", "city": "c"}))
        assert put.success
        got = asyncio.run(store.get(put.cid))
        assert got.success
        assert got.data == {"report_id": "r1", "timestamp": "t", "city": "c"}

    def test_put_is_idempotent(self, store):
        obj = {"report_id": "r1", "timestamp": "t", "city": "c"}
        first = asyncio.run(store.put(obj))
        second = asyncio.run(store.put(dict(reversed(list(obj.items())))))
        assert first.cid == second.cid
        assert len(list(store.blocks_dir.iterdir())) == 1

    def test_cid_matches_stored_bytes(self, store):
        put = asyncio.run(store.put({"report_id": "r1", "timestamp": "t", "city": "c"}))
        assert cid_for_bytes((store.blocks_dir / put.cid).read_bytes()) == put.cid

    def test_invalid_and_missing(self, store):
        bad = asyncio.run(store.get("nope"))
        assert not bad.success and bad.error_kind == StoreErrorKind.INVALID_CID.value
        missing = asyncio.run(store.get(KNOWN_CID))
        assert not missing.success and missing.error_kind == StoreErrorKind.NOT_FOUND.value

    def test_non_json_block_comes_back_as_text(self, store):
        (store.blocks_dir / KNOWN_CID).write_bytes(b"hello world")
        got = asyncio.run(store.get(KNOWN_CID))
        assert got.success and got.data == "hello world"


def ipfs_with(handler):
    return IPFSClient("http://ipfs.test:5001", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestIPFSClient:
    def test_put_posts_canonical_json(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["body"] = request.content
            return httpx.Response(200, json={"Name": "proof.json", "Hash": KNOWN_CID, "Size": "80"})

        result = asyncio.run(ipfs_with(handler).put({"city": "c", "report_id": "r", "timestamp": "t"}))
        assert result.success and result.cid == KNOWN_CID
        assert seen["path"] == "/api/v0/add"
        assert seen["params"]["cid-version"] == "0"
        assert b'{"report_id":"r","timestamp":"t","city":"c"}' in seen["body"]

    def test_get_decodes_json(self):
        def handler(request):
            assert request.url.path == "/api/v0/cat"
            assert request.url.params["arg"] == KNOWN_CID
            return httpx.Response(200, content=json.dumps({"report_id": "r"}).encode())

        result = asyncio.run(ipfs_with(handler).get(KNOWN_CID))
        assert result.success and result.data == {"report_id": "r"}

    def test_invalid_cid_never_reaches_node(self):
        def handler(request):
            raise AssertionError("should not be called")

        result = asyncio.run(ipfs_with(handler).get("bad cid"))
        assert result.error_kind == StoreErrorKind.INVALID_CID.value

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = asyncio.run(ipfs_with(handler).get(KNOWN_CID))
        assert not result.success
        assert result.error_kind == StoreErrorKind.TIMEOUT.value

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = ipfs_with(handler)
        result = asyncio.run(client.put({"report_id": "r"}))
        assert result.error_kind == StoreErrorKind.NETWORK.value
        assert not asyncio.run(client.is_ready())

    @pytest.mark.parametrize("message,kind", [
        ("invalid path \"Qm...\": invalid cid: selected encoding not supported", StoreErrorKind.INVALID_CID),
        ("block was not found locally (offline): ipld: could not find Qm", StoreErrorKind.NOT_FOUND),
        ("something else broke", StoreErrorKind.REJECTED),
    ])
    def test_node_errors_are_classified(self, message, kind):
        def handler(request):
            return httpx.Response(500, json={"Message": message, "Code": 0, "Type": "error"})

        result = asyncio.run(ipfs_with(handler).get(KNOWN_CID))
        assert result.error_kind == kind.value

    @pytest.mark.parametrize("body,kind", [
        (["unexpected"], StoreErrorKind.REJECTED),
        ("invalid cid: bad multibase", StoreErrorKind.INVALID_CID),
    ])
    def test_non_object_error_bodies_are_classified(self, body, kind):
        def handler(request):
            return httpx.Response(500, json=body)

        result = asyncio.run(ipfs_with(handler).get(KNOWN_CID))
        assert not result.success
        assert result.error_kind == kind.value

    def test_node_info(self):
        def handler(request):
            return httpx.Response(200, json={"ID": "12D3Koo", "AgentVersion": "kubo/0.29.0"})

        client = ipfs_with(handler)
        assert asyncio.run(client.is_ready())
        assert asyncio.run(client.node_info())["agent"] == "kubo/0.29.0"


def test_build_store_picks_backend(tmp_path):
    assert isinstance(build_store(Settings(data_dir=tmp_path)), LocalContentStore)
    assert isinstance(build_store(Settings(data_dir=tmp_path, ipfs_api_url="http://127.0.0.1:5001")), IPFSClient)
