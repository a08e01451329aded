import base64
import binascii
import hashlib
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
# sha2-256 multihash header: function code 0x12, digest length 0x20
SHA256_MULTIHASH_PREFIX = b"\x12\x20"

CIDV0_RE = re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}$")
CIDV1_RE = re.compile(r"^b[a-z2-7]{58,}$")
DATA_URL_RE = re.compile(r"^data:[\w/+.-]+;base64,")

PROOF_FIELDS = ("report_id", "timestamp", "city")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def b58encode(data: bytes) -> str:
    num = int.from_bytes(data, "big")
    out = ""
    while num:
        num, rem = divmod(num, 58)
        out = B58_ALPHABET[rem] + out
    pad = len(data) - len(data.lstrip(b"\x00"))
    return B58_ALPHABET[0] * pad + out


def cid_for_bytes(data: bytes) -> str:
    """CIDv0 form (base58btc sha2-256 multihash) of the exact bytes given."""
    digest = hashlib.sha256(data).digest()
    return b58encode(SHA256_MULTIHASH_PREFIX + digest)


def is_valid_cid(cid: str) -> bool:
    if not isinstance(cid, str):
        return False
    return bool(CIDV0_RE.match(cid) or CIDV1_RE.match(cid))


def canonical_json(obj: Dict[str, Any]) -> bytes:
    # proof fields first in their fixed order, anything else sorted after them
    ordered = {k: obj[k] for k in PROOF_FIELDS if k in obj}
    for k in sorted(obj):
        if k not in ordered:
            ordered[k] = obj[k]
    return json.dumps(ordered, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def decode_image_payload(payload: Union[str, bytes]) -> bytes:
    if isinstance(payload, bytes):
        return payload
    text = DATA_URL_RE.sub("", payload.strip())
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"image payload is not valid base64: {e}") from e


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."
