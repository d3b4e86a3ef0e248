import hashlib, json
from typing import Optional, Tuple
from itsdangerous import URLSafeSerializer
from .config import SECRET_KEY

LOOPBACK_ADDRESSES = {"::1", "127.0.0.1", "::ffff:127.0.0.1", "0.0.0.0"}

def sha256_bytes(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()

def canonical_json(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)

def make_token(payload: dict) -> str:
    s = URLSafeSerializer(SECRET_KEY, salt="signing")
    return s.dumps(payload)

def read_token(token: str) -> dict:
    s = URLSafeSerializer(SECRET_KEY, salt="signing")
    return s.loads(token)

def normalize_ip(raw: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Return (ip, reason_unavailable) from a header such as X-Forwarded-For."""
    if not raw:
        return None, "unavailable"
    cleaned = raw.split(",")[0].strip()
    if not cleaned:
        return None, "unavailable"
    if cleaned in LOOPBACK_ADDRESSES:
        return None, "loopback"
    return cleaned, None

def client_context(request) -> Tuple[Optional[str], Optional[str]]:
    forwarded = request.headers.get("x-forwarded-for")
    if not forwarded and request.client:
        forwarded = request.client.host
    ip, _ = normalize_ip(forwarded)
    ua = (request.headers.get("user-agent") or "")[:500] or None
    return ip, ua
