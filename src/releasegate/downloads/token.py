"""Signed, short-lived download tokens.

A token is ``<payload>.<signature>``: the payload is base64url canonical JSON
of ``DownloadTokenPayload`` and the signature is base64url HMAC-SHA256 over
the encoded payload. Tokens are stateless; validity is signature + expiry.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class DownloadTokenPayload:
    """The data signed into a token."""

    customer_id: str
    version: str
    expires_at: int  # epoch millis


def now_millis() -> int:
    return int(time.time() * 1000)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _sign(encoded_payload: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), encoded_payload.encode(), hashlib.sha256).digest()
    return _b64encode(digest)


def create_download_token(payload: DownloadTokenPayload, secret: str) -> str:
    canonical = json.dumps(asdict(payload), sort_keys=True, separators=(",", ":"))
    encoded = _b64encode(canonical.encode("utf-8"))
    return f"{encoded}.{_sign(encoded, secret)}"


def verify_download_token(
    token: str,
    secret: str,
    now_ms: Optional[int] = None,
) -> Optional[DownloadTokenPayload]:
    """Return the payload if the signature matches and it has not expired."""
    parts = token.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    encoded, signature = parts

    expected = _sign(encoded, secret)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        return None

    try:
        data = json.loads(_b64decode(encoded))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None

    customer_id = data.get("customer_id")
    version = data.get("version")
    expires_at = data.get("expires_at")
    if not isinstance(customer_id, str) or not isinstance(version, str):
        return None
    if not isinstance(expires_at, int) or isinstance(expires_at, bool):
        return None

    current = now_ms if now_ms is not None else now_millis()
    if expires_at < current:
        return None
    return DownloadTokenPayload(customer_id=customer_id, version=version, expires_at=expires_at)
