import os
import json
import base64
import hmac
import hashlib
import time

# HS256 bearer tokens whose "sub" claim is the guardian owner id

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
TOKEN_TTL_SECONDS = 60 * 60 * 24 * 7   # 7 days

_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _unb64(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _signature(signing_input: str) -> str:
    return _b64(hmac.new(SECRET_KEY.encode(), signing_input.encode(), hashlib.sha256).digest())


def issue_owner_token(owner_id: str, ttl_seconds: int = None) -> str:
    ttl = TOKEN_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    claims = {"sub": owner_id, "exp": int(time.time()) + ttl}

    signing_input = f"{_b64(json.dumps(_HEADER).encode())}.{_b64(json.dumps(claims).encode())}"
    return f"{signing_input}.{_signature(signing_input)}"


def read_owner_id(token: str) -> str:
    """Verify signature and expiry; return the owner id. Raises ValueError."""
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("Malformed token")

    signing_input = f"{parts[0]}.{parts[1]}"
    if not hmac.compare_digest(_signature(signing_input), parts[2]):
        raise ValueError("Invalid signature")

    try:
        claims = json.loads(_unb64(parts[1]))
    except (ValueError, TypeError):
        raise ValueError("Malformed token")

    if not isinstance(claims, dict) or claims.get("exp", 0) < int(time.time()):
        raise ValueError("Token expired")
    if not claims.get("sub"):
        raise ValueError("Token has no owner")

    return str(claims["sub"])
