"""Security helpers for hashing, tokens and shared-secret checks."""

import base64
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import secrets

from jose import JWTError, jwt
from passlib.context import CryptContext

from dentalstock.config import get_settings
from dentalstock.domain.entities import LINK_CODE_PREFIX

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__rounds=310_000,
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ---- JWT ----
settings = get_settings()


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    return jwt.encode({**data, "exp": expire}, settings.secret_key, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


# ---- Shared secrets ----


def secrets_match(provided: str | None, expected: str) -> bool:
    """Compare ``provided`` against ``expected`` in constant time."""

    if provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def compute_line_signature(channel_secret: str, body: bytes) -> str:
    """Return the base64 HMAC-SHA256 digest LINE sends in ``x-line-signature``."""

    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_line_signature(channel_secret: str, body: bytes, signature: str | None) -> bool:
    """Check a webhook ``signature`` against the raw request ``body``."""

    if not signature:
        return False
    expected = compute_line_signature(channel_secret, body)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("ascii", "ignore"))


def generate_link_code() -> str:
    """Generate a ``LINK-`` code followed by six uppercase hex characters."""

    return f"{LINK_CODE_PREFIX}{secrets.token_hex(3).upper()}"
