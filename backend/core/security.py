# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Central security module.  All cryptographic primitives and auth guards live
here.  No other module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (passlib pbkdf2_sha256)
2. Support-copy encryption / decryption     (AES-256-GCM)
3. FastAPI dependency guards                (require_auth, require_admin)
4. Client IP extraction
"""

import base64
import secrets
from typing import Optional

from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from auth import sessions
from core.config import settings
from core.exceptions import Forbidden, Unauthorized
from database import get_db
from models.session import UserSession
from models.user import User

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing
# ---------------------------------------------------------------------------
# Every role is stored as a salted pbkdf2 hash.  Rounds come from settings
# (600 000 by default); the round count is embedded in the hash string so
# changing it never invalidates existing hashes.
# ---------------------------------------------------------------------------

_dummy_hash: Optional[str] = None


def hash_password(plain: str) -> str:
    """Hash a plaintext password with PBKDF2-SHA256."""
    return _pbkdf2.using(rounds=settings.password_hash_rounds).hash(plain)


def verify_password(plain: str, stored_hash: str) -> bool:
    """
    Constant-time verification of a plaintext password against a
    pbkdf2_sha256 hash produced by :func:`hash_password`.
    """
    return _pbkdf2.verify(plain, stored_hash)


def burn_password_check(plain: str) -> None:
    """
    Spend the same work as a real verification when there is no user to
    verify against, so an unknown username cannot be told apart by timing.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password(secrets.token_urlsafe(16))
    _pbkdf2.verify(plain, _dummy_hash)


# ---------------------------------------------------------------------------
# 2.  AES-256-GCM – encrypted support copy of non-admin passwords
# ---------------------------------------------------------------------------


def _get_master_key() -> bytes:
    """
    Decode the base64-encoded MASTER_ENCRYPTION_KEY from the environment.
    Called at use-time (not import-time) so the key is never cached at module
    load.  Must be exactly 32 bytes after decoding.
    """
    key = base64.b64decode(settings.master_encryption_key)
    if len(key) != 32:
        raise RuntimeError("MASTER_ENCRYPTION_KEY must decode to exactly 32 bytes")
    return key


def encrypt_value(plaintext: str) -> tuple[str, str]:
    """
    Encrypt *plaintext* with AES-256-GCM.

    Each call generates a fresh 12-byte (96-bit) random nonce – nonce reuse
    with the same key would be catastrophic for GCM, so we never reuse.

    Returns
    -------
    encrypted_b64 : str   base64( ciphertext || 16-byte GCM tag )
    iv_b64        : str   base64( 12-byte nonce )
    """
    key = _get_master_key()
    iv = secrets.token_bytes(12)          # 96-bit nonce per NIST SP 800-38D
    ct_and_tag = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return (
        base64.b64encode(ct_and_tag).decode("ascii"),
        base64.b64encode(iv).decode("ascii"),
    )


def decrypt_value(encrypted_b64: str, iv_b64: str) -> str:
    """
    Decrypt a value produced by :func:`encrypt_value`.

    Raises ``ValueError`` if the GCM authentication tag does not match
    (i.e. the data has been tampered with or the key is wrong).
    """
    key = _get_master_key()
    iv = base64.b64decode(iv_b64)
    ct_and_tag = base64.b64decode(encrypted_b64)
    try:
        plaintext_bytes = AESGCM(key).decrypt(iv, ct_and_tag, None)
    except Exception as exc:
        raise ValueError("Decryption failed – data may be tampered") from exc
    return plaintext_bytes.decode("utf-8")


# ---------------------------------------------------------------------------
# 3.  FastAPI dependency guards
# ---------------------------------------------------------------------------

# The tokenUrl here is only used by the auto-generated OpenAPI docs;
# the bearer value is the opaque session id returned by POST /auth/login.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def require_auth(
    session_id: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> UserSession:
    """
    Dependency: look up the live session behind the bearer token.
    Returns the UserSession row (user_id, username, role).

    Raises 401 if the token is missing, unknown or expired, or if the account
    has since been disabled.
    """
    if not session_id:
        raise Unauthorized()
    current = sessions.resolve(db, session_id)
    if current is None:
        raise Unauthorized("Session expired or invalid")
    user = db.get(User, current.user_id)
    if user is None or not user.is_active:
        raise Unauthorized("Account disabled")
    return current


def require_admin(current: UserSession = Depends(require_auth)) -> UserSession:
    """
    Dependency: wraps :func:`require_auth` and additionally asserts
    ``role == 'admin'``.  Raises 403 otherwise.
    """
    if current.role != "admin":
        raise Forbidden()
    return current


# -- IP Address extraction ----------------------------------------------------


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address from the request.
    X-Forwarded-For is only honoured when the direct peer is one of
    ``settings.trusted_proxies``.
    """
    peer = request.client.host if request.client else None
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and peer in settings.trusted_proxies:
        # X-Forwarded-For can contain multiple IPs, take the first (original client)
        return forwarded.split(",")[0].strip()

    return peer or "unknown"


def get_user_agent(request: Request) -> str:
    return (request.headers.get("User-Agent") or "")[:255]
