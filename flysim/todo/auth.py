"""Password hashing and the signed-in user kept in the session."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
from collections.abc import MutableMapping
from typing import Any

from flysim.todo.errors import InternalError, UnauthorizedError
from flysim.todo.models import SessionUser, User

SESSION_USER_KEY = "user"

_SCHEME = "scrypt"
_LOG_N = 14
_BLOCK_SIZE = 8
_PARALLELISM = 1
_SALT_BYTES = 16
_KEY_BYTES = 32
_MAX_LOG_N = 20


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    if not text:
        raise ValueError("empty field")
    return base64.b64decode(text + "=" * (-len(text) % 4), validate=True)


def _derive(password: str, salt: bytes, log_n: int, r: int, p: int, length: int) -> bytes:
    n = 1 << log_n
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=n,
        r=r,
        p=p,
        maxmem=max(64 * 1024 * 1024, 256 * n * r),
        dklen=length,
    )


def hash_password(password: str) -> str:
    """Hash a password with a fresh random salt into a self-describing string."""
    salt = secrets.token_bytes(_SALT_BYTES)
    try:
        key = _derive(password, salt, _LOG_N, _BLOCK_SIZE, _PARALLELISM, _KEY_BYTES)
    except (ValueError, MemoryError) as exc:
        raise InternalError(f"Failed to hash password: {exc}") from exc
    params = f"ln={_LOG_N},r={_BLOCK_SIZE},p={_PARALLELISM}"
    return f"${_SCHEME}${params}${_b64encode(salt)}${_b64encode(key)}"


def _parse_hash(password_hash: str) -> tuple[int, int, int, bytes, bytes]:
    parts = password_hash.split("$")
    if len(parts) != 5 or parts[0] or parts[1] != _SCHEME:
        raise ValueError("unrecognised hash format")
    params = {}
    for field in parts[2].split(","):
        name, sep, value = field.partition("=")
        if not sep or not value.isdigit():
            raise ValueError(f"bad parameter {field!r}")
        params[name] = int(value)
    if set(params) != {"ln", "r", "p"}:
        raise ValueError("missing or unknown parameters")
    log_n, r, p = params["ln"], params["r"], params["p"]
    if not 1 <= log_n <= _MAX_LOG_N or r < 1 or p < 1:
        raise ValueError("parameters out of range")
    return log_n, r, p, _b64decode(parts[3]), _b64decode(parts[4])


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash; a malformed hash is an InternalError."""
    try:
        log_n, r, p, salt, expected = _parse_hash(password_hash)
    except (ValueError, binascii.Error) as exc:
        raise InternalError(f"Invalid password hash: {exc}") from exc
    try:
        actual = _derive(password, salt, log_n, r, p, len(expected))
    except (ValueError, MemoryError):
        return False
    return hmac.compare_digest(actual, expected)


def set_session_user(session: MutableMapping[str, Any], user: User | SessionUser) -> None:
    """Remember ``user`` as the signed-in user."""
    session[SESSION_USER_KEY] = {"id": user.id, "email": user.email}


def get_session_user(session: MutableMapping[str, Any]) -> SessionUser | None:
    """Return the signed-in user, or None when nobody is signed in."""
    stored = session.get(SESSION_USER_KEY)
    if stored is None:
        return None
    try:
        user_id, email = stored["id"], stored["email"]
    except (TypeError, KeyError) as exc:
        raise InternalError(f"Failed to get session: {exc!r}") from exc
    if not isinstance(user_id, str) or not isinstance(email, str):
        raise InternalError("Failed to get session: malformed user entry")
    return SessionUser(id=user_id, email=email)


def clear_session(session: MutableMapping[str, Any]) -> None:
    """Forget everything in the session."""
    session.clear()


def require_user(session: MutableMapping[str, Any]) -> SessionUser:
    """Return the signed-in user or raise UnauthorizedError."""
    user = get_session_user(session)
    if user is None:
        raise UnauthorizedError()
    return user