"""Password hashing and access tokens.

Passwords are hashed with bcrypt over a SHA-256 pre-hash so inputs longer than
bcrypt's 72-byte limit still count in full. Tokens are HS256 JWTs carrying the
user id in ``sub``.
"""

from __future__ import annotations

import hashlib
from datetime import timedelta

import bcrypt
from jose import JWTError, jwt

from .errors import AuthenticationError
from .schemas import utcnow
from .settings import Settings

JWT_ALG = "HS256"


def _pw_prehash(pw: str) -> bytes:
    return hashlib.sha256(pw.encode("utf-8")).digest()


# PUBLIC_INTERFACE
def hash_password(pw: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(_pw_prehash(pw), salt).decode("utf-8")


# PUBLIC_INTERFACE
def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_pw_prehash(pw), pw_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# PUBLIC_INTERFACE
def create_access_token(user_id: int, settings: Settings) -> str:
    exp = utcnow() + timedelta(seconds=settings.jwt_expires_seconds)
    return jwt.encode({"sub": str(user_id), "exp": exp}, settings.jwt_secret, algorithm=JWT_ALG)


# PUBLIC_INTERFACE
def decode_access_token(token: str, settings: Settings) -> int:
    """
    Return the user id carried by ``token``.

    Raises:
        AuthenticationError: for a bad signature, an expired token or a
        malformed subject. The message is the same in every case.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])
        return int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError) as e:
        raise AuthenticationError("Not authorized to access this route") from e
