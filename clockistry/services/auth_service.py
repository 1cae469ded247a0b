from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from clockistry.core.config import get_settings

JWT_ALGORITHM = "HS256"
BCRYPT_ROUNDS = 12


def _get_jwt_secret() -> str:
    secret = get_settings().jwt_secret
    if not secret:
        raise ValueError("JWT_SECRET is required")
    if len(secret) < 32:
        raise ValueError("JWT_SECRET must be at least 32 characters")
    return secret


def create_access_token(user_id: int, ttl: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    if ttl is None:
        ttl = timedelta(hours=get_settings().jwt_exp_hours)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            _get_jwt_secret(),
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        raise ValueError("Invalid or expired token") from exc

    try:
        int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid token claims") from exc

    return payload


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False
