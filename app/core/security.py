# app/core/security.py
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
INVITE_TOKEN_EXPIRE_HOURS = int(os.getenv("INVITE_TOKEN_EXPIRE_HOURS", "24"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# token kinds carried in the "typ" claim
TOKEN_SESSION = "session"
TOKEN_INVITE = "invite"


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # malformed hash in DB
        return False


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    token_type: str = TOKEN_SESSION,
) -> str:
    to_encode = dict(data)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "typ": token_type})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_invite_access_token(user_id: str, email: str) -> str:
    """Short-lived token embedded in the invitation e-mail link."""
    return create_access_token(
        {"sub": user_id, "email": email},
        expires_delta=timedelta(hours=INVITE_TOKEN_EXPIRE_HOURS),
        token_type=TOKEN_INVITE,
    )


def decode_token(token: str, expected_type: str = TOKEN_SESSION) -> Optional[Dict[str, Any]]:
    """Return claims for a valid, unexpired token of the given type, else None."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("typ") != expected_type or not payload.get("sub"):
        return None
    return payload
