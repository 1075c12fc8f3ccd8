from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import HTTPException

from .. import config

ALGORITHM = "HS256"


def create_access_token(
    user_id: str,
    org_roles: dict[str, str] | None = None,
    is_system_admin: bool = False,
    ttl_minutes: int | None = None,
) -> str:
    if not config.JWT_SECRET:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=ttl_minutes or config.ACCESS_TOKEN_TTL_MINUTES)
    payload: dict[str, Any] = {
        "sub": user_id,
        "org_roles": dict(org_roles or {}),
        "is_system_admin": bool(is_system_admin),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    if not config.JWT_SECRET:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=401, detail="Token expired") from exc
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=401, detail="Invalid token")
    return payload
