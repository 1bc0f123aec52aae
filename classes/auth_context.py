# classes/auth_context.py
import asyncio
from datetime import datetime, timedelta, timezone

import jwt

from classes import app_config
from classes.app_config import logger
from classes.chat_store import ChatStore
from classes.request_gate import RequestGate

JWT_ALGORITHM = "HS256"


def create_session_token(open_id: str, name: str = "", expires_in_seconds: int = 365 * 24 * 3600) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "openId": open_id,
        "name": name,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in_seconds),
    }
    return jwt.encode(claims, app_config.JWT_SECRET, algorithm=JWT_ALGORITHM)


def read_session_open_id(token: str | None) -> str | None:
    """openId claim of a valid session token, None for anything else."""
    if not token:
        return None
    try:
        claims = jwt.decode(token, app_config.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug(f"[Auth] rejected session token: {type(e).__name__}")
        return None

    open_id = claims.get("openId")
    if not isinstance(open_id, str) or not open_id.strip():
        return None
    return open_id


async def resolve_user(token: str | None, gate: RequestGate, store: ChatStore) -> dict | None:
    """Session cookie -> user row, through the identity cache."""
    open_id = read_session_open_id(token)
    if open_id is None:
        return None

    async def _load(oid: str) -> dict | None:
        return await asyncio.to_thread(store.get_user_by_open_id, oid)

    return await gate.lookup_user(open_id, _load)
