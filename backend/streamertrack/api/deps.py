"""Request dependencies: session table, caller scope, backup scheduler, rate limiter.

The session table and backup scheduler live on ``app.state`` (created in the
app lifespan) and reach handlers only through these dependencies.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.engine import Engine

from streamertrack.modules.backup import BackupScheduler
from streamertrack.utils.scope import CallerScope
from streamertrack.utils.sessions import SessionStore

limiter = Limiter(key_func=get_remote_address)


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_backup_scheduler(request: Request) -> Optional[BackupScheduler]:
    return getattr(request.app.state, "backup_scheduler", None)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:]


def get_caller_scope(
    authorization: Optional[str] = Header(None),
    sessions: SessionStore = Depends(get_session_store),
) -> CallerScope:
    token = bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    scope = sessions.lookup(token)
    if scope is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return scope


def get_engine() -> Engine:
    from streamertrack.database import engine
    return engine
