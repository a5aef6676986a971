"""Shared FastAPI dependencies."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Query, Request, status

from ..core.auth import AuthenticationError, Identity, bearer_token
from ..core.service import RealtimeService


def get_realtime(request: Request) -> RealtimeService:
    service = getattr(request.app.state, "realtime", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Realtime service is not running",
        )
    return service


def request_token(request: Request, token: Optional[str] = Query(None)) -> Optional[str]:
    """Bearer credential from the Authorization header, falling back to ``?token=``."""

    return bearer_token(request.headers.get("authorization")) or token


def auth_http_error(exc: AuthenticationError) -> HTTPException:
    if exc.missing:
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


def current_identity(
    token: Optional[str] = Depends(request_token),
    realtime: RealtimeService = Depends(get_realtime),
) -> Identity:
    try:
        return realtime.authenticator.authenticate(token)
    except AuthenticationError as exc:
        raise auth_http_error(exc) from exc


def require_admin(identity: Identity = Depends(current_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return identity
