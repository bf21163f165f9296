"""
Dependency wiring for the FastAPI app.

The counter service and settings live on ``app.state`` (set up by
``create_app``) so each app instance owns its counters.
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request

from hitcounter.config import Settings
from hitcounter.counter import CounterService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_counter_service(request: Request) -> CounterService:
    return request.app.state.counter_service


def token_matches(secret: Optional[str], *candidates: Optional[str]) -> bool:
    """True when no secret is configured or any candidate equals it."""
    if not secret:
        return True
    expected = secret.encode("utf-8")
    return any(
        c and hmac.compare_digest(c.encode("utf-8"), expected) for c in candidates
    )


def require_token(
    x_auth_token: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """
    Check SECRET_TOKEN against the X-Auth-Token header, then ?token=.
    """
    if not token_matches(settings.secret_token, x_auth_token, token):
        raise HTTPException(status_code=401, detail="unauthorized")


def require_read_token(
    x_auth_token: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    # Reads stay public unless PROTECT_READS is set.
    if settings.protect_reads:
        require_token(x_auth_token, token, settings)
