"""Request dependencies: the calling user and their pipeline context."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from src.context import PipelineContext


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """User id forwarded by the session layer in front of this service."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def get_context(request: Request, user_id: str = Depends(current_user)) -> PipelineContext:
    state = request.app.state
    extra = {}
    if state.gateway_factory is not None:
        extra["gateway_factory"] = state.gateway_factory
    if state.blob_store_factory is not None:
        extra["blob_store_factory"] = state.blob_store_factory
    return PipelineContext.for_user(user_id, state.db, state.config, **extra)
