"""Caller identity supplied by the upstream identity provider."""

from fastapi import Header, HTTPException


def get_caller_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
