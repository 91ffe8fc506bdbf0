from __future__ import annotations

from fastapi import HTTPException
from starlette.requests import Request

from toolhub.config import get_settings


def require_admin(request: Request) -> str:
    """
    Static credential check for catalog writes.

    The caller's role comes from a plain header (x-user-role by default);
    there are no user accounts behind it.
    """
    settings = get_settings()
    role = (request.headers.get(settings.ROLE_HEADER) or "").strip()
    if role != settings.ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin role required")
    return role
