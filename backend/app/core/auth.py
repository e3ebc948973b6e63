"""Request identity for FastAPI routes.

Authentication happens upstream: the auth proxy in front of the API verifies the
session and forwards the user id and role as headers. This module only turns
those headers into a typed ``CurrentUser`` and enforces that they are present.
"""

from dataclasses import dataclass

from fastapi import Header, HTTPException, Request


@dataclass(frozen=True)
class CurrentUser:
    """Identity forwarded by the auth proxy."""

    user_id: str
    role: str | None = None


async def require_auth(
    request: Request,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> CurrentUser:
    """FastAPI dependency that reads the forwarded identity headers.

    Usage::

        @router.post("/pjos/{pjo_id}/approve")
        async def approve(user: CurrentUser = Depends(require_auth)):
            ...

    Raises:
        HTTPException(401): X-User-Id header missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    user = CurrentUser(user_id=x_user_id.strip(), role=x_user_role or None)

    # Set user_id on request state for downstream use (error handlers, audit logging)
    request.state.user_id = user.user_id

    return user

