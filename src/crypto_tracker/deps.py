"""FastAPI dependencies that are not container singletons.

The service sits behind an authenticating gateway that forwards the caller's
user id in the ``X-User-Id`` header; routes that act on a user's data require it.
"""
from typing import Annotated

from fastapi import Depends, Header, HTTPException


def get_current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> str:
    """Resolve the caller's user id, 401 when the header is missing or blank."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id


# Type alias for route injection
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
