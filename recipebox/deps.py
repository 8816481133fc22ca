"""FastAPI dependencies for recipebox API.

Provides:
- Authenticated user id (set by the upstream auth provider)
- Object store
"""

from typing import Optional

from fastapi import Header, HTTPException

from .storage.s3_compat import get_store as _get_store


def get_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Resolve the caller's opaque user id.

    The auth provider in front of the API sets X-User-Id. A missing or blank
    header means the request is not authenticated.

    Raises:
        HTTPException 401 if no identity is present
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id.strip()


def get_store():
    return _get_store()
