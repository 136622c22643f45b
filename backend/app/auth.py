"""
NoteMate Backend — Admin Access Gate
=====================================

What:  FastAPI dependency that admits requests carrying a known admin key.
Why:   The analytics routes expose traffic data (IPs, user agents); they are
       for the static admin list only. There is no login flow or account model.
How:   Reads the X-Admin-Key header and compares it in constant time against
       settings.admin_api_keys_list.

Usage:
    @router.get("/analytics", dependencies=[Depends(require_admin)])
"""

import secrets
from typing import Optional

from fastapi import Security
from fastapi.security.api_key import APIKeyHeader

from app.config import settings
from app.exceptions import AuthenticationError

ADMIN_KEY_HEADER = "X-Admin-Key"

admin_key_header = APIKeyHeader(name=ADMIN_KEY_HEADER, auto_error=False)


def require_admin(api_key: Optional[str] = Security(admin_key_header)) -> str:
    """
    Raises:
        AuthenticationError: header missing, or key not on the admin list.
            An empty admin list rejects everyone.
    """
    if not api_key:
        raise AuthenticationError(message="Access token required")

    # Bytes: compare_digest rejects non-ASCII str, and headers decode as latin-1
    presented = api_key.encode("utf-8")
    if not any(
        secrets.compare_digest(presented, key.encode("utf-8")) for key in settings.admin_api_keys_list
    ):
        raise AuthenticationError(message="Invalid or expired token")

    return api_key
