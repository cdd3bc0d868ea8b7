import hmac
from typing import Optional

from fastapi import Depends, Header

from docunlock.config import Settings, get_settings
from docunlock.exceptions import AccessDenied


def _key_matches(settings: Settings, provided: Optional[str]) -> bool:
    if not settings.admin_api_key:
        # open only outside production
        return settings.app_env != "production"
    return provided is not None and hmac.compare_digest(provided, settings.admin_api_key)


def require_admin(
    x_admin_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
):
    if not _key_matches(settings, x_admin_key):
        raise AccessDenied("Admin access required")
    return True


def is_admin_request(
    admin: Optional[str] = None,
    x_admin_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> bool:
    """
    Content bypass for management UIs. Only ``admin=true`` asks for it, and
    when ADMIN_API_KEY is set the X-Admin-Key header must match as well.
    In production an unset key closes the bypass.
    """
    if admin != "true":
        return False
    if not _key_matches(settings, x_admin_key):
        raise AccessDenied("Admin access required")
    return True
