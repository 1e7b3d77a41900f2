"""
Shared route dependencies
"""
from fastapi import Request

from scorekeeper.config import settings
from scorekeeper.errors import NotFoundError


def require_feature(flag_name: str):
    """Route is reported as missing while the feature flag is off."""
    async def dependency(request: Request) -> None:
        if not settings.is_enabled(flag_name):
            raise NotFoundError("Route", request.url.path)
    return dependency
