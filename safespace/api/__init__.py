"""
API routers for Safespace.
"""

from safespace.api.requests import router as requests_router
from safespace.api.specialists import router as specialists_router
from safespace.api.profile import router as profile_router

__all__ = [
    "requests_router",
    "specialists_router",
    "profile_router",
]
