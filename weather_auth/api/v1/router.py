"""API v1 router aggregator.

URL structure with /api/v1 prefix. All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from weather_auth.api.v1 import auth, user

router = APIRouter()

# =============================================================================
# Authentication (public; see settings.public_path_prefixes)
# =============================================================================

router.include_router(auth.router, prefix="/auth", tags=["auth"])

# =============================================================================
# Signed-in user (protected)
# =============================================================================

router.include_router(user.router, prefix="/user", tags=["user"])
