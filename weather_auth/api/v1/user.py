"""Profile endpoints for the signed-in user.

Protected by RouteGuardMiddleware; the CurrentUser dependency repeats the
check so the handler never runs without a session.
"""

from fastapi import APIRouter

from weather_auth.api.deps import Auth, CurrentUser
from weather_auth.core.responses import DataResponse
from weather_auth.schemas.auth import UpdateProfileRequest, UserPayload

router = APIRouter()


@router.get("/profile")
async def get_profile(user: CurrentUser) -> DataResponse[UserPayload]:
    """Return the signed-in user's profile."""
    return DataResponse(data=UserPayload.from_user(user))


@router.put("/profile")
async def update_profile(
    body: UpdateProfileRequest,
    user: CurrentUser,
    auth: Auth,
) -> DataResponse[UserPayload]:
    """Update first name, last name and/or email.

    Changing the email resets verification and sends a new verification
    link to the new address.
    """
    updated = await auth.update_profile(
        user.id,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
    )
    return DataResponse(data=UserPayload.from_user(updated))
