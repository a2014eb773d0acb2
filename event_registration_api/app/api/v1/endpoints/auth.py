"""
Authentication endpoints for API v1.

Sign-up for organizers and visitors and e-mail/password login.  Both
return a bearer token that the other endpoints expect in the
``Authorization`` header.
"""

from fastapi import APIRouter, HTTPException, status

from event_registration_api.app.core.security import create_access_token
from event_registration_api.app.schemas.user import TokenResponse, UserCreate, UserLogin
from event_registration_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate) -> TokenResponse:
    """Create an organizer or visitor account and log it in.

    Administrator accounts cannot be created here.  A second account
    with the same e-mail address is rejected with 409.
    """
    created = await UserService.create_user(user)
    token = create_access_token({"sub": created.email})
    return TokenResponse(access_token=token, user=created)


@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin) -> TokenResponse:
    """Exchange e-mail and password for an access token."""
    user = await UserService.authenticate(credentials.email, credentials.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token({"sub": user.email})
    return TokenResponse(access_token=token, user=user)
