"""
Authentication endpoints for API v1.

``/auth/login`` exchanges a username and password for a bearer token
tied to a server-side session; ``/auth/logout`` ends that session.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from service_center_api.app.core.security import get_current_user
from service_center_api.app.schemas.user import CurrentUser, LoginRequest, TokenResponse
from service_center_api.app.services.auth_service import AuthService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest) -> TokenResponse:
    """Authenticate and return an access token.

    Unknown usernames, wrong passwords and disabled accounts all
    produce the same 401 response.
    """
    result = await AuthService.login(credentials.username, credentials.password)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TokenResponse(**result)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(current_user: dict = Depends(get_current_user)) -> None:
    """Revoke the session behind the presented token."""
    await AuthService.logout(current_user.get("sid"))


@router.get("/me", response_model=CurrentUser)
async def me(current_user: dict = Depends(get_current_user)) -> CurrentUser:
    return CurrentUser(username=current_user["sub"], **current_user)
