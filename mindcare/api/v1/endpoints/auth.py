"""Authentication API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from mindcare.api.v1.dependencies import CurrentUser
from mindcare.core.config import get_settings
from mindcare.core.database import DbSession
from mindcare.models.domain.user import (
    LoginRequest,
    LoginResponse,
    PatientPrincipal,
    UserRead,
    UserRole,
)
from mindcare.services.auth_service import AuthService

router = APIRouter()


def get_auth_service(session: DbSession) -> AuthService:
    """Get auth service instance."""
    return AuthService(session)


AuthSvc = Annotated[AuthService, Depends(get_auth_service)]


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    response: Response,
    service: AuthSvc,
) -> LoginResponse:
    """Log in as a patient or therapist.

    The session token is returned in the body and also set as an
    http-only cookie.
    """
    settings = get_settings()
    result = await service.login(credentials)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=result.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return result


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """Clear the session cookie."""
    response.delete_cookie(key=get_settings().auth_cookie_name)


@router.get("/me", response_model=UserRead)
async def me(principal: CurrentUser) -> UserRead:
    """Return the authenticated caller."""
    role = (
        UserRole.PATIENT if isinstance(principal, PatientPrincipal) else UserRole.THERAPIST
    )
    return UserRead(id=principal.id, name=principal.name, role=role)
