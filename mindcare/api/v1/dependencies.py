"""FastAPI dependencies for API v1."""

from typing import Annotated

from fastapi import Depends, Header, Request

from mindcare.core.config import get_settings
from mindcare.core.database import DbSession
from mindcare.core.exceptions import ForbiddenError, UnauthorizedError
from mindcare.core.logging import bind_actor
from mindcare.models.domain.user import PatientPrincipal, Principal, TherapistPrincipal
from mindcare.services.auth_service import AuthService
from mindcare.services.llm_client import LLMClient, get_llm_client


def extract_token(request: Request, authorization: str | None) -> str | None:
    """Session token from the Bearer header, falling back to the cookie."""
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    return request.cookies.get(get_settings().auth_cookie_name)


async def get_principal(
    request: Request,
    session: DbSession,
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Authenticate the caller.

    Args:
        request: Incoming request (cookie source)
        session: Database session
        authorization: Optional ``Authorization: Bearer`` header

    Returns:
        The caller as a patient or therapist principal

    Raises:
        UnauthorizedError: If no valid session token is presented
    """
    token = extract_token(request, authorization)
    if not token:
        raise UnauthorizedError()

    principal = await AuthService(session).authenticate(token)
    role = "patient" if isinstance(principal, PatientPrincipal) else "therapist"
    bind_actor(principal.id, role)
    return principal


async def require_patient(
    principal: Annotated[Principal, Depends(get_principal)],
) -> PatientPrincipal:
    """Allow only patients."""
    match principal:
        case PatientPrincipal():
            return principal
        case _:
            raise ForbiddenError()


async def require_therapist(
    principal: Annotated[Principal, Depends(get_principal)],
) -> TherapistPrincipal:
    """Allow only therapists."""
    match principal:
        case TherapistPrincipal():
            return principal
        case _:
            raise ForbiddenError()


# Type aliases for dependency injection
CurrentUser = Annotated[Principal, Depends(get_principal)]
Patient = Annotated[PatientPrincipal, Depends(require_patient)]
Therapist = Annotated[TherapistPrincipal, Depends(require_therapist)]
LLM = Annotated[LLMClient, Depends(get_llm_client)]
