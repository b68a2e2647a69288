"""API v1 router configuration."""

from fastapi import APIRouter

from mindcare.api.v1.endpoints import auth, chats, consent, therapist

router = APIRouter(prefix="/api/v1")

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(chats.router, prefix="/chats", tags=["chats"])
router.include_router(consent.router, prefix="/consent", tags=["consent"])
router.include_router(therapist.router, prefix="/therapist", tags=["therapist"])
