"""API v1 endpoints package."""

from mindcare.api.v1.endpoints import auth, chats, consent, therapist

__all__ = ["auth", "chats", "consent", "therapist"]
