"""Service for login, session resolution and therapist assignment."""

import hmac
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.core.config import Settings, get_settings
from mindcare.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from mindcare.core.security import (
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from mindcare.models.db.user import User, UserRole
from mindcare.models.domain.user import (
    LoginRequest,
    LoginResponse,
    PatientPrincipal,
    Principal,
    TherapistPrincipal,
    UserRead,
)
from mindcare.models.domain.user import UserRole as DomainUserRole
from mindcare.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)


def to_principal(user: User) -> Principal:
    """Build the typed principal for a stored user."""
    match user.role:
        case UserRole.PATIENT:
            return PatientPrincipal(id=user.id, name=user.name)
        case UserRole.THERAPIST:
            return TherapistPrincipal(id=user.id, name=user.name)
    raise UnauthorizedError()


class AuthService:
    """Service for identities and the patient/therapist assignment."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.repo = UserRepository(session)

    async def login(self, credentials: LoginRequest) -> LoginResponse:
        """Verify credentials for a role and issue a session token.

        Raises:
            UnauthorizedError: If no user of that name and role exists or the
                password does not match
        """
        role = UserRole(credentials.role.value)
        if self._is_admin(credentials.username, credentials.password):
            user = await self._bootstrap_admin(role)
        else:
            found = await self.repo.get_by_name_and_role(credentials.username, role)
            if found is None or not verify_password(credentials.password, found.password_hash):
                logger.info("Login rejected", extra={"role": role.value})
                raise UnauthorizedError("Invalid credentials")
            user = found

        token = create_access_token(
            user_id=user.id,
            role=user.role.value,
            name=user.name,
            settings=self.settings,
        )
        logger.info("Login succeeded", extra={"user_id": str(user.id), "role": role.value})
        return LoginResponse(user=UserRead.model_validate(user), access_token=token)

    async def authenticate(self, token: str) -> Principal:
        """Resolve a session token to the current principal.

        The user is re-read from the store so deleted users and changed roles
        take effect immediately.

        Raises:
            UnauthorizedError: If the token is invalid or stale
        """
        try:
            claims = decode_access_token(token, self.settings)
        except TokenError as e:
            raise UnauthorizedError() from e

        user = await self.repo.get_by_id(claims["sub"])
        if user is None or user.role.value != claims["role"]:
            raise UnauthorizedError()
        return to_principal(user)

    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: DomainUserRole,
    ) -> User:
        """Create a patient or therapist with a hashed password."""
        user = await self.repo.create(
            User(
                name=name,
                email=email,
                role=UserRole(role.value),
                password_hash=hash_password(password),
            )
        )
        logger.info("User created", extra={"user_id": str(user.id), "role": role.value})
        return user

    async def assign_patient(
        self,
        patient_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> None:
        """Make a therapist responsible for a patient. Idempotent.

        Raises:
            NotFoundError: If either user does not exist
            ValidationError: If the roles are not patient and therapist
        """
        patient = await self.repo.get_by_id(patient_id)
        therapist = await self.repo.get_by_id(therapist_id)
        if patient is None or therapist is None:
            raise NotFoundError(resource="User")
        if patient.role != UserRole.PATIENT or therapist.role != UserRole.THERAPIST:
            raise ValidationError("Assignment requires a patient and a therapist")

        await self.repo.set_therapist(patient_id, therapist_id)
        logger.info(
            "Patient assigned",
            extra={"patient_id": str(patient_id), "therapist_id": str(therapist_id)},
        )

    def _is_admin(self, username: str, password: str) -> bool:
        if not self.settings.admin_bootstrap_enabled:
            return False
        return hmac.compare_digest(
            username.encode(), str(self.settings.admin_username).encode()
        ) and hmac.compare_digest(
            password.encode(), str(self.settings.admin_password).encode()
        )

    async def _bootstrap_admin(self, role: UserRole) -> User:
        """Find or create the admin account for a role.

        A new admin patient is assigned to the admin therapist if one
        exists; a new admin therapist adopts every unassigned admin patient.
        """
        name = str(self.settings.admin_username)
        existing = await self.repo.get_by_name_and_role(name, role)
        if existing is not None:
            return existing

        therapist_id = None
        if role == UserRole.PATIENT:
            admin_therapist = await self.repo.get_by_name_and_role(name, UserRole.THERAPIST)
            if admin_therapist is not None:
                therapist_id = admin_therapist.id

        user = await self.repo.create(
            User(
                name=name,
                email=f"{name}_{role.value}@admin.local",
                role=role,
                password_hash=hash_password(str(self.settings.admin_password)),
                therapist_id=therapist_id,
            )
        )
        if role == UserRole.THERAPIST:
            adopted = await self.repo.assign_unassigned_by_name(name, user.id)
            logger.info("Admin therapist adopted patients", extra={"count": adopted})
        logger.info("Admin account created", extra={"role": role.value})
        return user
