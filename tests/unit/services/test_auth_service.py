"""Tests for AuthService."""

import uuid
from collections.abc import Iterator
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mindcare.core.config import Settings, get_settings
from mindcare.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from mindcare.core.security import create_access_token, decode_access_token, hash_password
from mindcare.models.db.user import User, UserRole
from mindcare.models.domain.user import LoginRequest, PatientPrincipal, TherapistPrincipal
from mindcare.models.domain.user import UserRole as DomainUserRole
from mindcare.services.auth_service import AuthService

PASSWORD_HASH = hash_password("correct horse")


def make_user(
    name: str = "alice",
    role: UserRole = UserRole.PATIENT,
    therapist_id: uuid.UUID | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid.uuid4(),
        name=name,
        email=f"{name}@example.com",
        role=role,
        password_hash=PASSWORD_HASH,
        therapist_id=therapist_id,
    )


@pytest.fixture
def settings() -> Settings:
    return get_settings().model_copy(update={"admin_username": None, "admin_password": None})


@pytest.fixture
def admin_settings() -> Settings:
    return get_settings().model_copy(
        update={"admin_username": "admin", "admin_password": "bootstrap-pw"}
    )


@pytest.fixture
def repo() -> Iterator[MagicMock]:
    with patch("mindcare.services.auth_service.UserRepository") as MockRepo:
        repo = MockRepo.return_value

        async def create(user: User) -> User:
            user.id = uuid.uuid4()
            return user

        repo.create = AsyncMock(side_effect=create)
        repo.set_therapist = AsyncMock()
        repo.assign_unassigned_by_name = AsyncMock(return_value=0)
        yield repo


class TestLogin:
    """Tests for login."""

    async def test_valid_credentials(self, repo: MagicMock, settings: Settings) -> None:
        """Test a matching user gets a token carrying their id and role."""
        user = make_user()
        repo.get_by_name_and_role = AsyncMock(return_value=user)
        service = AuthService(AsyncMock(), settings)

        response = await service.login(
            LoginRequest(username="alice", password="correct horse", role=DomainUserRole.PATIENT)
        )

        assert response.user.id == user.id
        assert response.user.role == DomainUserRole.PATIENT
        claims = decode_access_token(response.access_token, settings)
        assert claims["sub"] == user.id
        assert claims["role"] == "patient"
        repo.get_by_name_and_role.assert_awaited_once_with("alice", UserRole.PATIENT)

    async def test_wrong_password(self, repo: MagicMock, settings: Settings) -> None:
        """Test a wrong password is rejected."""
        repo.get_by_name_and_role = AsyncMock(return_value=make_user())
        service = AuthService(AsyncMock(), settings)

        with pytest.raises(UnauthorizedError) as exc_info:
            await service.login(
                LoginRequest(username="alice", password="nope", role=DomainUserRole.PATIENT)
            )

        assert exc_info.value.detail == "Invalid credentials"

    async def test_unknown_user_for_role(self, repo: MagicMock, settings: Settings) -> None:
        """Test a name registered only under another role is rejected."""
        repo.get_by_name_and_role = AsyncMock(return_value=None)
        service = AuthService(AsyncMock(), settings)

        with pytest.raises(UnauthorizedError):
            await service.login(
                LoginRequest(
                    username="alice",
                    password="correct horse",
                    role=DomainUserRole.THERAPIST,
                )
            )

    async def test_admin_disabled_without_settings(
        self,
        repo: MagicMock,
        settings: Settings,
    ) -> None:
        """Test admin credentials are ordinary credentials when unset."""
        repo.get_by_name_and_role = AsyncMock(return_value=None)
        service = AuthService(AsyncMock(), settings)

        with pytest.raises(UnauthorizedError):
            await service.login(
                LoginRequest(username="admin", password="x", role=DomainUserRole.PATIENT)
            )
        repo.create.assert_not_called()


class TestAdminBootstrap:
    """Tests for the bootstrap admin login."""

    async def test_creates_admin_patient_assigned_to_admin_therapist(
        self,
        repo: MagicMock,
        admin_settings: Settings,
    ) -> None:
        """Test a new admin patient is linked to an existing admin therapist."""
        admin_therapist = make_user("admin", UserRole.THERAPIST)
        repo.get_by_name_and_role = AsyncMock(side_effect=[None, admin_therapist])
        service = AuthService(AsyncMock(), admin_settings)

        response = await service.login(
            LoginRequest(username="admin", password="bootstrap-pw", role=DomainUserRole.PATIENT)
        )

        created = repo.create.call_args.args[0]
        assert created.role == UserRole.PATIENT
        assert created.therapist_id == admin_therapist.id
        assert created.email == "admin_patient@admin.local"
        assert response.user.name == "admin"

    async def test_creates_admin_therapist_adopting_patients(
        self,
        repo: MagicMock,
        admin_settings: Settings,
    ) -> None:
        """Test a new admin therapist adopts unassigned admin patients."""
        repo.get_by_name_and_role = AsyncMock(return_value=None)
        repo.assign_unassigned_by_name = AsyncMock(return_value=1)
        service = AuthService(AsyncMock(), admin_settings)

        await service.login(
            LoginRequest(
                username="admin",
                password="bootstrap-pw",
                role=DomainUserRole.THERAPIST,
            )
        )

        created = repo.create.call_args.args[0]
        repo.assign_unassigned_by_name.assert_awaited_once_with("admin", created.id)

    async def test_reuses_existing_admin(
        self,
        repo: MagicMock,
        admin_settings: Settings,
    ) -> None:
        """Test repeated admin logins do not create new accounts."""
        existing = make_user("admin", UserRole.PATIENT)
        repo.get_by_name_and_role = AsyncMock(return_value=existing)
        service = AuthService(AsyncMock(), admin_settings)

        response = await service.login(
            LoginRequest(username="admin", password="bootstrap-pw", role=DomainUserRole.PATIENT)
        )

        assert response.user.id == existing.id
        repo.create.assert_not_called()


class TestAuthenticate:
    """Tests for authenticate."""

    @pytest.mark.parametrize(
        ("role", "principal_type"),
        [(UserRole.PATIENT, PatientPrincipal), (UserRole.THERAPIST, TherapistPrincipal)],
    )
    async def test_resolves_principal(
        self,
        repo: MagicMock,
        settings: Settings,
        role: UserRole,
        principal_type: type,
    ) -> None:
        """Test a valid token resolves to the matching principal type."""
        user = make_user(role=role)
        repo.get_by_id = AsyncMock(return_value=user)
        token = create_access_token(user.id, role.value, user.name, settings)

        principal = await AuthService(AsyncMock(), settings).authenticate(token)

        assert isinstance(principal, principal_type)
        assert principal.id == user.id

    async def test_invalid_token(self, repo: MagicMock, settings: Settings) -> None:
        """Test a malformed token is rejected."""
        with pytest.raises(UnauthorizedError):
            await AuthService(AsyncMock(), settings).authenticate("not-a-token")

    async def test_deleted_user(self, repo: MagicMock, settings: Settings) -> None:
        """Test a token for a user that no longer exists is rejected."""
        repo.get_by_id = AsyncMock(return_value=None)
        token = create_access_token(uuid.uuid4(), "patient", "ghost", settings)

        with pytest.raises(UnauthorizedError):
            await AuthService(AsyncMock(), settings).authenticate(token)

    async def test_role_mismatch(self, repo: MagicMock, settings: Settings) -> None:
        """Test a token whose role no longer matches the user is rejected."""
        user = make_user(role=UserRole.PATIENT)
        repo.get_by_id = AsyncMock(return_value=user)
        token = create_access_token(user.id, "therapist", user.name, settings)

        with pytest.raises(UnauthorizedError):
            await AuthService(AsyncMock(), settings).authenticate(token)


class TestUserAdministration:
    """Tests for create_user and assign_patient."""

    async def test_create_user_hashes_password(
        self,
        repo: MagicMock,
        settings: Settings,
    ) -> None:
        """Test the stored user never holds the plaintext password."""
        user = await AuthService(AsyncMock(), settings).create_user(
            "dr_smith", "smith@example.com", "pw", DomainUserRole.THERAPIST
        )

        assert user.role == UserRole.THERAPIST
        assert user.password_hash != "pw"

    async def test_assign_patient(self, repo: MagicMock, settings: Settings) -> None:
        """Test a patient can be assigned to a therapist."""
        patient = make_user("alice", UserRole.PATIENT)
        therapist = make_user("dr_smith", UserRole.THERAPIST)
        repo.get_by_id = AsyncMock(side_effect=[patient, therapist])

        await AuthService(AsyncMock(), settings).assign_patient(patient.id, therapist.id)

        repo.set_therapist.assert_awaited_once_with(patient.id, therapist.id)

    async def test_assign_wrong_roles(self, repo: MagicMock, settings: Settings) -> None:
        """Test two patients cannot be linked."""
        first, second = make_user("a"), make_user("b")
        repo.get_by_id = AsyncMock(side_effect=[first, second])

        with pytest.raises(ValidationError):
            await AuthService(AsyncMock(), settings).assign_patient(first.id, second.id)

        repo.set_therapist.assert_not_called()

    async def test_assign_missing_user(self, repo: MagicMock, settings: Settings) -> None:
        """Test assigning an unknown user."""
        repo.get_by_id = AsyncMock(side_effect=[None, make_user("dr", UserRole.THERAPIST)])

        with pytest.raises(NotFoundError):
            await AuthService(AsyncMock(), settings).assign_patient(uuid.uuid4(), uuid.uuid4())
