"""Tests for the developer CLI."""

import uuid
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from dev.cli import cli
from mindcare.core.exceptions import ValidationError
from mindcare.models.domain.user import UserRole


@pytest.fixture
def auth_service() -> Iterator[MagicMock]:
    """Patch database lifecycle and the auth service."""

    @asynccontextmanager
    async def fake_scope() -> AsyncIterator[AsyncMock]:
        yield AsyncMock()

    with (
        patch("dev.cli.init_database"),
        patch("dev.cli.close_database", new=AsyncMock()),
        patch("dev.cli.session_scope", new=fake_scope),
        patch("dev.cli.AuthService") as MockService,
    ):
        yield MockService.return_value


def test_create_user(auth_service: MagicMock) -> None:
    """Test an account is created with the chosen role."""
    user_id = uuid.uuid4()
    auth_service.create_user = AsyncMock(return_value=SimpleNamespace(id=user_id))

    result = CliRunner().invoke(
        cli,
        ["create-user", "dr_smith", "--email", "smith@example.com", "--role", "therapist"],
        input="pw\npw\n",
    )

    assert result.exit_code == 0, result.output
    assert str(user_id) in result.output
    auth_service.create_user.assert_awaited_once_with(
        "dr_smith", "smith@example.com", "pw", UserRole.THERAPIST
    )


def test_create_user_rejects_unknown_role(auth_service: MagicMock) -> None:
    """Test only patient and therapist are accepted."""
    result = CliRunner().invoke(
        cli,
        ["create-user", "root", "--email", "r@example.com", "--role", "admin", "--password", "x"],
    )

    assert result.exit_code != 0


def test_assign(auth_service: MagicMock) -> None:
    """Test assigning a patient."""
    patient_id, therapist_id = uuid.uuid4(), uuid.uuid4()
    auth_service.assign_patient = AsyncMock()

    result = CliRunner().invoke(cli, ["assign", str(patient_id), str(therapist_id)])

    assert result.exit_code == 0, result.output
    auth_service.assign_patient.assert_awaited_once_with(patient_id, therapist_id)


def test_assign_reports_errors(auth_service: MagicMock) -> None:
    """Test service errors become a CLI error message."""
    auth_service.assign_patient = AsyncMock(
        side_effect=ValidationError("Assignment requires a patient and a therapist")
    )

    result = CliRunner().invoke(cli, ["assign", str(uuid.uuid4()), str(uuid.uuid4())])

    assert result.exit_code == 1
    assert "Assignment requires a patient and a therapist" in result.output
