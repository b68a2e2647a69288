"""Developer CLI for managing accounts and therapist assignments."""

from __future__ import annotations

import asyncio
import logging
import sys
import uuid

import click

from mindcare.core.database import close_database, init_database, session_scope
from mindcare.core.exceptions import AppError
from mindcare.models.domain.user import UserRole
from mindcare.services.auth_service import AuthService


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


async def _create_user(name: str, email: str, password: str, role: UserRole) -> uuid.UUID:
    init_database()
    try:
        async with session_scope() as session:
            user = await AuthService(session).create_user(name, email, password, role)
            return user.id
    finally:
        await close_database()


async def _assign(patient_id: uuid.UUID, therapist_id: uuid.UUID) -> None:
    init_database()
    try:
        async with session_scope() as session:
            await AuthService(session).assign_patient(patient_id, therapist_id)
    finally:
        await close_database()


@click.group()
def cli() -> None:
    """Account administration for local development."""
    _setup_logging()


@cli.command("create-user")
@click.argument("name")
@click.option("--email", required=True, help="Unique email address")
@click.option(
    "--role",
    type=click.Choice([r.value for r in UserRole]),
    required=True,
)
@click.password_option(help="Login password")
def create_user(name: str, email: str, role: str, password: str) -> None:
    """Create a patient or therapist account."""
    user_id = asyncio.run(_create_user(name, email, password, UserRole(role)))
    click.echo(f"Created {role} {name}: {user_id}")


@cli.command()
@click.argument("patient_id", type=click.UUID)
@click.argument("therapist_id", type=click.UUID)
def assign(patient_id: uuid.UUID, therapist_id: uuid.UUID) -> None:
    """Assign a patient to a therapist."""
    try:
        asyncio.run(_assign(patient_id, therapist_id))
    except AppError as e:
        raise click.ClickException(e.detail) from e
    click.echo(f"Assigned patient {patient_id} to therapist {therapist_id}")


if __name__ == "__main__":
    cli()
