"""Repository for user and assignment operations."""

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.models.db.user import User, UserRole


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, user: User) -> User:
        """Create a new user."""
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        """Get a user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_name_and_role(self, name: str, role: UserRole) -> User | None:
        """Get the first user with the given display name and role.

        Args:
            name: Login name
            role: Role the caller is logging in as

        Returns:
            The matching user, or None
        """
        result = await self.session.execute(
            select(User)
            .where(User.name == name, User.role == role)
            .order_by(User.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_assigned_patient(
        self,
        patient_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> User | None:
        """Get a patient only if they are currently assigned to the therapist.

        Args:
            patient_id: The patient's user ID
            therapist_id: The therapist's user ID

        Returns:
            The patient, or None if missing or assigned elsewhere
        """
        result = await self.session.execute(
            select(User).where(
                User.id == patient_id,
                User.role == UserRole.PATIENT,
                User.therapist_id == therapist_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_assigned_patients(self, therapist_id: uuid.UUID) -> list[User]:
        """List patients assigned to a therapist, newest first."""
        result = await self.session.execute(
            select(User)
            .where(User.therapist_id == therapist_id, User.role == UserRole.PATIENT)
            .order_by(User.created_at.desc())
        )
        return list(result.scalars().all())

    async def set_therapist(
        self,
        patient_id: uuid.UUID,
        therapist_id: uuid.UUID | None,
    ) -> None:
        """Write the patient's assignment."""
        await self.session.execute(
            update(User)
            .where(User.id == patient_id, User.role == UserRole.PATIENT)
            .values(therapist_id=therapist_id)
        )

    async def assign_unassigned_by_name(
        self,
        name: str,
        therapist_id: uuid.UUID,
    ) -> int:
        """Assign every unassigned patient with the given name to a therapist.

        Returns:
            Number of patients assigned
        """
        result = await self.session.execute(
            update(User)
            .where(
                User.name == name,
                User.role == UserRole.PATIENT,
                User.therapist_id.is_(None),
            )
            .values(therapist_id=therapist_id)
        )
        return result.rowcount or 0
