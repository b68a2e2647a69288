"""Repository for report operations."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.models.db.report import Report


class ReportRepository:
    """Repository for report database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, report: Report) -> Report:
        """Persist a new report."""
        self.session.add(report)
        await self.session.flush()
        await self.session.refresh(report)
        return report

    async def list_for_therapist(
        self,
        therapist_id: uuid.UUID,
        patient_id: uuid.UUID | None = None,
    ) -> list[Report]:
        """List a therapist's reports, newest first.

        Args:
            therapist_id: Author of the reports
            patient_id: Optional filter by patient

        Returns:
            Reports with their patient loaded
        """
        query = select(Report).where(Report.therapist_id == therapist_id)
        if patient_id is not None:
            query = query.where(Report.patient_id == patient_id)
        result = await self.session.execute(query.order_by(Report.created_at.desc()))
        return list(result.scalars().all())
