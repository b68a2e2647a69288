"""Service for compiling therapist reports."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.core.exceptions import CollaboratorError, NotFoundError
from mindcare.models.db.analysis import AIAnalysis
from mindcare.models.db.base import utcnow
from mindcare.models.db.report import Report
from mindcare.models.db.user import User
from mindcare.models.domain.report import ReportPatient, ReportRead
from mindcare.repositories.analysis_repo import AnalysisRepository
from mindcare.repositories.chat_repo import ChatRepository
from mindcare.repositories.report_repo import ReportRepository
from mindcare.repositories.user_repo import UserRepository
from mindcare.services.chat_service import to_history
from mindcare.services.llm_client import LLMClient, LLMError, ReportChat

logger = logging.getLogger(__name__)


def compose_analysis_text(analysis: AIAnalysis) -> str:
    """Analysis text with the therapist's corrections appended, if any."""
    if analysis.therapist_corrections:
        return (
            f"{analysis.analysis}\n\nTherapist Corrections:\n"
            f"{analysis.therapist_corrections}"
        )
    return analysis.analysis


def fallback_report(patient_name: str) -> str:
    """Templated report used when no analysis is available."""
    return (
        f"Report for {patient_name}\n\n"
        f"Generated on {utcnow():%Y-%m-%d}\n\n"
        "No detailed analysis available at this time."
    )


class ReportService:
    """Service for generating and listing reports.

    Reports are snapshots: once written they stay readable even if the
    consents behind them are later withdrawn.
    """

    def __init__(self, session: AsyncSession, llm_client: LLMClient) -> None:
        self.session = session
        self.llm_client = llm_client
        self.repo = ReportRepository(session)
        self.user_repo = UserRepository(session)
        self.chat_repo = ChatRepository(session)
        self.analysis_repo = AnalysisRepository(session)

    async def generate_report(
        self,
        patient_id: uuid.UUID,
        therapist_id: uuid.UUID,
        title: str,
        analysis_id: uuid.UUID | None = None,
    ) -> ReportRead:
        """Compile and store a report about an assigned patient.

        With a usable analysis, the report is written by the model from that
        analysis (corrections included) and every chat the patient currently
        shares. Without one, a short templated report is stored instead.

        Args:
            patient_id: The patient the report is about
            therapist_id: The requesting therapist
            title: Report title
            analysis_id: Optional analysis of the therapist's to build on

        Returns:
            The stored report

        Raises:
            NotFoundError: If the patient is not assigned to the therapist
            CollaboratorError: If the model call fails; nothing is stored
        """
        patient = await self.user_repo.get_assigned_patient(patient_id, therapist_id)
        if patient is None:
            raise NotFoundError(resource="Patient")

        analysis = None
        if analysis_id is not None:
            analysis = await self.analysis_repo.get_for_therapist(analysis_id, therapist_id)
            if analysis is None:
                logger.info(
                    "Analysis unavailable, using fallback report",
                    extra={"analysis_id": str(analysis_id)},
                )

        if analysis is None:
            content = fallback_report(patient.name)
        else:
            content = await self._compose(patient, therapist_id, analysis)

        report = await self.repo.create(
            Report(
                therapist_id=therapist_id,
                patient_id=patient.id,
                title=title,
                content=content,
            )
        )
        logger.info("Report created", extra={"report_id": str(report.id)})
        return ReportRead(
            id=report.id,
            therapist_id=report.therapist_id,
            patient_id=report.patient_id,
            title=report.title,
            content=report.content,
            created_at=report.created_at,
            patient=ReportPatient.model_validate(patient),
        )

    async def _compose(
        self,
        patient: User,
        therapist_id: uuid.UUID,
        analysis: AIAnalysis,
    ) -> str:
        chats = await self.chat_repo.list_visible_for_patient(patient.id, therapist_id)
        try:
            return await self.llm_client.compose_report(
                patient_name=patient.name,
                chats=[
                    ReportChat(title=chat.title, messages=to_history(chat.messages))
                    for chat in chats
                ],
                analysis_text=compose_analysis_text(analysis),
            )
        except LLMError as e:
            logger.error(
                "Report generation failed",
                extra={"patient_id": str(patient.id), "retryable": e.is_retryable},
            )
            raise CollaboratorError("Failed to generate report") from e

    async def list_reports(
        self,
        therapist_id: uuid.UUID,
        patient_id: uuid.UUID | None = None,
    ) -> list[ReportRead]:
        """The therapist's reports, newest first, optionally for one patient."""
        reports = await self.repo.list_for_therapist(therapist_id, patient_id)
        return [ReportRead.model_validate(report) for report in reports]
