"""Tests for chat, analysis and report models and schemas."""

import uuid

import pytest
from pydantic import ValidationError
from sqlalchemy.orm import configure_mappers

from mindcare.models.db.analysis import AIAnalysis
from mindcare.models.db.chat import Chat, Message, MessageRole
from mindcare.models.db.report import Report
from mindcare.models.domain.analysis import AnalysisCorrection, GuidanceUpdate
from mindcare.models.domain.chat import SendMessageRequest
from mindcare.models.domain.report import ReportCreate


class TestChatModels:
    """Tests for Chat and Message database models."""

    def test_message_roles(self) -> None:
        """Test message role values."""
        assert MessageRole.USER.value == "user"
        assert MessageRole.ASSISTANT.value == "assistant"

    def test_messages_ordered_by_creation(self) -> None:
        """Test the messages relationship is ordered oldest first."""
        configure_mappers()
        order_by = Chat.messages.property.order_by
        assert [c.name for c in order_by] == ["created_at", "sequence_number"]

    def test_cascades_from_chat(self) -> None:
        """Test messages and analyses are removed with their chat."""
        for table in (Message.__table__, AIAnalysis.__table__):
            fk = next(iter(table.c.chat_id.foreign_keys))
            assert fk.ondelete == "CASCADE"

    def test_guidance_nullable(self) -> None:
        """Test chats may have no guidance."""
        assert Chat.__table__.c.therapist_guidance.nullable is True


class TestAnalysisModel:
    """Tests for AIAnalysis database model."""

    def test_unique_per_chat_and_therapist(self) -> None:
        """Test one analysis per (chat, therapist)."""
        names = {c.name for c in AIAnalysis.__table__.constraints}
        assert "uq_ai_analyses_chat_therapist" in names

    def test_report_has_no_chat_reference(self) -> None:
        """Test reports do not cascade from chats."""
        assert "chat_id" not in Report.__table__.c


class TestRequestSchemas:
    """Tests for request validation."""

    def test_message_required(self) -> None:
        """Test an empty message is rejected."""
        with pytest.raises(ValidationError):
            SendMessageRequest(message="")

    def test_message_max_length(self) -> None:
        """Test messages are capped at 4000 characters."""
        with pytest.raises(ValidationError):
            SendMessageRequest(message="x" * 4001)

    def test_chat_id_optional(self) -> None:
        """Test a new chat can be started without chat_id."""
        assert SendMessageRequest(message="hi").chat_id is None

    def test_correction_requires_text(self) -> None:
        """Test an empty correction is rejected."""
        with pytest.raises(ValidationError):
            AnalysisCorrection(analysis_id=uuid.uuid4(), corrections="")

    def test_guidance_accepts_null(self) -> None:
        """Test guidance may be cleared with null."""
        assert GuidanceUpdate(guidance=None).guidance is None

    def test_report_requires_title(self) -> None:
        """Test reports need a title."""
        with pytest.raises(ValidationError):
            ReportCreate(patient_id=uuid.uuid4(), title="")
