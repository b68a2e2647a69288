"""Database models package."""

from mindcare.models.db.analysis import AIAnalysis, RiskLevel, Sentiment
from mindcare.models.db.base import Base, CreatedAtMixin, TimestampMixin
from mindcare.models.db.chat import Chat, Message, MessageRole
from mindcare.models.db.consent import Consent, ConsentStatus
from mindcare.models.db.report import Report
from mindcare.models.db.user import User, UserRole

__all__ = [
    "AIAnalysis",
    "Base",
    "Chat",
    "Consent",
    "ConsentStatus",
    "CreatedAtMixin",
    "Message",
    "MessageRole",
    "Report",
    "RiskLevel",
    "Sentiment",
    "TimestampMixin",
    "User",
    "UserRole",
]
