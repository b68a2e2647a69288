"""Unit tests for chat API endpoints."""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mindcare.api.v1.dependencies import get_principal
from mindcare.api.v1.endpoints.chats import get_chat_rate_limiter, get_chat_service, router
from mindcare.core.database import get_db_session
from mindcare.core.exceptions import CollaboratorError, NotFoundError, setup_exception_handlers
from mindcare.models.domain.chat import ChatDetail, ChatRead, MessageRead
from mindcare.models.domain.user import PatientPrincipal, TherapistPrincipal
from mindcare.services.rate_limiter import RateLimitExceeded

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def patient() -> PatientPrincipal:
    """Create the authenticated patient."""
    return PatientPrincipal(id=uuid.uuid4(), name="alice")


@pytest.fixture
def mock_chat_service() -> MagicMock:
    """Create a mock chat service."""
    return MagicMock()


@pytest.fixture
def mock_rate_limiter() -> MagicMock:
    """Create a mock rate limiter."""
    limiter = MagicMock()
    limiter.max_requests = 20
    limiter.check_and_consume = AsyncMock(
        return_value={"current_count": 1, "remaining": 19, "reset_time": 3600}
    )
    limiter.get_remaining = AsyncMock(return_value=19)
    return limiter


@pytest.fixture
def app(
    patient: PatientPrincipal,
    mock_chat_service: MagicMock,
    mock_rate_limiter: MagicMock,
) -> FastAPI:
    """Create test app with mocked dependencies."""
    test_app = FastAPI()
    setup_exception_handlers(test_app)
    test_app.include_router(router, prefix="/chats")

    test_app.dependency_overrides[get_principal] = lambda: patient
    test_app.dependency_overrides[get_db_session] = lambda: AsyncMock()
    test_app.dependency_overrides[get_chat_service] = lambda: mock_chat_service
    test_app.dependency_overrides[get_chat_rate_limiter] = lambda: mock_rate_limiter

    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(app, raise_server_exceptions=False)


def make_chat(patient_id: uuid.UUID, chat_id: uuid.UUID | None = None) -> ChatRead:
    """Create a chat with one exchange."""
    return ChatRead(
        id=chat_id or uuid.uuid4(),
        patient_id=patient_id,
        title="Exam stress",
        created_at=NOW,
        updated_at=NOW,
        message_count=2,
        messages=[
            MessageRead(id=uuid.uuid4(), role="user", content="Exam stress", created_at=NOW),
            MessageRead(id=uuid.uuid4(), role="assistant", content="Tell me more", created_at=NOW),
        ],
    )


class TestSendMessage:
    """Tests for POST /chats and POST /chats/{id}/messages."""

    def test_new_chat(
        self,
        client: TestClient,
        mock_chat_service: MagicMock,
        patient: PatientPrincipal,
    ) -> None:
        """Test sending a message without chat_id starts a chat."""
        chat = make_chat(patient.id)
        mock_chat_service.post_message = AsyncMock(return_value=(chat, "Tell me more"))

        response = client.post("/chats", json={"message": "Exam stress"})

        assert response.status_code == 200
        data = response.json()
        assert data["chat_id"] == str(chat.id)
        assert data["response"] == "Tell me more"
        assert data["chat"]["message_count"] == 2
        mock_chat_service.post_message.assert_awaited_once_with(
            patient_id=patient.id, text="Exam stress", chat_id=None
        )

    def test_existing_chat(
        self,
        client: TestClient,
        mock_chat_service: MagicMock,
        patient: PatientPrincipal,
    ) -> None:
        """Test sending to a chat by path."""
        chat_id = uuid.uuid4()
        mock_chat_service.post_message = AsyncMock(
            return_value=(make_chat(patient.id, chat_id), "ok")
        )

        response = client.post(f"/chats/{chat_id}/messages", json={"message": "More"})

        assert response.status_code == 200
        assert mock_chat_service.post_message.call_args.kwargs["chat_id"] == chat_id

    def test_empty_message_rejected(
        self,
        client: TestClient,
        mock_chat_service: MagicMock,
    ) -> None:
        """Test an empty message fails validation."""
        mock_chat_service.post_message = AsyncMock()

        response = client.post("/chats", json={"message": ""})

        assert response.status_code == 400
        assert "message" in response.json()["detail"]
        mock_chat_service.post_message.assert_not_called()

    def test_rate_limited(
        self,
        client: TestClient,
        mock_chat_service: MagicMock,
        mock_rate_limiter: MagicMock,
    ) -> None:
        """Test an exhausted quota returns 429 with Retry-After."""
        mock_rate_limiter.check_and_consume = AsyncMock(
            side_effect=RateLimitExceeded("Rate limit exceeded.", reset_time=1200)
        )
        mock_chat_service.post_message = AsyncMock()

        response = client.post("/chats", json={"message": "hi"})

        assert response.status_code == 429
        assert response.headers["retry-after"] == "1200"
        mock_chat_service.post_message.assert_not_called()

    def test_unknown_chat(self, client: TestClient, mock_chat_service: MagicMock) -> None:
        """Test sending to a chat that is not the patient's."""
        mock_chat_service.post_message = AsyncMock(side_effect=NotFoundError(resource="Chat"))

        response = client.post(f"/chats/{uuid.uuid4()}/messages", json={"message": "hi"})

        assert response.status_code == 404
        assert response.json()["error"] == "Chat not found"

    def test_generation_failure(self, client: TestClient, mock_chat_service: MagicMock) -> None:
        """Test a failed reply surfaces as 500."""
        mock_chat_service.post_message = AsyncMock(
            side_effect=CollaboratorError("Failed to generate a response")
        )

        response = client.post("/chats", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to generate a response"


class TestReadChats:
    """Tests for listing, reading and deleting chats."""

    def test_list_chats(
        self,
        client: TestClient,
        mock_chat_service: MagicMock,
        patient: PatientPrincipal,
    ) -> None:
        """Test listing the patient's chats."""
        mock_chat_service.list_chats = AsyncMock(return_value=[make_chat(patient.id)])

        response = client.get("/chats")

        assert response.status_code == 200
        assert len(response.json()) == 1
        mock_chat_service.list_chats.assert_awaited_once_with(patient.id)

    def test_get_chat(
        self,
        client: TestClient,
        mock_chat_service: MagicMock,
        patient: PatientPrincipal,
    ) -> None:
        """Test reading a chat with its consents."""
        chat = make_chat(patient.id)
        mock_chat_service.get_chat = AsyncMock(
            return_value=ChatDetail(**chat.model_dump(), consents=[])
        )

        response = client.get(f"/chats/{chat.id}")

        assert response.status_code == 200
        assert response.json()["consents"] == []

    def test_delete_chat(self, client: TestClient, mock_chat_service: MagicMock) -> None:
        """Test deleting a chat returns no content."""
        mock_chat_service.delete_chat = AsyncMock(return_value=None)

        response = client.delete(f"/chats/{uuid.uuid4()}")

        assert response.status_code == 204

    def test_rate_limit_status(self, client: TestClient) -> None:
        """Test the remaining quota is reported."""
        response = client.get("/chats/rate-limit")

        assert response.status_code == 200
        assert response.json() == {"remaining": 19, "max_per_hour": 20}


def test_therapist_cannot_use_chat_endpoints(
    app: FastAPI,
    mock_chat_service: MagicMock,
) -> None:
    """Test therapists are refused on patient routes."""
    app.dependency_overrides[get_principal] = lambda: TherapistPrincipal(
        id=uuid.uuid4(), name="dr_smith"
    )
    mock_chat_service.list_chats = AsyncMock()
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/chats")

    assert response.status_code == 401
    mock_chat_service.list_chats.assert_not_called()
