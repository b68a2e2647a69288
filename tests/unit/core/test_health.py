"""Tests for health check service."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from mindcare.core.health import (
    ComponentHealth,
    HealthCheckResult,
    HealthCheckService,
    HealthStatus,
    summarize,
)


@pytest.fixture
def mock_settings() -> MagicMock:
    """Create mock settings."""
    settings = MagicMock()
    settings.redis_url = "redis://localhost:6379"
    return settings


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    result = MagicMock()
    result.scalar.return_value = 1
    session.execute.return_value = result
    return session


@pytest.fixture
def mock_redis(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Patch Redis.from_url to return a mock client."""
    redis_client = MagicMock()
    redis_client.ping.return_value = True
    monkeypatch.setattr(
        "mindcare.core.health.Redis.from_url", lambda *args, **kwargs: redis_client
    )
    return redis_client


class TestHealthCheckResult:
    """Tests for HealthCheckResult dataclass."""

    def test_to_dict(self) -> None:
        """Test conversion to dictionary."""
        result = HealthCheckResult(
            status=HealthStatus.HEALTHY,
            components=[
                ComponentHealth(
                    name="database",
                    status=HealthStatus.HEALTHY,
                    message="OK",
                    latency_ms=5.0,
                ),
            ],
        )

        data = result.to_dict()

        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert data["components"]["database"]["latency_ms"] == 5.0


class TestSummarize:
    """Tests for folding component statuses."""

    def test_all_healthy(self) -> None:
        """Test all healthy components give healthy."""
        components = [
            ComponentHealth(name="database", status=HealthStatus.HEALTHY),
            ComponentHealth(name="redis", status=HealthStatus.HEALTHY),
        ]
        assert summarize(components) == HealthStatus.HEALTHY

    def test_database_down_is_unhealthy(self) -> None:
        """Test a failed database makes the service unhealthy."""
        components = [
            ComponentHealth(name="database", status=HealthStatus.UNHEALTHY),
            ComponentHealth(name="redis", status=HealthStatus.HEALTHY),
        ]
        assert summarize(components) == HealthStatus.UNHEALTHY

    def test_redis_down_is_degraded(self) -> None:
        """Test a failed Redis only degrades the service."""
        components = [
            ComponentHealth(name="database", status=HealthStatus.HEALTHY),
            ComponentHealth(name="redis", status=HealthStatus.UNHEALTHY),
        ]
        assert summarize(components) == HealthStatus.DEGRADED


class TestHealthCheckService:
    """Tests for HealthCheckService."""

    async def test_check_database_healthy(
        self,
        mock_db_session: AsyncMock,
        mock_settings: MagicMock,
    ) -> None:
        """Test healthy database check."""
        service = HealthCheckService(db_session=mock_db_session, settings=mock_settings)

        result = await service.check_database()

        assert result.status == HealthStatus.HEALTHY
        assert result.message == "Connected"
        assert result.latency_ms is not None

    async def test_check_database_unhealthy(
        self,
        mock_db_session: AsyncMock,
        mock_settings: MagicMock,
    ) -> None:
        """Test unhealthy database check."""
        mock_db_session.execute.side_effect = Exception("Connection refused")
        service = HealthCheckService(db_session=mock_db_session, settings=mock_settings)

        result = await service.check_database()

        assert result.status == HealthStatus.UNHEALTHY
        assert "Connection refused" in (result.message or "")

    async def test_check_database_no_session(self, mock_settings: MagicMock) -> None:
        """Test database check with no session."""
        service = HealthCheckService(db_session=None, settings=mock_settings)

        result = await service.check_database()

        assert result.status == HealthStatus.UNHEALTHY

    async def test_check_redis_failure(
        self,
        mock_settings: MagicMock,
        mock_redis: MagicMock,
    ) -> None:
        """Test Redis ping failure is reported."""
        mock_redis.ping.side_effect = ConnectionError("refused")
        service = HealthCheckService(settings=mock_settings)

        result = await service.check_redis()

        assert result.name == "redis"
        assert result.status == HealthStatus.UNHEALTHY

    async def test_check_all_healthy(
        self,
        mock_db_session: AsyncMock,
        mock_settings: MagicMock,
        mock_redis: MagicMock,
    ) -> None:
        """Test check_all when all components healthy."""
        service = HealthCheckService(db_session=mock_db_session, settings=mock_settings)

        result = await service.check_all()

        assert result.status == HealthStatus.HEALTHY
        assert {c.name for c in result.components} == {"database", "redis"}
        mock_redis.close.assert_called_once()
