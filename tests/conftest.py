from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.db.record_store import InMemoryRecordStore
from app.db.schema_registry import SchemaRegistry
from app.features.advisor_feedback.repository.advisor_repository import AdvisorRepository
from app.features.advisor_feedback.services.advisor_service import AdvisorService
from app.features.advisor_feedback.services.email_service import LoggingEmailDispatcher
from app.features.experiments.services.experiment_service import ExperimentService
from app.middleware.rate_limiter import RateLimiter

DETAILED_ANSWER = (
    "During the Q3 billing migration project they led a team of five engineers. "
    "For example, they rewrote the reconciliation job and delivered it two weeks early. "
    "I have observed them explain trade-offs clearly to stakeholders."
)


class FakeClock:
    """Controllable time source; callable like utc_now()."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def timestamp(self) -> float:
        return self.now.timestamp()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def record_store():
    return InMemoryRecordStore(lock_timeout=2.0)


@pytest.fixture
def registry():
    return SchemaRegistry()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock.timestamp)


@pytest.fixture
def email_dispatcher():
    return LoggingEmailDispatcher()


@pytest.fixture
def advisor_service(record_store, registry, email_dispatcher, limiter, clock):
    return AdvisorService(
        AdvisorRepository(record_store, registry),
        email_dispatcher,
        rate_limiter=limiter,
        clock=clock,
        max_advisors_per_session=4,
        email_timeout_seconds=0.5,
    )


@pytest.fixture
def experiment_service(record_store, registry, clock):
    return ExperimentService(record_store, registry, clock=clock)


@pytest.fixture
def detailed_answer():
    return DETAILED_ANSWER


@pytest.fixture
def app_client(monkeypatch, record_store, advisor_service, experiment_service):
    """TestClient over the real app with per-test services swapped in."""
    monkeypatch.setattr(settings, "REDIS_URL", None)
    monkeypatch.setattr(settings, "SENDGRID_API_KEY", None)

    from app.main import create_app

    app = create_app()
    with TestClient(app) as client:
        app.state.record_store = record_store
        app.state.advisor_service = advisor_service
        app.state.experiment_service = experiment_service
        yield client
