from collections.abc import Generator
from dataclasses import dataclass
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from src.adapters.clock import FixedClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.mailer import ConfirmationMailer
from src.adapters.memory_queue import InMemoryValidationQueue
from src.adapters.memory_store import InMemorySubscriberStore
from src.api.deps import get_clock, get_queue, get_queue_drainer, get_store
from src.api.main import app
from src.components.subscribers import NewsletterConfig
from src.shell.queue.handler import DrainSummary, drain_queue


@dataclass
class ServiceContext:
    """In-memory wiring of the whole service for end-to-end tests."""

    store: InMemorySubscriberStore
    queue: InMemoryValidationQueue
    email: DevEmailAdapter
    mailer: ConfirmationMailer
    clock: FixedClock
    config: NewsletterConfig

    def run_issuer(self) -> DrainSummary:
        """Deliver every queued validation message to the token issuer."""
        return drain_queue(
            self.queue,
            self.store,
            mailer=self.mailer,
            config=self.config,
            now=self.clock.now(),
        )


@pytest.fixture
def test_ctx() -> ServiceContext:
    email = DevEmailAdapter()
    config = NewsletterConfig(frontend_url="https://news.example.com", site_name="Test Site")
    return ServiceContext(
        store=InMemorySubscriberStore(),
        queue=InMemoryValidationQueue(),
        email=email,
        mailer=ConfirmationMailer(email, token_ttl_hours=config.token_ttl_hours),
        clock=FixedClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)),
        config=config,
    )


@pytest.fixture
def api_client(test_ctx: ServiceContext) -> Generator[TestClient, None, None]:
    """TestClient whose routes use the in-memory service context."""
    app.dependency_overrides[get_store] = lambda: test_ctx.store
    app.dependency_overrides[get_queue] = lambda: test_ctx.queue
    app.dependency_overrides[get_clock] = lambda: test_ctx.clock
    app.dependency_overrides[get_queue_drainer] = lambda: None

    yield TestClient(app)

    app.dependency_overrides.clear()
