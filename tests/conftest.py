"""
Pytest configuration
Provides an in-memory database, repositories, fake collaborators and an API client
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock

from dashboard.config import Settings
from dashboard.db import create_sql_engine, create_tables
from dashboard.repository import LockedRepository, SqliteRepository
from dashboard.schemas import (
    SERVICE_EMAIL,
    EmailItem,
    EmailPage,
    EmailQuery,
    ExternalAccount,
    FeedItem,
    Identity,
    ParsedFeed,
    ProviderDescription,
)
from dashboard.services.dashboard_service import DashboardService
from dashboard.services.feed_fetcher import FeedFetcher
from dashboard.services.feed_service import FeedService
from dashboard.services.providers import EmailProvider
from dashboard.utils.jwt import create_access_token


# ==================== Database Fixtures ====================

@pytest.fixture(scope="function")
def test_db_engine():
    """
    In-memory database engine
    Every test function gets a brand new database
    """
    engine = create_sql_engine("sqlite://")
    create_tables(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def sql_repository(test_db_engine) -> SqliteRepository:
    return SqliteRepository(test_db_engine)


@pytest.fixture(scope="function")
def repository(sql_repository) -> LockedRepository:
    """SQLite repository wrapped the way it runs in production"""
    return LockedRepository(sql_repository, timeout=5)


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        FEED_REFRESH_MINUTES=15,
        FEED_ITEMS_LIMIT=100,
        DEFAULT_DISPLAY_COUNT=5,
        FRONTEND_BASE_URL="http://frontend.test",
    )


# ==================== Fake Collaborators ====================

class FakeEmailProvider(EmailProvider):
    """Email provider answering from memory"""

    def __init__(self):
        self.exchanged = []

    def description(self) -> ProviderDescription:
        return ProviderDescription(
            name="fake",
            title="Fake Mail",
            link="https://mail.example.com",
            services=[SERVICE_EMAIL]
        )

    def authorization_url(self, state: str) -> str:
        return f"https://auth.example.com/consent?state={state}"

    def exchange_code(self, code: str) -> Dict[str, Any]:
        self.exchanged.append(code)
        return {"access_token": f"token-{code}"}

    def current_email_address(self, account: ExternalAccount) -> str:
        return "alice@mail.example.com"

    def get_items(
        self,
        account: ExternalAccount,
        query: EmailQuery,
        page_token: Optional[str] = None
    ) -> EmailPage:
        item = EmailItem(
            guid="m1",
            title="Hello",
            published=datetime(2026, 1, 2, tzinfo=timezone.utc),
            sender="Bob"
        )
        return EmailPage(items=[item], next_page_token="page-2", result_size_estimate=1)


@pytest.fixture(scope="function")
def fake_provider() -> FakeEmailProvider:
    return FakeEmailProvider()


@pytest.fixture(scope="function")
def parsed_feed() -> ParsedFeed:
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return ParsedFeed(
        title="Example Feed",
        items=[
            FeedItem(
                guid=f"item-{i}",
                title=f"Item {i}",
                published=base + timedelta(hours=i),
                link=f"http://example.com/{i}"
            )
            for i in (3, 2, 1)
        ]
    )


@pytest.fixture(scope="function")
def mock_fetcher(parsed_feed):
    """
    Mock FeedFetcher
    Avoids real network access
    """
    fetcher = Mock(spec=FeedFetcher)
    fetcher.fetch.return_value = parsed_feed
    return fetcher


@pytest.fixture(scope="function")
def mock_store():
    return Mock()


@pytest.fixture(scope="function")
def feed_service(repository, test_settings, mock_fetcher, mock_store) -> FeedService:
    return FeedService(repository, test_settings, fetcher=mock_fetcher, store=mock_store)


@pytest.fixture(scope="function")
def dashboard_service(repository, feed_service, fake_provider, test_settings) -> DashboardService:
    return DashboardService(repository, feed_service, {"fake": fake_provider}, test_settings)


# ==================== Identity Fixtures ====================

@pytest.fixture
def alice() -> Identity:
    return Identity(user_id="alice", display_name="Alice", email="alice@example.com")


@pytest.fixture
def bob() -> Identity:
    return Identity(user_id="bob", display_name="Bob", email="bob@example.com")


@pytest.fixture
def admin() -> Identity:
    return Identity(user_id="admin", display_name="Admin", is_admin=True)


# ==================== API Fixtures ====================

@pytest.fixture(scope="function")
def client(test_settings, repository, feed_service, fake_provider):
    """
    API client over the in-memory repository
    Runs the application lifespan
    """
    from dashboard.main import create_app

    app = create_app(
        test_settings,
        repository=repository,
        feed_service=feed_service,
        providers={"fake": fake_provider}
    )
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user_id: str, name: str = "") -> Dict[str, str]:
    token = create_access_token({"sub": user_id, "name": name, "email": f"{user_id}@example.com"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_headers() -> Dict[str, str]:
    return auth_headers("alice", "Alice")


@pytest.fixture
def bob_headers() -> Dict[str, str]:
    return auth_headers("bob", "Bob")


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return auth_headers("admin", "Admin")


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """
    Pytest initialization
    """
    config.addinivalue_line(
        "markers", "unit: Unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: Slow running tests"
    )
