"""
Shared pytest fixtures for ResearchStats tests.
"""

import os
import pytest

# Set env vars before any app imports
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/research_stats_test")

SCOPE = "64b7f0c2a1b2c3d4e5f60718"
OTHER_SCOPE = "64b7f0c2a1b2c3d4e5f60719"


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def collections():
    """One mock collection per entity set."""
    from unittest.mock import MagicMock

    return {"articles": MagicMock(), "authors": MagicMock()}


@pytest.fixture()
def test_app(clock, collections):
    """
    Create a FastAPI TestClient with mocked collections.

    Stats services are rebuilt per test around a fake clock so caches never
    leak between tests.
    """
    from unittest.mock import patch, MagicMock
    from services.stats_dimensions import ENTITY_SETS
    from services.stats_service import StatsService

    mock_db = MagicMock()
    mock_client = MagicMock()

    with patch("database.connection._database", mock_db), \
         patch("database.connection._mongo_client", mock_client):
        from fastapi.testclient import TestClient
        from app import app

        original = app.state.stats_services
        app.state.stats_services = {
            name: StatsService(entity, lambda name=name: collections[name], ttl=3600, clock=clock)
            for name, entity in ENTITY_SETS.items()
        }
        try:
            yield TestClient(app), collections
        finally:
            app.state.stats_services = original


@pytest.fixture()
def mock_auth_user():
    """Return a mock regular user dict."""
    return {
        "username": "researcher",
        "role": "user",
        "is_active": True,
    }


@pytest.fixture()
def mock_auth_admin():
    """Return a mock admin user dict."""
    return {
        "username": "admin",
        "role": "admin",
        "is_active": True,
    }


def articles_facet(**branches):
    """Raw $facet output for the articles entity with empty defaults."""
    from services.stats_dimensions import ARTICLES

    raw = {"total": []}
    raw.update({dim.name: [] for dim in ARTICLES.dimensions})
    raw.update(branches)
    return raw


def authors_facet(**branches):
    """Raw $facet output for the authors entity with empty defaults."""
    from services.stats_dimensions import AUTHORS

    raw = {"total": []}
    raw.update({dim.name: [] for dim in AUTHORS.dimensions})
    raw.update({avg.name: [] for avg in AUTHORS.averages})
    raw.update(branches)
    return raw
