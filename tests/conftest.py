"""Shared pytest fixtures"""

import pytest

from core.asset_library import AssetLibrary
from core.ledger import MovieLedger
from core.location_cache import LocationImageCache
from core.providers import (
    MockAudioProvider,
    MockImageProvider,
    MockRenderProvider,
    MockVideoProvider,
)
from core.providers.base import StorageProviderConfig
from core.providers.storage import LocalStorageProvider
from tests.mocks.claude_client import MockClaudeClient
from tests.mocks.fixtures import make_bible, make_scene, make_screenplay


# ============================================================
# Mock Claude Client
# ============================================================

@pytest.fixture
def mock_claude_client():
    """Fresh mock Claude client for each test"""
    client = MockClaudeClient(debug=False)
    yield client
    client.reset()


# ============================================================
# Stores (isolated per test)
# ============================================================

@pytest.fixture
def location_cache(tmp_path):
    return LocationImageCache(str(tmp_path / "cache" / "location_images.json"))


@pytest.fixture
def asset_library(tmp_path):
    return AssetLibrary(str(tmp_path / "library" / "assets.json"))


@pytest.fixture
def ledger(tmp_path):
    return MovieLedger(str(tmp_path / "ledger" / "movies.json"))


@pytest.fixture
def storage(tmp_path):
    return LocalStorageProvider(StorageProviderConfig(base_path=str(tmp_path / "store")))


# ============================================================
# Mock Providers
# ============================================================

@pytest.fixture
def image_provider():
    return MockImageProvider()


@pytest.fixture
def video_provider():
    return MockVideoProvider()


@pytest.fixture
def audio_provider():
    return MockAudioProvider()


@pytest.fixture
def render_provider():
    return MockRenderProvider()


# ============================================================
# Test Data Fixtures
# ============================================================

@pytest.fixture
def sample_scene():
    """Single sample scene"""
    return make_scene()


@pytest.fixture
def sample_screenplay():
    """Three scenes, the second continuing the first"""
    return make_screenplay(3, continuations=[2])


@pytest.fixture
def sample_bible():
    return make_bible()


# ============================================================
# Markers Configuration
# ============================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks integration tests"
    )
    config.addinivalue_line(
        "markers", "live_api: marks tests that hit real APIs (requires keys)"
    )
