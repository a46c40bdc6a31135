# tests/conftest.py
import os
import sys

import pytest

# Add the project root directory to sys.path so that "import app" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app.core.config import Settings  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings pointing at hosts only an httpx.MockTransport answers.
    """
    return Settings(
        ROUTING_BACKEND_URL="http://backend.test",
        GEOAPIFY_API_KEY="'test-key'",
        GEOAPIFY_AUTOCOMPLETE_URL="http://geo.test/autocomplete",
        SUGGEST_DEBOUNCE_MS=1,
    )
