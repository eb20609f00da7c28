import os
import sys

# Ensure the repository root is on sys.path so `import outreach_pipeline` works without installing
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

import pytest
from unittest.mock import Mock, AsyncMock

from outreach_pipeline.config import settings


@pytest.fixture
def session():
    """Async session stand-in: add() is sync, commit()/refresh() are awaited."""
    mock_session = Mock()
    mock_session.commit = AsyncMock()
    mock_session.refresh = AsyncMock()
    mock_session.execute = AsyncMock()
    return mock_session


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "test-key")
    return "test-key"
