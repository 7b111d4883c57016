"""Shared pytest fixtures for test suite."""

import os

# Required secrets must exist before any commentguard module builds Settings.
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("GROQ_API_KEY", "test-groq-key")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from typing import Any, Optional  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi import Request  # noqa: E402

from commentguard.models.moderation import ModerationInput  # noqa: E402
from commentguard.models.moderation_settings import ModerationSettingsResult  # noqa: E402
from commentguard.models.owner_config import OwnerScope  # noqa: E402

CHAIN_METHODS = (
    "select",
    "eq",
    "neq",
    "is_",
    "in_",
    "or_",
    "order",
    "limit",
    "range",
    "single",
    "maybe_single",
    "insert",
    "update",
    "upsert",
    "delete",
)


def make_chain(data: Any = None) -> MagicMock:
    """Query builder mock where every filter returns itself and execute() returns data."""
    mock = MagicMock()
    for method in CHAIN_METHODS:
        getattr(mock, method).return_value = mock
    mock.execute.return_value = MagicMock(data=data)
    return mock


# =============================================================================
# Mock Request Fixtures
# =============================================================================


@pytest.fixture
def mock_request():
    """Create a mock FastAPI Request object."""
    request = MagicMock(spec=Request)
    request.state = MagicMock()
    request.headers = {}
    return request


# =============================================================================
# Mock Supabase Client
# =============================================================================


@pytest.fixture
def chain():
    """Factory for chainable query builder mocks."""
    return make_chain


@pytest.fixture
def mock_supabase():
    """Create a mock Supabase client for database operations."""
    mock = make_chain()
    mock.table.return_value = mock
    mock.rpc.return_value = mock
    return mock


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def make_input():
    """Factory for ModerationInput with sensible Instagram defaults."""

    def _make(text: str = "nice post!", **overrides: Optional[str]) -> ModerationInput:
        fields: dict[str, Any] = {
            "comment_id": "comment-1",
            "comment_text": text,
            "commenter_id": "commenter-1",
            "commenter_username": "someone",
            "instagram_account_id": "ig-account-1",
            "post_id": "post-1",
            "ig_comment_id": "ig-comment-1",
            "access_token": "token-abc",
            "user_id": "user-1",
        }
        fields.update(overrides)
        return ModerationInput(**fields)

    return _make


@pytest.fixture
def owner() -> OwnerScope:
    return OwnerScope(user_id="user-1")


@pytest.fixture
def default_settings() -> ModerationSettingsResult:
    return ModerationSettingsResult.defaults()


# =============================================================================
# Settings Override Fixture
# =============================================================================


@pytest.fixture
def mock_settings():
    """Mock settings for testing."""
    settings = MagicMock()
    settings.supabase_url = "https://test-project.supabase.co"
    settings.groq_model = "openai/gpt-oss-120b"
    settings.graph_api_base_url = "https://graph.facebook.com/v24.0"
    settings.platform_timeout_seconds = 10.0
    settings.autumn_secret_key = ""
    settings.autumn_api_url = "https://api.useautumn.com/v1"
    settings.moderation_test_mode = False
    return settings
