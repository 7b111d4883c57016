"""Unit tests for BillingService.

Tests:
- resolve_customer_id() for users and managed clients
- check_feature_allowed() Autumn response handling, fail-open
- track() sends a usage event, never raises
"""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from commentguard.services.billing_service import BillingService


@pytest.fixture
def http() -> MagicMock:
    http = MagicMock()
    http.post.return_value = _response({"allowed": True})
    return http


@pytest.fixture
def autumn_settings(mock_settings) -> MagicMock:
    mock_settings.autumn_secret_key = "am_sk_test"
    return mock_settings


@pytest.fixture
def service(mock_supabase, http, autumn_settings):
    with patch("commentguard.services.billing_service.get_settings", return_value=autumn_settings):
        yield BillingService(supabase=mock_supabase, http=http)


def _response(body: dict) -> MagicMock:
    response = MagicMock()
    response.json.return_value = body
    return response


class TestResolveCustomerId:
    """Tests for resolve_customer_id()."""

    @pytest.mark.unit
    def test_user_is_customer(self, service, mock_supabase) -> None:
        assert service.resolve_customer_id("user-1", None) == "user-1"
        mock_supabase.table.assert_not_called()

    @pytest.mark.unit
    def test_client_billed_to_agency(self, service, mock_supabase) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"user_id": "agency-1"}])
        assert service.resolve_customer_id("user-1", "client-1") == "agency-1"
        mock_supabase.table.assert_called_with("clients")

    @pytest.mark.unit
    def test_unknown_client(self, service, mock_supabase) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[])
        assert service.resolve_customer_id(None, "client-1") is None

    @pytest.mark.unit
    def test_no_owner(self, service) -> None:
        assert service.resolve_customer_id(None, None) is None


class TestCheckFeatureAllowed:
    """Tests for check_feature_allowed()."""

    @pytest.mark.unit
    def test_allowed(self, service, http) -> None:
        assert service.check_feature_allowed("user-1", None) is True
        args, kwargs = http.post.call_args
        assert args[0] == "https://api.useautumn.com/v1/check"
        assert kwargs["headers"] == {"Authorization": "Bearer am_sk_test"}
        assert kwargs["json"] == {"customer_id": "user-1", "feature_id": "comments_moderated"}

    @pytest.mark.unit
    def test_exhausted(self, service, http) -> None:
        http.post.return_value = _response({"allowed": False})
        assert service.check_feature_allowed("user-1", None) is False

    @pytest.mark.unit
    def test_missing_allowed_field_allows(self, service, http) -> None:
        http.post.return_value = _response({})
        assert service.check_feature_allowed("user-1", None) is True

    @pytest.mark.unit
    def test_http_failure_fails_open(self, service, http) -> None:
        http.post.side_effect = httpx.ConnectError("down")
        assert service.check_feature_allowed("user-1", None) is True

    @pytest.mark.unit
    def test_no_customer_allows(self, service, http) -> None:
        assert service.check_feature_allowed(None, None) is True
        http.post.assert_not_called()

    @pytest.mark.unit
    def test_unconfigured_allows(self, service, http, autumn_settings) -> None:
        autumn_settings.autumn_secret_key = ""
        assert service.check_feature_allowed("user-1", None) is True
        http.post.assert_not_called()


class TestTrack:
    """Tests for track()."""

    @pytest.mark.unit
    def test_sends_event(self, service, http) -> None:
        service.track("user-1", None)
        assert http.post.call_args.kwargs["json"]["send_event"] is True

    @pytest.mark.unit
    def test_failure_is_swallowed(self, service, http) -> None:
        http.post.side_effect = httpx.ConnectError("down")
        service.track("user-1", None)
