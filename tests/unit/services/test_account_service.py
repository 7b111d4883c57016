"""Unit tests for AccountService.

Tests:
- is_commenter_owner() Instagram ID, username and Facebook page
- resolve_owner() from account or page rows
- get_instagram_credentials()
"""

from unittest.mock import MagicMock

import pytest

from commentguard.models.owner_config import OwnerScope
from commentguard.services.account_service import AccountService


@pytest.fixture
def service(mock_supabase) -> AccountService:
    return AccountService(supabase=mock_supabase)


class TestIsCommenterOwner:
    """Tests for is_commenter_owner()."""

    @pytest.mark.unit
    def test_matching_instagram_id(self, service, mock_supabase, make_input) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"instagram_id": "commenter-1", "username": "brand"}])
        assert service.is_commenter_owner(make_input()) is True
        mock_supabase.table.assert_called_with("instagram_accounts")

    @pytest.mark.unit
    def test_matching_username_ignores_at_and_case(self, service, mock_supabase, make_input) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"instagram_id": "other", "username": "@Brand"}])
        assert service.is_commenter_owner(make_input(commenter_username="brand")) is True

    @pytest.mark.unit
    def test_different_commenter(self, service, mock_supabase, make_input) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"instagram_id": "other", "username": "brand"}])
        assert service.is_commenter_owner(make_input()) is False

    @pytest.mark.unit
    def test_empty_usernames_do_not_match(self, service, mock_supabase, make_input) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"instagram_id": "other", "username": None}])
        assert service.is_commenter_owner(make_input(commenter_username="")) is False

    @pytest.mark.unit
    def test_unknown_account(self, service, mock_supabase, make_input) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[])
        assert service.is_commenter_owner(make_input()) is False

    @pytest.mark.unit
    def test_facebook_page(self, service, mock_supabase, make_input) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"facebook_page_id": "page-42"}])
        moderation_input = make_input(instagram_account_id=None, facebook_page_id="fp-1", commenter_id="page-42")
        assert service.is_commenter_owner(moderation_input) is True
        mock_supabase.table.assert_called_with("facebook_pages")


class TestResolveOwner:
    """Tests for resolve_owner()."""

    @pytest.mark.unit
    def test_from_instagram_account(self, service, mock_supabase) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"user_id": "u1", "client_id": None}])
        assert service.resolve_owner("ig-1", None) == OwnerScope(user_id="u1")

    @pytest.mark.unit
    def test_from_facebook_page(self, service, mock_supabase) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"user_id": "u1", "client_id": "c1"}])
        assert service.resolve_owner(None, "fp-1") == OwnerScope(user_id="u1", client_id="c1")
        mock_supabase.table.assert_called_with("facebook_pages")

    @pytest.mark.unit
    def test_missing_row_is_empty(self, service, mock_supabase) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[])
        assert service.resolve_owner("ig-1", None).is_empty is True

    @pytest.mark.unit
    def test_no_ids_is_empty(self, service, mock_supabase) -> None:
        assert service.resolve_owner(None, None).is_empty is True
        mock_supabase.table.assert_not_called()


class TestGetInstagramCredentials:
    """Tests for get_instagram_credentials()."""

    @pytest.mark.unit
    def test_returns_row(self, service, mock_supabase) -> None:
        mock_supabase.execute.return_value = MagicMock(data=[{"instagram_id": "1789", "access_token": "tok"}])
        assert service.get_instagram_credentials("ig-1") == {"instagram_id": "1789", "access_token": "tok"}
        mock_supabase.select.assert_called_with("instagram_id, access_token")
