"""Unit tests for suspicious account router endpoints.

Endpoints tested:
- PUT /{record_id}/auto-hide - toggle_auto_hide()
- PUT /{record_id}/auto-delete - toggle_auto_delete()
- POST /{record_id}/backfill - queue_backfill()
"""

from unittest.mock import MagicMock, patch

import pytest

from commentguard.models.suspicious_account import (
    AutoActionToggleRequest,
    AutoActionToggleResponse,
    SuspiciousAccountNotFoundError,
)
from commentguard.routers.suspicious_accounts import queue_backfill, toggle_auto_delete, toggle_auto_hide


@pytest.fixture
def mock_service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def executor() -> MagicMock:
    return MagicMock()


def _response(**kwargs) -> AutoActionToggleResponse:
    fields = {"id": "sa-1", "auto_hide_enabled": False, "auto_delete_enabled": False, "is_blocked": False}
    fields.update(kwargs)
    return AutoActionToggleResponse(**fields)


class TestToggleAutoHide:
    """Tests for the toggle_auto_hide endpoint."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_enables_auto_hide(self, mock_request, mock_service, executor) -> None:
        mock_service.set_auto_hide.return_value = _response(auto_hide_enabled=True, comments_processed=3)

        result = await toggle_auto_hide(
            request=mock_request,
            record_id="sa-1",
            body=AutoActionToggleRequest(enabled=True),
            service=mock_service,
            executor=executor,
        )

        assert result.auto_hide_enabled is True
        assert result.comments_processed == 3
        mock_service.set_auto_hide.assert_called_once_with("sa-1", True, executor)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_record_propagates(self, mock_request, mock_service, executor) -> None:
        """Not found is mapped to 404 by the app-level exception handler."""
        mock_service.set_auto_hide.side_effect = SuspiciousAccountNotFoundError("sa-404")

        with pytest.raises(SuspiciousAccountNotFoundError):
            await toggle_auto_hide(
                request=mock_request,
                record_id="sa-404",
                body=AutoActionToggleRequest(enabled=True),
                service=mock_service,
                executor=executor,
            )


class TestToggleAutoDelete:
    """Tests for the toggle_auto_delete endpoint."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_disables_auto_delete(self, mock_request, mock_service, executor) -> None:
        mock_service.set_auto_delete.return_value = _response(is_blocked=True)

        result = await toggle_auto_delete(
            request=mock_request,
            record_id="sa-1",
            body=AutoActionToggleRequest(enabled=False),
            service=mock_service,
            executor=executor,
        )

        assert result.auto_delete_enabled is False
        assert result.is_blocked is True
        mock_service.set_auto_delete.assert_called_once_with("sa-1", False, executor)


class TestQueueBackfill:
    """Tests for the queue_backfill endpoint."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_queues_task(self, mock_request) -> None:
        with patch("commentguard.routers.suspicious_accounts.backfill_suspicious_account_task") as mock_task:
            mock_task.delay.return_value = MagicMock(id="task-9")

            result = await queue_backfill(
                request=mock_request,
                record_id="sa-1",
                body=AutoActionToggleRequest(enabled=True),
                action="delete",
            )

        assert result == {"status": "queued", "task_id": "task-9", "id": "sa-1"}
        mock_task.delay.assert_called_once_with("sa-1", "delete", True)
