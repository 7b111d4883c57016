"""
Meta Graph API actions on comments and commenters.

Every call returns True on success and False on any failure; callers record
the failure locally rather than handling exceptions.
"""

import logging
from typing import Any, Optional

import httpx

from commentguard.core.config import get_settings
from commentguard.models.moderation import Platform

logger = logging.getLogger(__name__)


class PlatformService:
    def __init__(self, http: Optional[httpx.Client] = None) -> None:
        self._http = http

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=get_settings().platform_timeout_seconds)
        return self._http

    def _url(self, node_id: str) -> str:
        return f"{get_settings().graph_api_base_url}/{node_id}"

    def _request(self, method: str, node_id: str, **kwargs: Any) -> bool:
        node_id = (node_id or "").strip()
        if not node_id:
            logger.error("Graph API %s called with an empty node ID", method)
            return False
        try:
            response = self.http.request(method, self._url(node_id), **kwargs)
        except httpx.HTTPError as e:
            logger.error("Graph API %s %s failed: %s", method, node_id, e)
            return False

        if response.status_code != 200:
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            logger.error(
                "Graph API %s %s returned %s: %s", method, node_id, response.status_code, message
            )
            return False

        try:
            return bool(response.json().get("success", False))
        except ValueError:
            return False

    def hide_comment(self, comment_id: str, access_token: str, platform: Platform) -> bool:
        if platform == Platform.FACEBOOK:
            return self._request(
                "POST", comment_id, params={"access_token": access_token, "is_hidden": "true"}
            )
        return self._request(
            "POST", comment_id, data={"hide": "true", "access_token": access_token}
        )

    def delete_comment(self, comment_id: str, access_token: str, platform: Platform) -> bool:
        return self._request("DELETE", comment_id, params={"access_token": access_token})

    def block_user(self, user_id: str, access_token: str, platform: Platform) -> bool:
        """Only Instagram exposes a block endpoint."""
        if platform != Platform.INSTAGRAM:
            logger.info("Blocking is not supported on %s; recorded locally only", platform.value)
            return False
        return self._request(
            "POST", f"{user_id}/blocked_users", params={"access_token": access_token}
        )
