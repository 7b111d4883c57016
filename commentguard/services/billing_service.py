"""
Usage billing through the Autumn HTTP API.

Clients are not billing customers: usage for a managed client is charged to
the agency that manages it. Every check fails open so a billing outage never
blocks moderation.
"""

import logging
from typing import Optional

import httpx
from supabase import Client

from commentguard.core.config import get_settings
from commentguard.core.constants import FEATURE_COMMENTS_MODERATED
from commentguard.core.database import get_supabase

logger = logging.getLogger(__name__)


class BillingService:
    def __init__(
        self,
        supabase: Optional[Client] = None,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self._supabase = supabase
        self._http = http

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=5.0)
        return self._http

    def resolve_customer_id(self, user_id: Optional[str], client_id: Optional[str]) -> Optional[str]:
        """The user itself, or the agency that manages the client."""
        if user_id and not client_id:
            return user_id
        if not client_id:
            return None
        result = self.supabase.table("clients").select("user_id").eq("id", client_id).limit(1).execute()
        if not result.data:
            return None
        return result.data[0].get("user_id")

    def _check(self, customer_id: str, feature_id: str, send_event: bool = False) -> bool:
        settings = get_settings()
        payload = {"customer_id": customer_id, "feature_id": feature_id}
        if send_event:
            payload["send_event"] = True
        response = self.http.post(
            f"{settings.autumn_api_url}/check",
            headers={"Authorization": f"Bearer {settings.autumn_secret_key}"},
            json=payload,
        )
        response.raise_for_status()
        return response.json().get("allowed") is not False

    def check_feature_allowed(
        self,
        user_id: Optional[str],
        client_id: Optional[str],
        feature_id: str = FEATURE_COMMENTS_MODERATED,
    ) -> bool:
        """False only when Autumn explicitly says the feature is exhausted."""
        if not get_settings().autumn_secret_key:
            return True
        try:
            customer_id = self.resolve_customer_id(user_id, client_id)
            if not customer_id:
                return True
            return self._check(customer_id, feature_id)
        except Exception as e:
            logger.error("Autumn check (%s) failed, allowing: %s", feature_id, e)
            return True

    def track(
        self,
        user_id: Optional[str],
        client_id: Optional[str],
        feature_id: str = FEATURE_COMMENTS_MODERATED,
    ) -> None:
        """Record one unit of usage. Never raises."""
        if not get_settings().autumn_secret_key:
            return
        try:
            customer_id = self.resolve_customer_id(user_id, client_id)
            if customer_id:
                self._check(customer_id, feature_id, send_event=True)
        except Exception as e:
            logger.error("Autumn usage tracking (%s) failed: %s", feature_id, e)
