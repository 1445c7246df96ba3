"""Supabase Auth admin API client (service-role key)."""

from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import APIClientError, ConflictError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SupabaseAdminClient:
    """Creates, finds and updates auth users through ``/auth/v1/admin``."""

    def __init__(self, supabase_url: str, service_role_key: str, timeout: int = 30):
        self.admin_url = f"{supabase_url.rstrip('/')}/auth/v1/admin/users"
        self.headers = {
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
            "Content-Type": "application/json",
        }
        self.timeout = timeout

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            LOGGER.error(f"Supabase admin request failed: {e}", exc_info=True)
            raise APIClientError(f"Supabase admin request failed: {e}", original_error=e) from e

        if response.status_code >= 400:
            body = response.text
            LOGGER.warning(
                "Supabase admin API error",
                extra={"status_code": response.status_code, "error_body": body[:500]},
            )
            if response.status_code == 422 or "already" in body.lower():
                raise ConflictError(f"User already registered: {body}")
            raise APIClientError(f"Supabase admin API error {response.status_code}: {body}")

        return response.json() if response.content else {}

    async def create_user(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a confirmed auth user.

        Raises:
            ConflictError: If the email is already registered
        """
        payload = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": {"full_name": full_name or ""},
        }
        return await self._request("POST", self.admin_url, json=payload)

    async def update_user(self, user_id: str, **attributes) -> Dict[str, Any]:
        return await self._request("PUT", f"{self.admin_url}/{user_id}", json=attributes)

    async def list_users(self, page: int = 1, per_page: int = 1000) -> List[Dict[str, Any]]:
        data = await self._request("GET", self.admin_url, params={"page": page, "per_page": per_page})
        return data.get("users", [])

    async def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Page through all auth users looking for ``email``."""
        page, per_page = 1, 1000
        while True:
            users = await self.list_users(page=page, per_page=per_page)
            for user in users:
                if (user.get("email") or "").lower() == email.lower():
                    return user
            if len(users) < per_page:
                return None
            page += 1


def get_supabase_admin_client() -> SupabaseAdminClient:
    return SupabaseAdminClient(
        supabase_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        timeout=settings.http_timeout,
    )
