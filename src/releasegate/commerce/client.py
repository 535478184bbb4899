"""HTTP client for the commerce store API (customer identity and orders)."""

import logging
from typing import Any, Optional

import httpx

from releasegate.common.config import ReleasegateSettings
from releasegate.commerce.models import CommerceCustomer, CommerceOrder

logger = logging.getLogger(__name__)


class CommerceClient:
    """Reads the signed-in customer and their orders from the store.

    Both calls degrade instead of raising: an unreachable store looks like
    a signed-out customer or a customer without orders.
    """

    def __init__(self, settings: ReleasegateSettings, http: httpx.AsyncClient):
        self.base_url = settings.commerce_url.rstrip("/")
        self.publishable_key = settings.commerce_publishable_key
        self.page_size = settings.commerce_orders_page_size
        self.max_orders = settings.commerce_max_orders
        self._http = http

    def _headers(self, session_token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {session_token}",
            "x-publishable-api-key": self.publishable_key,
        }

    async def get_customer(self, session_token: Optional[str]) -> Optional[CommerceCustomer]:
        """GET /store/customers/me. Returns None if the token is missing or rejected."""
        if not session_token:
            return None
        try:
            resp = await self._http.get(
                f"{self.base_url}/store/customers/me",
                headers=self._headers(session_token),
            )
        except httpx.HTTPError as e:
            logger.error("Failed to get customer: %s", e)
            return None
        if resp.status_code != 200:
            return None

        data = resp.json().get("customer")
        if not data:
            return None
        return CommerceCustomer.from_payload(data, session_token=session_token)

    async def list_orders(self, session_token: Optional[str]) -> list[CommerceOrder]:
        """Fetch every order of the customer, following limit/offset pages."""
        if not session_token:
            return []

        orders: list[CommerceOrder] = []
        offset = 0
        while offset < self.max_orders:
            page = await self._fetch_orders_page(session_token, offset)
            if page is None:
                break
            raw_orders, total = page
            orders.extend(CommerceOrder.from_payload(o) for o in raw_orders)
            offset += len(raw_orders)
            if len(raw_orders) < self.page_size or (total is not None and offset >= total):
                break
        return orders

    async def _fetch_orders_page(
        self, session_token: str, offset: int,
    ) -> Optional[tuple[list[dict[str, Any]], Optional[int]]]:
        try:
            resp = await self._http.get(
                f"{self.base_url}/store/orders",
                params={"limit": self.page_size, "offset": offset},
                headers=self._headers(session_token),
            )
        except httpx.HTTPError as e:
            logger.error("Failed to get orders: %s", e)
            return None
        if resp.status_code != 200:
            logger.warning(
                "Order listing returned HTTP %s", resp.status_code,
                extra={"upstream": "commerce", "status_code": resp.status_code},
            )
            return None

        data = resp.json()
        return data.get("orders") or [], data.get("count")
