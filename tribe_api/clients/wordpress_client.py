# tribe_api/clients/wordpress_client.py
from typing import Any, Dict, Optional

import httpx

from tribe_api.config import WORDPRESS_TIMEOUT


class WordPressClient:
    """
    WordPress / WooCommerce REST API (basic auth: api key + api secret).
    Methods return the raw httpx.Response; callers decide on status handling.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_secret: str,
        *,
        timeout: float = WORDPRESS_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = httpx.BasicAuth(api_key or "", api_secret or "")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=self.auth,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Content-Type": "application/json"},
        )

    async def get_current_user(self) -> httpx.Response:
        async with self._client() as c:
            return await c.get("/wp-json/wp/v2/users/me")

    async def create_user(self, body: Dict[str, Any]) -> httpx.Response:
        async with self._client() as c:
            return await c.post("/wp-json/wp/v2/users", json=body)

    async def list_products(self, per_page: int = 100, status: Optional[str] = "publish") -> httpx.Response:
        params: Dict[str, Any] = {"per_page": per_page}
        if status:
            params["status"] = status
        async with self._client() as c:
            return await c.get("/wp-json/wc/v3/products", params=params)
