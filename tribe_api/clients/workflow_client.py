# tribe_api/clients/workflow_client.py
import asyncio
from typing import Any, Dict, Optional

import httpx

from tribe_api.config import WORKFLOW_WEBHOOK_URL, WORKFLOW_WEBHOOK_METHOD, WORKFLOW_TIMEOUT


class WorkflowClient:
    """Outbound call to the n8n coaching workflow webhook."""

    def __init__(
        self,
        url: str = WORKFLOW_WEBHOOK_URL,
        *,
        method: str = WORKFLOW_WEBHOOK_METHOD,
        timeout: float = WORKFLOW_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.method = method
        self.timeout = timeout
        self.transport = transport

    async def _send(self, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as c:
            return await c.request(
                self.method,
                self.url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )

    async def forward(self, payload: Dict[str, Any]) -> httpx.Response:
        """
        Send the chat payload once; the whole exchange, body included, is
        bounded by ``timeout``.
        Raises httpx.HTTPError on network failure, asyncio.TimeoutError when
        the deadline passes.
        """
        return await asyncio.wait_for(self._send(payload), self.timeout)
