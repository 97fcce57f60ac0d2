# tribe_api/coach.py
"""
AI coach plumbing shared by the chat proxy function and the coach chat screen.

- ``forward_chat``: forward one chat payload to the n8n workflow and always
  come back with a ``(status, body)`` pair the chat UI can render.
- ``normalize_reply``: pick the display text out of the workflow reply.
- ``extract_result``: strip the trailing ```json {"status":"done",...}``` block
  the workflow appends when the assessment is finished.
"""
import re, json, asyncio, logging
from typing import Any, Dict, Optional, Tuple

import httpx

from tribe_api.clients.workflow_client import WorkflowClient
from tribe_api.config import APP_DEBUG

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE      = "متأسفم، در حال حاضر سرویس در دسترس نیست. لطفاً بعداً دوباره تلاش کنید."
PROCESSING_ERROR_MESSAGE = "متأسفم، خطایی در پردازش درخواست رخ داد. لطفاً دوباره تلاش کنید."
NOT_UNDERSTOOD_MESSAGE   = "متأسفم، نتوانستم پاسخ مناسبی دریافت کنم."
NETWORK_ERROR_MESSAGE    = "متأسفم، خطایی در ارتباط رخ داد. لطفاً دوباره تلاش کنید."

THERAPY    = "تراپی"
COACHING   = "کوچینگ"
MENTORING  = "منتورینگ"
RESULT_LABELS = (THERAPY, COACHING, MENTORING)

RESULT_MESSAGES = {
    COACHING: "بر اساس صحبت‌های شما، کوچینگ برای شما مناسب است. کوچینگ به شما کمک می‌کند تا اهداف خود را مشخص کرده و مسیر رسیدن به آنها را طراحی کنید.",
    THERAPY: "بر اساس صحبت‌های شما، درمان روان‌شناختی (تراپی) برای شما توصیه می‌شود. تراپی به شما کمک می‌کند تا با مسائل عمیق‌تر روانی خود کار کنید.",
    MENTORING: "بر اساس صحبت‌های شما، منتورینگ برای شما مناسب است. منتورینگ به شما کمک می‌کند تا از تجربیات و راهنمایی‌های یک متخصص با تجربه بهره‌مند شوید.",
}
DEFAULT_RESULT_MESSAGE = "متشکرم از صحبت‌هایتان. بر اساس بررسی، راهنمایی مناسب برای شما مشخص شده است."

_RESULT_BLOCK_RE = re.compile(
    r'\s*```(?:json)?\s*'
    r'\{\s*"status"\s*:\s*"done"\s*,\s*"result"\s*:\s*"(' + "|".join(RESULT_LABELS) + r')"\s*\}'
    r'\s*```\s*$'
)


def fallback(message: str) -> list:
    return [{"output": message}]


# ===== proxy =====
async def forward_chat(payload: Dict[str, Any], client: WorkflowClient) -> Tuple[int, Any]:
    """
    Returns (status_code, body). Upstream 2xx is passed through (non-JSON text
    wrapped as [{"output": text}]); anything else becomes 200 + fallback.
    """
    logger.info("Forwarding chat to workflow webhook user=%s", payload.get("user_id"))
    try:
        resp = await client.forward(payload)
    except (httpx.HTTPError, asyncio.TimeoutError) as e:
        logger.error("Workflow webhook unreachable: %r", e)
        return 200, fallback(UNAVAILABLE_MESSAGE)

    if not resp.is_success:
        logger.error("Workflow webhook HTTP error status=%s", resp.status_code)
        return 200, fallback(UNAVAILABLE_MESSAGE)

    raw = resp.text
    if APP_DEBUG:
        logger.info("\n===== WORKFLOW RAW RESPONSE =====\n%s", raw)

    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Workflow webhook returned non-JSON body, wrapping as output")
        data = fallback(raw)
    return resp.status_code, data


# ===== reply parsing =====
def normalize_reply(body: Any) -> str:
    if isinstance(body, list) and body and isinstance(body[0], dict) and body[0].get("output"):
        return str(body[0]["output"])
    if isinstance(body, dict):
        text = body.get("response") or body.get("message")
        if text:
            return str(text)
    return NOT_UNDERSTOOD_MESSAGE


def structured_result(body: Any) -> Optional[str]:
    """{"status": "done", "result": <label>} sent as the whole reply."""
    if isinstance(body, dict) and body.get("status") == "done" and body.get("result") in RESULT_LABELS:
        return body["result"]
    return None


def extract_result(text: str) -> Tuple[str, Optional[str]]:
    """
    Returns (display_text, label). When the trailing result block is present
    it is removed from the text and its label returned; otherwise label is None.
    """
    m = _RESULT_BLOCK_RE.search(text or "")
    if not m:
        return text, None
    return text[:m.start()].rstrip(), m.group(1)


def result_message(label: str) -> str:
    return RESULT_MESSAGES.get(label, DEFAULT_RESULT_MESSAGE)
