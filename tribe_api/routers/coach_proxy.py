# tribe_api/routers/coach_proxy.py
import json, logging
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from tribe_api.clients.workflow_client import WorkflowClient
from tribe_api.coach import forward_chat, fallback, PROCESSING_ERROR_MESSAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def get_workflow_client() -> WorkflowClient:
    return WorkflowClient()


@router.options("/ai-coach-proxy")
async def ai_coach_proxy_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


# ===== 프록시 엔드포인트 =====
@router.post("/ai-coach-proxy")
async def ai_coach_proxy(request: Request, client: WorkflowClient = Depends(get_workflow_client)):
    try:
        payload = json.loads((await request.body()).decode("utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("chat payload must be a JSON object")
        status, body = await forward_chat(payload, client)
    except Exception:
        logger.exception("Error in ai-coach-proxy")
        status, body = 200, fallback(PROCESSING_ERROR_MESSAGE)

    return JSONResponse(body, status_code=status, headers=CORS_HEADERS)
