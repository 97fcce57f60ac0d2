# tribe_api/routers/wordpress_sync.py
import json, hmac, logging
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from tribe_api.config import WORDPRESS_SYNC_TOKEN, APP_DEBUG
from tribe_api.security import bearer_token
from tribe_api.sync import dispatch, default_wordpress_factory, WordPressFactory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def get_wordpress_factory() -> WordPressFactory:
    return default_wordpress_factory


# ===== 토큰 검증 =====
def verify_sync_token(request: Request) -> bool:
    if not WORDPRESS_SYNC_TOKEN:
        return True
    tok = bearer_token(request.headers.get("Authorization"))
    if not tok:
        return False
    return hmac.compare_digest(tok, WORDPRESS_SYNC_TOKEN)


@router.options("/wordpress-sync")
async def wordpress_sync_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.api_route("/wordpress-sync", methods=["GET", "POST"])
async def wordpress_sync(request: Request, wp_factory: WordPressFactory = Depends(get_wordpress_factory)):
    if not verify_sync_token(request):
        return JSONResponse({"error": "unauthorized"}, status_code=401, headers=CORS_HEADERS)

    try:
        if request.method == "GET":
            action = request.query_params.get("action") or "test_connection"
            data = dict(request.query_params)
        elif "application/json" in (request.headers.get("content-type") or ""):
            body = json.loads((await request.body()).decode("utf-8"))
            action = body.get("action")
            data = body.get("data")
        else:
            action, data = "test_connection", {}
    except (ValueError, AttributeError) as e:
        logger.error("WordPress sync error: unreadable request: %r", e)
        return JSONResponse({"error": str(e)}, status_code=500, headers=CORS_HEADERS)

    logger.info("WordPress sync request method=%s action=%s", request.method, action)
    if APP_DEBUG:
        logger.info("DBG :: wordpress-sync data=%r", data)

    status, body = await dispatch(action, data, wp_factory)
    return JSONResponse(body, status_code=status, headers=CORS_HEADERS)
