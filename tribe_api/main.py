# tribe_api/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tribe_api.config import CORS_ALLOW_ORIGINS
from tribe_api.db.session import init_models
from tribe_api.routers.auth import router as auth_router
from tribe_api.routers.admin import router as admin_router
from tribe_api.routers.coach import router as coach_router
from tribe_api.routers.coach_proxy import router as coach_proxy_router
from tribe_api.routers.dashboard import router as dashboard_router
from tribe_api.routers.products import router as products_router
from tribe_api.routers.wordpress_sync import router as wordpress_sync_router


app = FastAPI(title="Mina's Tribe API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials="*" not in CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    """
    Create tables from the ORM models at startup (no migrations yet).
    """
    await init_models()


# 라우터 등록
app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(products_router)
app.include_router(coach_router)
app.include_router(admin_router)
app.include_router(coach_proxy_router)
app.include_router(wordpress_sync_router)


# 헬스체크 (배포 환경 / 로드밸런서 체크용)
@app.get("/health")
async def health():
    return {"ok": True}
