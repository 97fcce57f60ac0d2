# tribe_api/routers/admin.py
import logging
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from tribe_api.catalog import load_resource
from tribe_api.db.session import get_session
from tribe_api.db import crud
from tribe_api.routers.wordpress_sync import get_wordpress_factory
from tribe_api.schemas import (
    AdminStats,
    ChatHistoryItem,
    RoleUpdate,
    UserWithRole,
    WordPressSettings,
)
from tribe_api.security import require_admin
from tribe_api import sync
from tribe_api.sync import SETTING_KEYS, WordPressFactory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

NO_NAME = "نام تنظیم نشده"
USERS_LOAD_ERROR = "خطا در بارگذاری کاربران"
CHAT_HISTORY_LOAD_ERROR = "خطا در بارگذاری تاریخچه چت‌ها"
STATS_LOAD_ERROR = "خطا در بارگذاری آمار"
SETTINGS_LOAD_ERROR = "خطا در بارگیری تنظیمات"


# ===== stats =====
async def _stats() -> AdminStats:
    now = datetime.now(timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - timedelta(days=7)
    async with get_session() as s:
        return AdminStats(
            total_users=await crud.count_profiles(s),
            total_messages=await crud.count_chat_messages(s),
            today_messages=await crud.count_chat_messages(s, since=today),
            weekly_users=await crud.count_profiles(s, since=week_ago),
        )


@router.get("/stats", response_model=AdminStats)
async def stats():
    res = await load_resource(_stats, AdminStats(), STATS_LOAD_ERROR)
    return res.data


# ===== users =====
async def _users_with_roles() -> list:
    async with get_session() as s:
        profiles = await crud.list_profiles(s)
        roles = await crud.get_roles(s)
    return [
        UserWithRole(
            id=p.id,
            full_name=p.full_name,
            email=p.email,
            avatar_url=p.avatar_url,
            created_at=p.created_at,
            role=roles.get(p.id, crud.DEFAULT_ROLE),
        )
        for p in profiles
    ]


@router.get("/users", response_model=list[UserWithRole])
async def list_users():
    res = await load_resource(_users_with_roles, [], USERS_LOAD_ERROR)
    if res.error:
        raise HTTPException(status_code=500, detail=res.error)
    return res.data


@router.put("/users/{user_id}/role", response_model=UserWithRole)
async def update_user_role(user_id: str, payload: RoleUpdate):
    async with get_session() as s:
        profile = await crud.get_profile(s, user_id)
        if profile is None:
            raise HTTPException(status_code=404, detail="user not found")
        row = await crud.set_user_role(s, user_id, payload.role)
    logger.info("role of user=%s set to %s", user_id, row.role)
    return UserWithRole(
        id=profile.id,
        full_name=profile.full_name,
        email=profile.email,
        avatar_url=profile.avatar_url,
        created_at=profile.created_at,
        role=row.role,
    )


# ===== chat history =====
@router.get("/chat-history", response_model=list[ChatHistoryItem])
async def chat_history(limit: int = Query(100, ge=1, le=1000)):
    async def query():
        async with get_session() as s:
            rows = await crud.get_recent_chat_messages(s, limit=limit)
            names = await crud.get_profile_names(s)
        return [
            ChatHistoryItem(
                id=r.id,
                user_id=r.user_id,
                message=r.message,
                response=r.response,
                session_id=r.session_id,
                created_at=r.created_at,
                user_name=names.get(r.user_id) or NO_NAME,
            )
            for r in rows
        ]

    res = await load_resource(query, [], CHAT_HISTORY_LOAD_ERROR)
    if res.error:
        raise HTTPException(status_code=500, detail=res.error)
    return res.data


# ===== integration settings =====
@router.get("/integration-settings", response_model=WordPressSettings)
async def get_integration_settings():
    res = await load_resource(sync.load_settings, {}, SETTINGS_LOAD_ERROR)
    if res.error:
        raise HTTPException(status_code=500, detail=res.error)
    return WordPressSettings(**{k: res.data.get(k) or "" for k in SETTING_KEYS})


@router.put("/integration-settings", response_model=WordPressSettings)
async def save_integration_settings(payload: WordPressSettings):
    async with get_session() as s:
        await crud.upsert_integration_settings(s, payload.model_dump())
    return payload


@router.post("/integration-settings/test")
async def test_integration_settings(
    payload: WordPressSettings,
    wp_factory: WordPressFactory = Depends(get_wordpress_factory),
):
    if not payload.wordpress_url:
        raise HTTPException(status_code=400, detail="لطفا آدرس وردپرس را وارد کنید")
    status, body = await sync.test_connection(payload.model_dump(), wp_factory)
    return JSONResponse(body, status_code=status)


# ===== WordPress / WooCommerce =====
@router.post("/wordpress/sync-users")
async def sync_users_to_wordpress(wp_factory: WordPressFactory = Depends(get_wordpress_factory)):
    settings = await sync.load_settings()
    if not all(settings.get(k) for k in SETTING_KEYS):
        raise HTTPException(status_code=400, detail="لطفا تمام تنظیمات وردپرس را تکمیل کنید")

    async with get_session() as s:
        users = await crud.list_unsynced_profiles(s)

    synced, failed = 0, 0
    for user in users:
        status, body = await sync.dispatch(
            "sync_supabase_user_to_wordpress",
            {
                "user_id": user.id,
                "email": user.email,
                "display_name": user.full_name or user.email.split("@")[0],
            },
            wp_factory,
        )
        if status == 200:
            synced += 1
        else:
            failed += 1
            logger.error("Error syncing user %s: %s", user.email, body.get("error"))

    return {"total": len(users), "synced": synced, "failed": failed}


@router.post("/products/sync")
async def sync_products(wp_factory: WordPressFactory = Depends(get_wordpress_factory)):
    status, body = await sync.sync_woocommerce_products(wp_factory)
    return JSONResponse(body, status_code=status)


@router.post("/products/test")
async def test_products(wp_factory: WordPressFactory = Depends(get_wordpress_factory)):
    status, body = await sync.test_products_connection(wp_factory)
    return JSONResponse(body, status_code=status)
