# tribe_api/sync.py
"""
WordPress / WooCommerce sync actions.

Every action returns ``(status_code, body)``; the router turns it into a JSON
response. Credentials come from the ``integration_settings`` table.
"""
import re, time, logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx
from sqlalchemy.exc import SQLAlchemyError

from tribe_api.clients.wordpress_client import WordPressClient
from tribe_api.db.session import get_session
from tribe_api.db import crud
from tribe_api.security import hash_password, random_password

logger = logging.getLogger(__name__)

SETTING_KEYS = ("wordpress_url", "wordpress_api_key", "wordpress_api_secret")
PRODUCTS_PER_PAGE = 100

Result = Tuple[int, Dict[str, Any]]
WordPressFactory = Callable[[str, str, str], WordPressClient]

_TAG_RE = re.compile(r"<[^>]*>")


class WordPressConfigError(Exception):
    pass


def default_wordpress_factory(url: str, api_key: str, api_secret: str) -> WordPressClient:
    return WordPressClient(url, api_key, api_secret)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def load_settings() -> Dict[str, Optional[str]]:
    async with get_session() as s:
        return await crud.get_integration_settings(s, SETTING_KEYS)


async def _configured_client(wp_factory: WordPressFactory) -> WordPressClient:
    try:
        settings = await load_settings()
    except SQLAlchemyError as e:
        raise WordPressConfigError(f"Failed to get settings: {e}") from e
    url, key, secret = (settings.get(k) for k in SETTING_KEYS)
    if not url or not key or not secret:
        raise WordPressConfigError("WordPress API credentials not configured")
    return wp_factory(url, key, secret)


# ===== product mapping =====
def strip_html(value: Optional[str]) -> str:
    return _TAG_RE.sub("", value or "")

def _to_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

def product_row(product: Dict[str, Any]) -> Dict[str, Any]:
    """WooCommerce product JSON -> woocommerce_products row."""
    images = product.get("images") or []
    return {
        "woocommerce_id": int(product["id"]),
        "name": product.get("name") or "",
        "description": strip_html(product.get("description")),
        "short_description": strip_html(product.get("short_description")),
        "price": _to_float(product.get("price")) or 0,
        "sale_price": _to_float(product.get("sale_price")),
        "regular_price": _to_float(product.get("regular_price")) or 0,
        "image_url": (images[0] or {}).get("src") if images else None,
        "product_url": product.get("permalink"),
        "categories": [c.get("name") for c in product.get("categories") or [] if c.get("name")],
        "status": product.get("status") or "publish",
        "in_stock": product.get("stock_status") == "instock",
        "last_synced_at": _now(),
    }


# ===== actions =====
async def test_connection(data: Dict[str, Any], wp_factory: WordPressFactory) -> Result:
    try:
        # 저장 전 테스트: 요청에 값이 하나라도 있으면 세 값 모두 요청에서만 사용
        supplied = [data.get(k) for k in SETTING_KEYS]
        if any(supplied):
            url, key, secret = supplied
        else:
            settings = await load_settings()
            url, key, secret = (settings.get(k) for k in SETTING_KEYS)

        if not url or not key or not secret:
            return 400, {"success": False, "error": "WordPress credentials not provided"}

        resp = await wp_factory(url, key, secret).get_current_user()
        if resp.is_success:
            info = resp.json()
            return 200, {
                "success": True,
                "message": "Connection successful",
                "wordpress_user": {
                    "id": info.get("id"),
                    "username": info.get("username") or info.get("slug"),
                    "name": info.get("name"),
                },
            }
        return 400, {"success": False, "error": f"WordPress API error: {resp.status_code} - {resp.text}"}
    except (httpx.HTTPError, SQLAlchemyError, ValueError) as e:
        logger.error("Test connection error: %r", e)
        return 500, {"success": False, "error": f"Connection failed: {e}"}


async def import_wordpress_user(data: Dict[str, Any]) -> Result:
    """WordPress user pushed by the companion plugin -> local profile."""
    logger.info("Syncing WordPress user to local profiles: id=%s", data.get("id"))
    email = (data.get("email") or "").strip()
    if not email:
        return 400, {"error": "Email is required"}

    fields = {
        "wordpress_user_id": data.get("id"),
        "wordpress_username": data.get("username"),
        "sync_source": "wordpress",
        "last_synced_at": _now(),
    }
    async with get_session() as s:
        existing = await crud.get_profile_by_email(s, email)
        if existing is not None:
            try:
                await crud.update_profile(
                    s, existing.id,
                    full_name=data.get("display_name") or existing.full_name,
                    **fields,
                )
            except SQLAlchemyError as e:
                logger.error("Error updating existing user: %r", e)
                return 500, {"error": "Failed to update existing user"}
            return 200, {"success": True, "action": "updated", "user_id": existing.id}

        try:
            profile = await crud.create_profile(
                s,
                email=email,
                password_hash=hash_password(random_password()),
                full_name=data.get("display_name"),
                **fields,
            )
        except SQLAlchemyError as e:
            logger.error("Error creating user from WordPress: %r", e)
            return 500, {"error": "Failed to create auth user"}
    logger.info("Created new user from WordPress data id=%s", profile.id)
    return 200, {"success": True, "action": "created", "user_id": profile.id}


async def export_user_to_wordpress(data: Dict[str, Any], wp_factory: WordPressFactory) -> Result:
    """Local profile -> new WordPress customer."""
    logger.info("Syncing local user to WordPress: id=%s", data.get("user_id") or data.get("id"))
    settings = await load_settings()
    if not settings.get("wordpress_url") or not settings.get("wordpress_api_key"):
        return 400, {"error": "WordPress API credentials not configured"}

    email = data.get("email") or ""
    user_id = data.get("user_id") or data.get("id")
    body = {
        "username": f"{email.split('@')[0]}_{int(time.time() * 1000)}",
        "email": email,
        "name": data.get("full_name") or data.get("display_name") or "User",
        "password": random_password(),
        "roles": ["customer"],
    }
    wp = wp_factory(settings["wordpress_url"], settings["wordpress_api_key"], settings.get("wordpress_api_secret") or "")
    resp = await wp.create_user(body)
    if not resp.is_success:
        logger.error("WordPress API error: %s", resp.text)
        return 500, {"error": "Failed to create WordPress user"}

    wp_user = resp.json()
    async with get_session() as s:
        try:
            await crud.update_profile(
                s, user_id,
                wordpress_user_id=wp_user.get("id"),
                wordpress_username=wp_user.get("username") or body["username"],
                sync_source="supabase",
                last_synced_at=_now(),
            )
        except SQLAlchemyError as e:
            logger.error("Error updating profile with WordPress data: %r", e)
    return 200, {"success": True, "wordpress_user_id": wp_user.get("id")}


async def get_sync_status(data: Dict[str, Any]) -> Result:
    async with get_session() as s:
        profile = await crud.get_profile(s, data.get("user_id") or "")
    status = None
    if profile is not None:
        status = {
            "is_synced": bool(profile.wordpress_user_id),
            "wordpress_user_id": profile.wordpress_user_id,
            "wordpress_username": profile.wordpress_username,
            "sync_source": profile.sync_source,
            "last_synced_at": profile.last_synced_at.isoformat() if profile.last_synced_at else None,
        }
    return 200, {"success": True, "sync_status": status}


async def sync_woocommerce_products(wp_factory: WordPressFactory) -> Result:
    """
    Pulls the first page (100) of published products and upserts each by
    woocommerce_id. A failing product is recorded and the loop continues.
    """
    try:
        logger.info("Starting WooCommerce products sync...")
        wp = await _configured_client(wp_factory)
        resp = await wp.list_products(per_page=PRODUCTS_PER_PAGE, status="publish")
        if not resp.is_success:
            raise WordPressConfigError(f"WooCommerce API error: {resp.status_code} {resp.reason_phrase}")
        products = resp.json()
        if not isinstance(products, list):
            raise ValueError("Unexpected WooCommerce products response")
        logger.info("Fetched %d products from WooCommerce", len(products))
    except (WordPressConfigError, httpx.HTTPError, ValueError) as e:
        logger.error("Error in sync_woocommerce_products: %s", e)
        return 500, {"error": "Failed to sync WooCommerce products", "details": str(e)}

    results = []
    for product in products:
        product_id = product.get("id") if isinstance(product, dict) else None
        try:
            row = product_row(product)
            async with get_session() as s:
                await crud.upsert_product(s, row)
            results.append({"product_id": product_id, "status": "success"})
        except Exception as e:
            logger.error("Error syncing product %s: %r", product_id, e)
            results.append({"product_id": product_id, "status": "error", "error": str(e)})

    ok = sum(1 for r in results if r["status"] == "success")
    failed = len(results) - ok
    logger.info("Products sync completed: %d successful, %d errors", ok, failed)
    return 200, {
        "message": "Products sync completed",
        "total_products": len(products),
        "successful_syncs": ok,
        "failed_syncs": failed,
        "sync_results": results,
    }


async def test_products_connection(wp_factory: WordPressFactory) -> Result:
    try:
        logger.info("Testing WooCommerce products API connection...")
        wp = await _configured_client(wp_factory)
        resp = await wp.list_products(per_page=1, status=None)
        if not resp.is_success:
            raise WordPressConfigError(f"WooCommerce API error: {resp.status_code} {resp.reason_phrase}")
        products = resp.json()
    except (WordPressConfigError, httpx.HTTPError, ValueError) as e:
        logger.error("Error in test_products_connection: %s", e)
        return 500, {
            "success": False,
            "error": "Failed to test WooCommerce products connection",
            "details": str(e),
        }
    return 200, {
        "success": True,
        "message": "WooCommerce products API connection successful",
        "sample_products_count": len(products) if isinstance(products, list) else 0,
    }


# ===== dispatch =====
ACTIONS: Dict[str, Callable[[Dict[str, Any], WordPressFactory], Awaitable[Result]]] = {
    "test_connection": test_connection,
    "sync_wordpress_user_to_supabase": lambda data, wp: import_wordpress_user(data),
    "sync_supabase_user_to_wordpress": export_user_to_wordpress,
    "get_sync_status": lambda data, wp: get_sync_status(data),
    "sync_woocommerce_products": lambda data, wp: sync_woocommerce_products(wp),
    "test_products_connection": lambda data, wp: test_products_connection(wp),
}


async def dispatch(action: Optional[str], data: Optional[Dict[str, Any]], wp_factory: WordPressFactory) -> Result:
    handler = ACTIONS.get(action or "")
    if handler is None:
        return 400, {"error": "Invalid action"}
    try:
        return await handler(data or {}, wp_factory)
    except Exception as e:
        logger.exception("WordPress sync error action=%s", action)
        return 500, {"error": str(e)}
