import asyncio
from typing import Any, Callable

import httpx

from tribe_api.clients.workflow_client import WorkflowClient
from tribe_api.clients.wordpress_client import WordPressClient
from tribe_api.db.session import get_session
from tribe_api.db.models import WooCommerceProduct
from tribe_api.db import crud

WP_SETTINGS = {
    "wordpress_url": "https://shop.test",
    "wordpress_api_key": "ck_key",
    "wordpress_api_secret": "cs_secret",
}


def run(coro):
    return asyncio.run(coro)


def in_session(fn: Callable, *args: Any, **kwargs: Any):
    """Run one crud function in its own session and event loop."""
    async def go():
        async with get_session() as s:
            return await fn(s, *args, **kwargs)
    return run(go())


def workflow_client(handler) -> WorkflowClient:
    return WorkflowClient("http://workflow.test/webhook/coach", transport=httpx.MockTransport(handler))


def wordpress_factory(handler):
    def make(url, key, secret):
        return WordPressClient(url, key, secret, transport=httpx.MockTransport(handler))
    return make


def store_wp_settings(values=None):
    in_session(crud.upsert_integration_settings, dict(values or WP_SETTINGS))


def make_product(**kw) -> WooCommerceProduct:
    data = {
        "id": kw.pop("id", 1),
        "woocommerce_id": kw.pop("woocommerce_id", 100),
        "name": "دوره کوچینگ فردی",
        "description": "",
        "short_description": "",
        "price": 100000.0,
        "sale_price": None,
        "regular_price": 100000.0,
        "categories": [],
        "status": "publish",
        "in_stock": True,
        "product_type": None,
    }
    data.update(kw)
    return WooCommerceProduct(**data)


def signup_and_login(client, email="user@example.com", password="secret123", full_name="کاربر تست", role=None) -> dict:
    r = client.post("/auth/signup", json={"email": email, "password": password, "full_name": full_name})
    assert r.status_code == 201, r.text
    user_id = r.json()["id"]
    if role:
        in_session(crud.set_user_role, user_id, role)
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"user_id": user_id, "headers": {"Authorization": f"Bearer {r.json()['access_token']}"}}
