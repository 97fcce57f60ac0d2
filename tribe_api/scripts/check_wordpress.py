# tribe_api/scripts/check_wordpress.py
import asyncio

from tribe_api.clients.wordpress_client import WordPressClient
from tribe_api.sync import load_settings, SETTING_KEYS

async def main():
    settings = await load_settings()
    url, key, secret = (settings.get(k) for k in SETTING_KEYS)
    if not url or not key or not secret:
        print("❗ wordpress_url / wordpress_api_key / wordpress_api_secret 가 integration_settings 에 없습니다.")
        return

    wp = WordPressClient(url, key, secret)
    r = await wp.get_current_user()
    print("users/me status:", r.status_code)
    print("body:", r.text[:500])

    r = await wp.list_products(per_page=1, status=None)
    print("products status:", r.status_code)
    print("body:", r.text[:500])

if __name__ == "__main__":
    asyncio.run(main())
