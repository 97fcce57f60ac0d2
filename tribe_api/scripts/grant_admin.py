# tribe_api/scripts/grant_admin.py
"""
Usage: python -m tribe_api.scripts.grant_admin user@example.com [admin|user]
"""
import asyncio, sys

from tribe_api.db.session import get_session, init_models
from tribe_api.db.crud import get_profile_by_email, set_user_role

async def main(email: str, role: str):
    await init_models()
    async with get_session() as s:
        profile = await get_profile_by_email(s, email)
        if profile is None:
            print(f"❗ no profile for {email}")
            return
        await set_user_role(s, profile.id, role)
    print(f"✅ {email} -> {role}")

if __name__ == "__main__":
    if len(sys.argv) < 2 or (len(sys.argv) > 2 and sys.argv[2] not in ("admin", "user")):
        print(__doc__.strip())
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else "admin"))
