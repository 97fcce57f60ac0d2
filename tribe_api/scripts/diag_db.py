# tribe_api/scripts/diag_db.py
import asyncio
from sqlalchemy import select, func

from tribe_api.db.session import AsyncSessionLocal, engine, init_models
from tribe_api.db.models import Profile, UserRole, ChatMessage, IntegrationSetting, WooCommerceProduct
from tribe_api.db.crud import add_chat_message, get_recent_chat_messages

TABLES = (Profile, UserRole, ChatMessage, IntegrationSetting, WooCommerceProduct)

async def main():
    print("== DB URL ==")
    print(engine.url.render_as_string(hide_password=True))

    print("== create_all ==")
    await init_models()

    async with AsyncSessionLocal() as s:
        # 1) 테이블 존재 여부 + 건수
        for tbl in TABLES:
            q = select(func.count()).select_from(tbl)
            cnt = (await s.execute(q)).scalar_one()
            print(f"count({tbl.__tablename__}) = {cnt}")

        # 2) 테스트 쓰기
        log_id = await add_chat_message(s, user_id="diag_user_123", message="diag ping", response="diag pong", session_id="diag")
        print("inserted ChatMessage:", log_id)

        print("recent messages:")
        for r in await get_recent_chat_messages(s, limit=3):
            print(" -", r.id, r.user_id, r.message, r.created_at)

if __name__ == "__main__":
    asyncio.run(main())
