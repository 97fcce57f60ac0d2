# tribe_api/db/crud.py
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Iterable, Any
from sqlalchemy import select, delete, desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    Profile,
    UserRole,
    AuthToken,
    PasswordReset,
    ChatMessage,
    IntegrationSetting,
    WooCommerceProduct,
)

__all__ = [
    "get_profile", "get_profile_by_email", "create_profile", "update_profile",
    "list_profiles", "list_unsynced_profiles", "get_profile_names",
    "get_role", "get_roles", "set_user_role",
    "add_auth_token", "get_auth_token", "delete_auth_token", "delete_user_tokens",
    "add_password_reset", "get_password_reset", "mark_password_reset_used",
    "add_chat_message", "get_recent_chat_messages",
    "get_integration_settings", "upsert_integration_settings",
    "upsert_product", "list_published_products",
    "count_profiles", "count_chat_messages",
]

DEFAULT_ROLE = "user"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===== profiles =====
async def get_profile(session: AsyncSession, user_id: str) -> Optional[Profile]:
    res = await session.execute(select(Profile).where(Profile.id == user_id))
    return res.scalar_one_or_none()


async def get_profile_by_email(session: AsyncSession, email: str) -> Optional[Profile]:
    res = await session.execute(select(Profile).where(Profile.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def create_profile(
    session: AsyncSession,
    email: str,
    password_hash: str,
    full_name: Optional[str] = None,
    **fields: Any,
) -> Profile:
    """
    이메일 기준으로 새 프로필 생성 (id = uuid4)
    """
    try:
        profile = Profile(
            id=str(uuid.uuid4()),
            email=email.strip().lower(),
            password_hash=password_hash,
            full_name=full_name,
            **fields,
        )
        session.add(profile)
        await session.commit()
        await session.refresh(profile)
        return profile
    except SQLAlchemyError:
        await session.rollback()
        raise


async def update_profile(session: AsyncSession, user_id: str, **fields: Any) -> Optional[Profile]:
    try:
        profile = await get_profile(session, user_id)
        if profile is None:
            return None
        for key, value in fields.items():
            setattr(profile, key, value)
        await session.commit()
        await session.refresh(profile)
        return profile
    except SQLAlchemyError:
        await session.rollback()
        raise


async def list_profiles(session: AsyncSession) -> List[Profile]:
    res = await session.execute(select(Profile).order_by(desc(Profile.created_at)))
    return list(res.scalars().all())


async def list_unsynced_profiles(session: AsyncSession) -> List[Profile]:
    res = await session.execute(select(Profile).where(Profile.wordpress_user_id.is_(None)))
    return list(res.scalars().all())


async def get_profile_names(session: AsyncSession) -> Dict[str, Optional[str]]:
    res = await session.execute(select(Profile.id, Profile.full_name))
    return {row.id: row.full_name for row in res}


# ===== roles =====
async def get_role(session: AsyncSession, user_id: str) -> str:
    res = await session.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    return res.scalar_one_or_none() or DEFAULT_ROLE


async def get_roles(session: AsyncSession) -> Dict[str, str]:
    res = await session.execute(select(UserRole.user_id, UserRole.role))
    return {row.user_id: row.role for row in res}


async def set_user_role(session: AsyncSession, user_id: str, role: str) -> UserRole:
    """
    delete-then-insert in a single transaction: exactly one role row per user.
    """
    try:
        await session.execute(delete(UserRole).where(UserRole.user_id == user_id))
        row = UserRole(user_id=user_id, role=role)
        session.add(row)
        await session.commit()
        await session.refresh(row)
        return row
    except SQLAlchemyError:
        await session.rollback()
        raise


# ===== auth tokens =====
async def add_auth_token(session: AsyncSession, token: str, user_id: str, expires_at: datetime) -> AuthToken:
    try:
        row = AuthToken(token=token, user_id=user_id, expires_at=expires_at)
        session.add(row)
        await session.commit()
        return row
    except SQLAlchemyError:
        await session.rollback()
        raise


async def get_auth_token(session: AsyncSession, token: str) -> Optional[AuthToken]:
    res = await session.execute(select(AuthToken).where(AuthToken.token == token))
    return res.scalar_one_or_none()


async def delete_auth_token(session: AsyncSession, token: str) -> None:
    try:
        await session.execute(delete(AuthToken).where(AuthToken.token == token))
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise


async def delete_user_tokens(session: AsyncSession, user_id: str) -> None:
    try:
        await session.execute(delete(AuthToken).where(AuthToken.user_id == user_id))
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise


async def add_password_reset(session: AsyncSession, token: str, user_id: str, expires_at: datetime) -> PasswordReset:
    try:
        row = PasswordReset(token=token, user_id=user_id, expires_at=expires_at, used=False)
        session.add(row)
        await session.commit()
        return row
    except SQLAlchemyError:
        await session.rollback()
        raise


async def get_password_reset(session: AsyncSession, token: str) -> Optional[PasswordReset]:
    res = await session.execute(select(PasswordReset).where(PasswordReset.token == token))
    return res.scalar_one_or_none()


async def mark_password_reset_used(session: AsyncSession, row: PasswordReset) -> None:
    try:
        row.used = True
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise


# ===== chat =====
async def add_chat_message(
    session: AsyncSession,
    user_id: str,
    message: str,
    response: Optional[str] = None,
    session_id: Optional[str] = None,
) -> int:
    """
    코치 대화 1턴(사용자 메시지 + AI 응답) 저장
    """
    try:
        row = ChatMessage(
            user_id=user_id,
            message=message,
            response=response,
            session_id=session_id,
        )
        session.add(row)
        await session.commit()
        await session.refresh(row)
        return row.id
    except SQLAlchemyError:
        await session.rollback()
        raise


async def get_recent_chat_messages(session: AsyncSession, limit: int = 100) -> List[ChatMessage]:
    stmt = (
        select(ChatMessage)
        .order_by(desc(ChatMessage.created_at), desc(ChatMessage.id))
        .limit(limit)
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


# ===== integration settings =====
async def get_integration_settings(session: AsyncSession, keys: Iterable[str]) -> Dict[str, Optional[str]]:
    stmt = select(IntegrationSetting).where(IntegrationSetting.setting_key.in_(list(keys)))
    res = await session.execute(stmt)
    return {row.setting_key: row.setting_value for row in res.scalars().all()}


async def upsert_integration_settings(session: AsyncSession, values: Dict[str, Optional[str]]) -> None:
    try:
        for key, value in values.items():
            row = await session.get(IntegrationSetting, key)
            if row is None:
                session.add(IntegrationSetting(setting_key=key, setting_value=value))
            else:
                row.setting_value = value
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise


# ===== products =====
async def upsert_product(session: AsyncSession, data: Dict[str, Any]) -> WooCommerceProduct:
    """
    woocommerce_id 기준으로 상품 생성/갱신 (fields overwritten with the latest values)
    """
    try:
        stmt = select(WooCommerceProduct).where(WooCommerceProduct.woocommerce_id == data["woocommerce_id"])
        res = await session.execute(stmt)
        product = res.scalar_one_or_none()

        if product is None:
            product = WooCommerceProduct(**data)
            session.add(product)
        else:
            for key, value in data.items():
                setattr(product, key, value)

        await session.commit()
        await session.refresh(product)
        return product
    except SQLAlchemyError:
        await session.rollback()
        raise


async def list_published_products(session: AsyncSession) -> List[WooCommerceProduct]:
    stmt = (
        select(WooCommerceProduct)
        .where(WooCommerceProduct.status == "publish")
        .order_by(desc(WooCommerceProduct.created_at), desc(WooCommerceProduct.id))
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


# ===== stats =====
async def count_profiles(session: AsyncSession, since: Optional[datetime] = None) -> int:
    stmt = select(func.count()).select_from(Profile)
    if since is not None:
        stmt = stmt.where(Profile.created_at >= since)
    return (await session.execute(stmt)).scalar_one()


async def count_chat_messages(session: AsyncSession, since: Optional[datetime] = None) -> int:
    stmt = select(func.count()).select_from(ChatMessage)
    if since is not None:
        stmt = stmt.where(ChatMessage.created_at >= since)
    return (await session.execute(stmt)).scalar_one()
