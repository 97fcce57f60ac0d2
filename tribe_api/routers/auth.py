# tribe_api/routers/auth.py
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException

from tribe_api import security
from tribe_api.db.session import get_session
from tribe_api.db import crud
from tribe_api.schemas import (
    SignUpRequest,
    SignInRequest,
    PasswordResetRequest,
    PasswordResetConfirm,
    ProfileUpdate,
    ProfileOut,
    AuthStateOut,
    TokenOut,
)
from tribe_api.security import AuthState, require_user

router = APIRouter(prefix="/auth", tags=["auth"])


def auth_state_out(state: AuthState) -> AuthStateOut:
    return AuthStateOut(
        user_id=state.user_id,
        email=state.email,
        role=state.role,
        is_admin=state.is_admin,
        profile=ProfileOut.model_validate(state.profile),
    )


@router.post("/signup", response_model=ProfileOut, status_code=201)
async def sign_up(payload: SignUpRequest):
    return await security.sign_up(payload.email, payload.password, payload.full_name)


@router.post("/login", response_model=TokenOut)
async def sign_in(payload: SignInRequest):
    token, expires_at, profile = await security.sign_in(payload.email, payload.password)
    async with get_session() as s:
        role = await crud.get_role(s, profile.id)
    return TokenOut(
        access_token=token,
        expires_at=expires_at,
        user=auth_state_out(AuthState(profile=profile, role=role)),
    )


@router.post("/logout")
async def sign_out(authorization: Optional[str] = Header(None), state: AuthState = Depends(require_user)):
    await security.sign_out(security.bearer_token(authorization))
    return {"ok": True}


@router.post("/forgot-password")
async def forgot_password(payload: PasswordResetRequest):
    await security.request_password_reset(payload.email)
    return {"ok": True}


@router.post("/reset-password")
async def reset_password(payload: PasswordResetConfirm):
    await security.reset_password(payload.token, payload.password)
    return {"ok": True}


@router.get("/me", response_model=AuthStateOut)
async def me(state: AuthState = Depends(require_user)):
    return auth_state_out(state)


@router.put("/profile", response_model=ProfileOut)
async def update_profile(payload: ProfileUpdate, state: AuthState = Depends(require_user)):
    fields = payload.model_dump(exclude_unset=True)
    async with get_session() as s:
        profile = await crud.update_profile(s, state.user_id, **fields)
    if profile is None:
        raise HTTPException(status_code=404, detail="profile not found")
    return profile
