# tribe_api/routers/coach.py
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from tribe_api.clients.workflow_client import WorkflowClient
from tribe_api.coach import forward_chat
from tribe_api.coach_session import (
    CoachSession,
    SessionStore,
    SessionBusy,
    SessionEnded,
    ProxyCall,
)
from tribe_api.db.session import get_session
from tribe_api.db.crud import add_chat_message
from tribe_api.routers.coach_proxy import get_workflow_client
from tribe_api.schemas import CoachMessageIn, CoachMessageOut, CoachSessionOut, FollowUpAction
from tribe_api.security import AuthState, require_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coach", tags=["coach"])

_store = SessionStore()


def get_session_store() -> SessionStore:
    return _store


def get_coach_proxy(client: WorkflowClient = Depends(get_workflow_client)) -> ProxyCall:
    async def call(payload):
        return await forward_chat(payload, client)
    return call


def session_out(session: CoachSession) -> CoachSessionOut:
    follow_up = session.follow_up
    return CoachSessionOut(
        session_id=session.id,
        state=session.state.value,
        loading=session.loading,
        result=session.result,
        follow_up=FollowUpAction(label=follow_up.label, url=follow_up.url) if follow_up else None,
        messages=[
            CoachMessageOut(id=m.id, text=m.text, sender=m.sender, timestamp=m.timestamp)
            for m in session.messages
        ],
    )


async def save_exchange(user_id: str, message: str, response: str, session_id: str) -> None:
    """Background write of one chat turn; failures are only logged."""
    try:
        async with get_session() as s:
            await add_chat_message(s, user_id=user_id, message=message, response=response, session_id=session_id)
    except SQLAlchemyError as e:
        logger.error("failed to store chat message session=%s: %r", session_id, e)


def _owned(store: SessionStore, session_id: str, state: AuthState) -> CoachSession:
    session = store.get(session_id, state.user_id)
    if session is None:
        raise HTTPException(status_code=404, detail="session not found")
    return session


@router.post("/sessions", response_model=CoachSessionOut, status_code=201)
async def create_session(
    state: AuthState = Depends(require_user),
    store: SessionStore = Depends(get_session_store),
    proxy: ProxyCall = Depends(get_coach_proxy),
):
    return session_out(store.create(state.user_id, proxy))


@router.get("/sessions/{session_id}", response_model=CoachSessionOut)
async def get_coach_session(
    session_id: str,
    state: AuthState = Depends(require_user),
    store: SessionStore = Depends(get_session_store),
):
    return session_out(_owned(store, session_id, state))


@router.post("/sessions/{session_id}/messages", response_model=CoachSessionOut)
async def send_message(
    session_id: str,
    payload: CoachMessageIn,
    background: BackgroundTasks,
    state: AuthState = Depends(require_user),
    store: SessionStore = Depends(get_session_store),
):
    session = _owned(store, session_id, state)
    try:
        exchange = await session.send(payload.text)
    except SessionEnded:
        raise HTTPException(status_code=409, detail="chat has ended")
    except SessionBusy:
        raise HTTPException(status_code=409, detail="a message is already being sent")

    if exchange is not None:
        background.add_task(save_exchange, state.user_id, exchange.user.text, exchange.ai.text, session.id)
    return session_out(session)
