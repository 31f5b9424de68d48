"""
User data router
Opt-in/opt-out, message ingestion and member-leave housekeeping
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
import logging

from parrot.services.chain_cache import get_chain_cache
from parrot.services.message_store import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class MessageRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Message body")


@router.get("/{user_id}")
async def user_status(user_id: str):
    store = get_store()
    return {
        "ok": True,
        "data": {
            "user_id": user_id,
            "opted_in": store.is_user_opted_in(user_id),
            "messages": store.count_messages(user_id),
        },
    }


@router.post("/{user_id}/opt-in")
async def opt_in(user_id: str):
    get_store().opt_in(user_id)
    logger.info(f"[Users] User {user_id} opted in")
    return {"ok": True, "data": {"user_id": user_id, "opted_in": True}}


@router.post("/{user_id}/opt-out")
async def opt_out(user_id: str):
    deleted = get_store().opt_out(user_id)
    dropped = get_chain_cache().invalidate(user_id)
    logger.info(f"[Users] User {user_id} opted out")
    return {
        "ok": True,
        "data": {"user_id": user_id, "opted_in": False, "deleted_messages": deleted, "dropped_chains": dropped},
    }


@router.post("/{user_id}/messages")
async def add_message(user_id: str, req: MessageRequest):
    store = get_store()
    if not store.is_user_opted_in(user_id):
        raise HTTPException(status_code=403, detail="user has not opted in")
    store.add_message(user_id, req.text)
    get_chain_cache().invalidate(user_id)
    return {"ok": True, "data": {"user_id": user_id}}


@router.post("/{user_id}/leave")
async def member_leave(user_id: str):
    """
    Called by the bot when a member leaves the server.
    Opted-in users have all their stored data removed.
    """
    store = get_store()
    if not store.is_user_opted_in(user_id):
        return {"ok": True, "data": {"user_id": user_id, "deleted": False}}

    logger.info(f"[Users] User {user_id} left the server")
    deleted = store.delete_user(user_id)
    get_chain_cache().invalidate(user_id)
    return {"ok": True, "data": {"user_id": user_id, "deleted": True, "deleted_messages": deleted}}
