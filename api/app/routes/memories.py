# api/app/routes/memories.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import (
    get_current_user,
    get_memory_policy,
    get_memory_stores,
    get_prompt_cache,
    get_session,
)
from api.app.schemas.memory import (
    InsightOut,
    MemoryActionRequest,
    MemoryActionResponse,
    MemoryListResponse,
    MemoryRef,
    PersonalMemoryOut,
    PromptContextResponse,
    SharedMemoryOut,
)
from models.user import User
from services.companion_prompt import build_prompt_for_user
from services.memory_actions import apply_memory_action, delete_memory, list_memories
from services.memory_policy import MemoryPolicy
from services.memory_store import MemoryStores
from services.observability import log_event
from services.prompt_cache import PromptCache

router = APIRouter(tags=["memories"])


@router.get("/memories", response_model=MemoryListResponse)
async def get_memories(
    user: User = Depends(get_current_user),
    stores: MemoryStores = Depends(get_memory_stores),
):
    listing = await list_memories(stores, user.id)
    return MemoryListResponse(
        partnership_id=listing.partnership_id,
        personal=[PersonalMemoryOut.model_validate(m) for m in listing.personal],
        shared=[SharedMemoryOut.model_validate(m) for m in listing.shared],
        insights=[InsightOut.model_validate(i) for i in listing.insights],
    )


@router.patch("/memories", response_model=MemoryActionResponse)
async def update_memory(
    body: MemoryActionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    stores: MemoryStores = Depends(get_memory_stores),
    policy: MemoryPolicy = Depends(get_memory_policy),
):
    result = await apply_memory_action(stores, user.id, body.id, body.type, body.action, policy=policy)

    await log_event(db, "memory_feedback", "info", source="api", metadata={
        "user_id": str(user.id),
        "memory_id": str(body.id),
        "memory_type": body.type,
        "action": body.action,
        "confidence": result.confidence,
        "deactivated": result.deactivated,
    })

    return MemoryActionResponse(confidence=result.confidence, deactivated=result.deactivated)


@router.delete("/memories")
async def remove_memory(
    body: MemoryRef,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    stores: MemoryStores = Depends(get_memory_stores),
):
    await delete_memory(stores, user.id, body.id, body.type)

    await log_event(db, "memory_deleted", "info", source="api", metadata={
        "user_id": str(user.id),
        "memory_id": str(body.id),
        "memory_type": body.type,
    })

    return {"ok": True}


@router.get("/memories/prompt-context", response_model=PromptContextResponse)
async def get_prompt_context(
    bot_name: str = "Nova",
    user: User = Depends(get_current_user),
    stores: MemoryStores = Depends(get_memory_stores),
    cache: PromptCache = Depends(get_prompt_cache),
):
    """Memory-aware system prompt for the chat layer."""
    built = await build_prompt_for_user(stores, cache, user.id, bot_name=bot_name, user_name=user.name)
    return PromptContextResponse(
        prompt=built.prompt,
        cache_hit=built.cache_hit,
        personal_count=built.personal_count,
        shared_count=built.shared_count,
        insight_count=built.insight_count,
    )
