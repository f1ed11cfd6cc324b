# api/app/routes/conversations.py
from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.config import get_settings
from api.app.dependencies import (
    get_completion_service,
    get_current_user,
    get_memory_policy,
    get_memory_stores,
    get_session,
)
from api.app.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    MessageCreate,
    MessageResponse,
)
from jobs.queue import EXTRACT_MEMORIES, enqueue
from models.user import User
from services.memory_extraction import run_extraction_for_turn
from services.memory_pipeline import evaluate_turn, spawn_background
from services.memory_policy import MemoryPolicy
from services.memory_store import MemoryStores
from services.openai_llm import CompletionService
from services.scope_lock import user_scope

logger = logging.getLogger(__name__)

router = APIRouter(tags=["conversations"])


@router.post("/conversations", response_model=ConversationResponse)
async def create_conversation(
    body: ConversationCreate,
    user: User = Depends(get_current_user),
    stores: MemoryStores = Depends(get_memory_stores),
):
    conversation = await stores.conversations.create(user.id, body.title)
    return ConversationResponse(id=conversation.id, title=conversation.title)


@router.post("/conversations/{conversation_id}/messages", response_model=MessageResponse)
async def add_message(
    conversation_id: uuid.UUID,
    body: MessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    stores: MemoryStores = Depends(get_memory_stores),
    completion: CompletionService = Depends(get_completion_service),
    policy: MemoryPolicy = Depends(get_memory_policy),
):
    """
    Record one chat turn. On user turns the extraction trigger is evaluated
    and, if it fires, extraction is dispatched without delaying this response.
    """
    conversation = await stores.conversations.get(conversation_id)
    if conversation is None or conversation.user_id != user.id:
        raise HTTPException(status_code=404, detail="Conversation not found")

    message = await stores.conversations.add_message(conversation_id, user.id, body.role, body.content)

    if body.role != "user":
        return MessageResponse(
            message_id=message.id,
            conversation_id=conversation_id,
            user_turn_count=await stores.conversations.count_user_turns(conversation_id),
            extraction_scheduled=False,
        )

    user_turns = await stores.conversations.count_user_turns(conversation_id)
    decision = evaluate_turn(user_turns, body.content, policy.cadence)
    if not decision.run:
        return MessageResponse(
            message_id=message.id,
            conversation_id=conversation_id,
            user_turn_count=user_turns,
            extraction_scheduled=False,
        )

    trace_id = uuid.uuid4().hex
    if get_settings().extraction_dispatch == "queue":
        await enqueue(
            db,
            EXTRACT_MEMORIES,
            {
                "conversation_id": str(conversation_id),
                "user_id": str(user.id),
                "trace_id": trace_id,
            },
            scope_key=user_scope(user.id),
        )
    else:
        spawn_background(
            run_extraction_for_turn(
                stores,
                completion,
                conversation_id,
                user.id,
                policy=policy,
                trace_id=trace_id,
            ),
            name=f"extract-{trace_id}",
        )

    logger.info(
        "trace=%s extraction scheduled conversation=%s turn=%d cadence=%s signals=%s",
        trace_id,
        conversation_id,
        user_turns,
        decision.cadence,
        decision.signals,
    )
    return MessageResponse(
        message_id=message.id,
        conversation_id=conversation_id,
        user_turn_count=user_turns,
        extraction_scheduled=True,
        extraction_signals=decision.signals,
        trace_id=trace_id,
    )
