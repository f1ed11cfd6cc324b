# api/app/dependencies.py
from __future__ import annotations

import hmac
import uuid
from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.config import get_settings
from db.session import get_db, get_session_factory
from models.user import User
from services.memory_policy import MemoryPolicy
from services.memory_store import MemoryStores
from services.openai_llm import CompletionService, OpenAICompletionService
from services.prompt_cache import PromptCache


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db():
        yield session


async def get_current_user(
    x_user_id: str = Header(..., alias="X-User-Id"),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the user the upstream gateway authenticated."""
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user id")

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user


@lru_cache
def get_prompt_cache() -> PromptCache:
    settings = get_settings()
    return PromptCache(
        max_entries=settings.prompt_cache_max_entries,
        ttl_seconds=settings.prompt_cache_ttl_seconds,
    )


@lru_cache
def get_memory_stores() -> MemoryStores:
    # every store write clears the prompt cache of this process
    return MemoryStores.from_session_factory(
        get_session_factory(),
        hooks=[get_prompt_cache().invalidate],
    )


@lru_cache
def get_completion_service() -> CompletionService:
    return OpenAICompletionService()


def get_memory_policy() -> MemoryPolicy:
    return MemoryPolicy.from_settings(get_settings())


async def require_cron_secret(authorization: str | None = Header(None)) -> None:
    """Bearer shared-secret check for scheduler-only routes. Unset secret means closed."""
    secret = get_settings().cron_secret
    if not secret:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Cron secret not configured")
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {secret}"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
