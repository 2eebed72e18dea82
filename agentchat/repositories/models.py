"""Language model catalogue with cached lookups by id."""

from typing import Any

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.cache import get_cache, model_key
from agentchat.config import settings
from agentchat.models import AgentModel, Message, Model
from agentchat.repositories.records import ModelRecord

logger = structlog.get_logger()


async def invalidate_model_cache(model_id: str) -> None:
    await get_cache().delete(model_key(model_id))


async def get_model_by_id(session: AsyncSession, model_id: str) -> ModelRecord | None:
    cache = get_cache()
    cached = await cache.get_json(model_key(model_id))
    if cached is not None:
        try:
            return ModelRecord.model_validate(cached)
        except ValueError:
            logger.warning("cached_model_invalid", model_id=model_id)

    result = await session.execute(select(Model).where(Model.id == model_id))
    model = result.scalar_one_or_none()
    if model is None:
        return None

    record = ModelRecord.model_validate(model)
    await cache.set_json(model_key(model_id), record.model_dump(mode="json"), settings.model_cache_ttl)
    return record


async def get_all_models(session: AsyncSession) -> list[ModelRecord]:
    result = await session.execute(select(Model).order_by(Model.provider, Model.model_display_name))
    return [ModelRecord.model_validate(m) for m in result.scalars().all()]


async def create_model(session: AsyncSession, **values: Any) -> ModelRecord:
    model = Model(**values)
    session.add(model)
    await session.flush()
    logger.info("model_created", model=model.model, provider=model.provider)
    return ModelRecord.model_validate(model)


async def update_model(session: AsyncSession, model_id: str, **values: Any) -> ModelRecord | None:
    result = await session.execute(select(Model).where(Model.id == model_id))
    model = result.scalar_one_or_none()
    if model is None:
        return None
    for field, value in values.items():
        setattr(model, field, value)
    await session.flush()
    await invalidate_model_cache(model_id)
    return ModelRecord.model_validate(model)


async def is_model_in_use(session: AsyncSession, model_id: str) -> bool:
    """Whether any agent binding or stored message references the model."""
    bindings = await session.execute(
        select(func.count()).select_from(AgentModel).where(AgentModel.model_id == model_id)
    )
    if bindings.scalar_one() > 0:
        return True
    messages = await session.execute(
        select(func.count()).select_from(Message).where(Message.model_id == model_id)
    )
    return messages.scalar_one() > 0


async def delete_model(session: AsyncSession, model_id: str) -> None:
    await session.execute(delete(Model).where(Model.id == model_id))
    await invalidate_model_cache(model_id)
    logger.info("model_deleted", model_id=model_id)
