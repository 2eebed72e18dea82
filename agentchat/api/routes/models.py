"""Model catalogue, tool groups and tag directory."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.api.schemas import TagResponse, ToolGroupResponse, TopTagResponse
from agentchat.database import get_session
from agentchat.repositories.models import get_all_models
from agentchat.repositories.records import ModelRecord
from agentchat.repositories.tags import search_tags, select_all_tags, select_top_tags
from agentchat.repositories.tools import get_all_tool_groups

router = APIRouter()


@router.get("/models", response_model=list[ModelRecord])
async def list_models(session: AsyncSession = Depends(get_session)):
    """Every model an agent can be bound to."""
    return await get_all_models(session)


@router.get("/tool-groups", response_model=list[ToolGroupResponse])
async def list_tool_groups(session: AsyncSession = Depends(get_session)):
    return await get_all_tool_groups(session)


@router.get("/tags", response_model=list[TagResponse])
async def list_tags(
    q: str | None = Query(None, max_length=100),
    session: AsyncSession = Depends(get_session),
):
    if q:
        return await search_tags(session, q)
    return await select_all_tags(session)


@router.get("/tags/top", response_model=list[TopTagResponse])
async def list_top_tags(
    limit: int = Query(10, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
):
    """Tags used by the most agents."""
    rows = await select_top_tags(session, limit)
    return [TopTagResponse(id=tag.id, name=tag.name, count=count) for tag, count in rows]
