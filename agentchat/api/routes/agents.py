"""Agent directory, agent management and knowledge ingestion."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from agentchat.api.middleware.auth import get_current_user, get_optional_user
from agentchat.api.schemas import (
    AgentCreateRequest,
    AgentDetail,
    AgentListResponse,
    AgentMinimal,
    AgentModelResponse,
    AgentSummary,
    AgentUpdateRequest,
    KnowledgeCreateRequest,
    KnowledgeIngestResponse,
    KnowledgeResponse,
)
from agentchat.config import settings
from agentchat.database import get_session
from agentchat.errors import NotFoundError, PermissionDeniedError, ValidationError
from agentchat.integrations.knowledge_base import WebScraper, get_kb_client
from agentchat.models import Agent, KnowledgeType, Visibility
from agentchat.repositories.agents import (
    DEFAULT_PAGE_SIZE,
    count_agents,
    default_model_id,
    delete_agent,
    delete_knowledge,
    insert_agent,
    insert_knowledge,
    select_agent_by_id,
    select_agent_by_slug,
    select_agents_by_creator_id,
    select_featured_agents,
    select_knowledge_by_agent_id,
    select_recent_agents,
    set_agent_models,
    update_agent,
    upsert_suggested_prompts,
)
from agentchat.repositories.tags import set_agent_tags
from agentchat.repositories.tools import invalidate_agent_tools_cache, set_agent_tool_groups
from agentchat.services.auth import SessionUser
from agentchat.utils import parse_agent_slug

logger = structlog.get_logger()

router = APIRouter(prefix="/agents")


def _can_view(agent: Agent, user: SessionUser | None) -> bool:
    if agent.visibility != Visibility.PRIVATE.value:
        return True
    return user is not None and (user.id == agent.creator_id or user.is_admin)


def _detail(agent: Agent) -> AgentDetail:
    models = [
        AgentModelResponse(
            model_id=binding.model_id,
            is_default=binding.is_default,
            model_display_name=binding.model.model_display_name if binding.model else None,
            model=binding.model.model if binding.model else None,
            provider=binding.model.provider if binding.model else None,
        )
        for binding in agent.agent_models
    ]
    summary = AgentSummary.model_validate(agent)
    return AgentDetail(
        **summary.model_dump(),
        system_prompt=agent.system_prompt,
        artifacts_enabled=agent.artifacts_enabled,
        customization=agent.customization,
        models=models,
        default_model_id=default_model_id(agent),
        suggested_prompts=list(agent.suggested_prompts.prompts) if agent.suggested_prompts else [],
    )


async def _resolve_agent(session: AsyncSession, agent_ref: str) -> Agent | None:
    """Look an agent up by id, or by a ``name_id`` slug."""
    agent = await select_agent_by_slug(session, agent_ref) if "_" in agent_ref else None
    if agent is None:
        _, agent_id = parse_agent_slug(agent_ref)
        agent = await select_agent_by_id(session, agent_id)
    return agent


async def _visible_agent(session: AsyncSession, agent_ref: str, user: SessionUser | None) -> Agent:
    agent = await _resolve_agent(session, agent_ref)
    if agent is None or not _can_view(agent, user):
        raise NotFoundError("Agent not found")
    return agent


async def _owned_agent(session: AsyncSession, agent_id: str, user: SessionUser) -> Agent:
    agent = await select_agent_by_id(session, agent_id)
    if agent is None:
        raise NotFoundError("Agent not found")
    if agent.creator_id != user.id and not user.is_admin:
        raise PermissionDeniedError("Unauthorized")
    return agent


async def _apply_bindings(
    session: AsyncSession,
    agent_id: str,
    request: AgentCreateRequest | AgentUpdateRequest,
) -> None:
    if request.model_ids is not None:
        await set_agent_models(session, agent_id, request.model_ids, request.default_model_id)
    if request.tag_ids is not None:
        await set_agent_tags(session, agent_id, request.tag_ids)
    if request.tool_group_ids is not None:
        await set_agent_tool_groups(session, agent_id, request.tool_group_ids)
    if request.suggested_prompts is not None:
        await upsert_suggested_prompts(session, agent_id, request.suggested_prompts)


@router.get("", response_model=AgentListResponse)
async def list_agents(
    tag: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    """Public agents, newest first."""
    agents = await select_recent_agents(
        session,
        tag_name=tag,
        search=search,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    total = await count_agents(session, tag_name=tag, search=search)
    return AgentListResponse(
        agents=[AgentSummary.model_validate(a) for a in agents],
        total_count=total,
        page=page,
        page_size=page_size,
    )


@router.get("/featured", response_model=list[AgentSummary])
async def list_featured_agents(session: AsyncSession = Depends(get_session)):
    return await select_featured_agents(session)


@router.get("/mine", response_model=list[AgentSummary])
async def list_my_agents(
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    return await select_agents_by_creator_id(session, user.id)


@router.get("/{agent_ref}", response_model=AgentDetail)
async def get_agent(
    agent_ref: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser | None = Depends(get_optional_user),
):
    """Full agent details by id or slug."""
    return _detail(await _visible_agent(session, agent_ref, user))


@router.get("/{agent_ref}/minimal", response_model=AgentMinimal)
async def get_agent_minimal(
    agent_ref: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser | None = Depends(get_optional_user),
):
    return await _visible_agent(session, agent_ref, user)


@router.post("", response_model=AgentDetail, status_code=201)
async def create_agent(
    request: AgentCreateRequest,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    agent = await insert_agent(
        session,
        name=request.name,
        system_prompt=request.system_prompt,
        creator_id=user.id,
        description=request.description,
        visibility=request.visibility,
        artifacts_enabled=request.artifacts_enabled,
        thumbnail_url=request.thumbnail_url,
        avatar_url=request.avatar_url,
        customization=request.customization,
    )
    await _apply_bindings(session, agent.id, request)
    session.expire(agent)
    return _detail(await select_agent_by_id(session, agent.id))


@router.patch("/{agent_id}", response_model=AgentDetail)
async def patch_agent(
    agent_id: str,
    request: AgentUpdateRequest,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    agent = await _owned_agent(session, agent_id, user)
    values = request.model_dump(
        exclude_unset=True,
        exclude={"name", "model_ids", "default_model_id", "tag_ids", "tool_group_ids", "suggested_prompts"},
    )
    if request.name is not None:
        values["agent_display_name"] = request.name
    if values:
        await update_agent(session, agent_id, **values)
    await _apply_bindings(session, agent_id, request)
    session.expire(agent)
    logger.info("agent_updated", agent_id=agent_id, fields=sorted(values))
    return _detail(await select_agent_by_id(session, agent_id))


@router.delete("/{agent_id}")
async def remove_agent(
    agent_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    await _owned_agent(session, agent_id, user)
    await delete_agent(session, agent_id)
    await invalidate_agent_tools_cache(agent_id)
    return {"message": "Agent deleted"}


@router.get("/{agent_id}/knowledge", response_model=list[KnowledgeResponse])
async def list_knowledge(
    agent_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    await _owned_agent(session, agent_id, user)
    return await select_knowledge_by_agent_id(session, agent_id)


@router.post("/{agent_id}/knowledge", response_model=KnowledgeIngestResponse, status_code=201)
async def add_knowledge(
    agent_id: str,
    request: KnowledgeCreateRequest,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    """Attach knowledge to an agent and embed it for knowledgeSearch.

    Text and markdown are embedded as given; a URL is crawled first.
    """
    await _owned_agent(session, agent_id, user)

    if request.type == KnowledgeType.URL.value:
        if not request.url:
            raise ValidationError("A url is required for url knowledge")
        scraper = WebScraper(
            base_url=request.url,
            max_pages=min(request.max_pages, settings.kb_scrape_max_pages),
            timeout=settings.kb_scrape_timeout,
        )
        try:
            pages = await scraper.scrape()
        except Exception as e:
            logger.error("scrape_failed", url=request.url, error=str(e))
            raise HTTPException(status_code=502, detail=f"Scrape failed: {e}")
        finally:
            await scraper.close()
        content = {"pages": [{"url": p["url"], "title": p["title"]} for p in pages]}
    else:
        if not request.text or not request.text.strip():
            raise ValidationError("Text is required for text knowledge")
        pages = [{"url": None, "title": request.title, "content": request.text}]
        content = {"text": request.text}

    item = await insert_knowledge(
        session,
        agent_id=agent_id,
        title=request.title,
        content=content,
        type=request.type,
        source_url=request.url,
    )
    chunks_created = await get_kb_client().ingest_item(session, agent_id, item.id, pages) if pages else 0

    logger.info(
        "knowledge_ingested",
        agent_id=agent_id,
        knowledge_item_id=item.id,
        pages=len(pages),
        chunks=chunks_created,
    )
    return KnowledgeIngestResponse(
        item=KnowledgeResponse.model_validate(item),
        chunks_created=chunks_created,
    )


@router.delete("/{agent_id}/knowledge/{item_id}")
async def remove_knowledge(
    agent_id: str,
    item_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    await _owned_agent(session, agent_id, user)
    if not await delete_knowledge(session, agent_id, item_id):
        raise NotFoundError("Knowledge item not found")
    logger.info("knowledge_deleted", agent_id=agent_id, knowledge_item_id=item_id)
    return {"message": "Knowledge deleted"}
