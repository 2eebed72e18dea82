"""Administration: model catalogue, tags and credit grants."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from agentchat.api.middleware.auth import require_admin
from agentchat.api.schemas import (
    AddCreditsRequest,
    CreditsResponse,
    ModelCreateRequest,
    ModelUpdateRequest,
    TagCreateRequest,
    TagResponse,
)
from agentchat.database import get_session
from agentchat.errors import ActionResult, NotFoundError
from agentchat.models import ModelType
from agentchat.repositories.credits import add_credits
from agentchat.repositories.models import (
    create_model,
    delete_model,
    get_model_by_id,
    is_model_in_use,
    update_model,
)
from agentchat.repositories.records import ModelRecord
from agentchat.repositories.tags import delete_tag, get_or_create_tag, select_all_tags, update_tag
from agentchat.services.auth import SessionUser

logger = structlog.get_logger()

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.post("/models", response_model=ModelRecord, status_code=201)
async def add_model(
    request: ModelCreateRequest,
    session: AsyncSession = Depends(get_session),
):
    ModelType(request.model_type)
    return await create_model(session, **request.model_dump())


@router.patch("/models/{model_id}", response_model=ModelRecord)
async def edit_model(
    model_id: str,
    request: ModelUpdateRequest,
    session: AsyncSession = Depends(get_session),
):
    values = request.model_dump(exclude_unset=True)
    if "model_type" in values:
        ModelType(values["model_type"])
    model = await update_model(session, model_id, **values)
    if model is None:
        raise NotFoundError("Model not found")
    return model


@router.delete("/models/{model_id}", response_model=ActionResult)
async def remove_model(
    model_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Delete a model no agent or message refers to."""
    if await get_model_by_id(session, model_id) is None:
        raise NotFoundError("Model not found")
    if await is_model_in_use(session, model_id):
        raise HTTPException(status_code=409, detail="Model is in use and cannot be deleted")
    await delete_model(session, model_id)
    return ActionResult.ok()


@router.get("/tags", response_model=list[TagResponse])
async def admin_list_tags(session: AsyncSession = Depends(get_session)):
    return await select_all_tags(session)


@router.post("/tags", response_model=TagResponse, status_code=201)
async def add_tag(
    request: TagCreateRequest,
    session: AsyncSession = Depends(get_session),
):
    return await get_or_create_tag(session, request.name)


@router.patch("/tags/{tag_id}", response_model=TagResponse)
async def rename_tag(
    tag_id: str,
    request: TagCreateRequest,
    session: AsyncSession = Depends(get_session),
):
    tag = await update_tag(session, tag_id, request.name)
    if tag is None:
        raise NotFoundError("Tag not found")
    return tag


@router.delete("/tags/{tag_id}", response_model=ActionResult)
async def remove_tag(
    tag_id: str,
    session: AsyncSession = Depends(get_session),
):
    await delete_tag(session, tag_id)
    return ActionResult.ok()


@router.post("/users/{user_id}/credits", response_model=CreditsResponse)
async def grant_credits(
    user_id: str,
    request: AddCreditsRequest,
    session: AsyncSession = Depends(get_session),
    admin: SessionUser = Depends(require_admin),
):
    balance = await add_credits(
        session,
        user_id,
        request.amount,
        transaction_type=request.type,
        description=request.description,
    )
    logger.info("credits_granted", user_id=user_id, admin_id=admin.id, amount=str(request.amount))
    return CreditsResponse(credit_balance=balance)
