"""Artifact documents: versions and suggestions."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.api.middleware.auth import get_current_user
from agentchat.api.schemas import DocumentResponse, SuggestionResponse
from agentchat.database import get_session
from agentchat.errors import ActionResult, NotFoundError, PermissionDeniedError
from agentchat.models import Document
from agentchat.repositories.documents import (
    delete_documents_after,
    get_document_by_id,
    get_documents_by_id,
    get_suggestions_by_document_id,
)
from agentchat.services.auth import SessionUser

router = APIRouter(prefix="/documents")


async def _owned_document(session: AsyncSession, document_id: str, user: SessionUser) -> Document:
    document = await get_document_by_id(session, document_id)
    if document is None:
        raise NotFoundError("Document not found")
    if document.user_id != user.id:
        raise PermissionDeniedError("Unauthorized")
    return document


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    """Latest version."""
    return await _owned_document(session, document_id, user)


@router.get("/{document_id}/versions", response_model=list[DocumentResponse])
async def list_versions(
    document_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    await _owned_document(session, document_id, user)
    return await get_documents_by_id(session, document_id)


@router.delete("/{document_id}/versions", response_model=ActionResult)
async def delete_versions_after(
    document_id: str,
    timestamp: datetime = Query(...),
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    """Drop every version saved after ``timestamp``."""
    await _owned_document(session, document_id, user)
    await delete_documents_after(session, document_id, timestamp)
    return ActionResult.ok()


@router.get("/{document_id}/suggestions", response_model=list[SuggestionResponse])
async def list_suggestions(
    document_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    await _owned_document(session, document_id, user)
    return await get_suggestions_by_document_id(session, document_id)
