"""Chat attachment upload and removal."""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
import structlog

from agentchat.api.middleware.auth import get_current_user
from agentchat.api.schemas import AttachmentDeleteRequest, AttachmentResponse
from agentchat.config import settings
from agentchat.errors import PermissionDeniedError
from agentchat.integrations.storage import (
    attachment_key,
    delete_with_retry,
    get_storage,
    is_own_attachment,
    validate_attachment,
)
from agentchat.services.auth import SessionUser

logger = structlog.get_logger()

router = APIRouter(prefix="/attachments")


@router.post("", response_model=AttachmentResponse, response_model_by_alias=True)
async def upload_attachment(
    file: UploadFile = File(...),
    user: SessionUser = Depends(get_current_user),
):
    """Store an image the user attaches to a message."""
    content_type = file.content_type or "application/octet-stream"
    if file.size is not None:
        validate_attachment(content_type, file.size)

    # One byte past the limit is enough to reject an oversized body
    data = await file.read(settings.attachment_max_bytes + 1)
    validate_attachment(content_type, len(data))

    filename = file.filename or "attachment"
    key = attachment_key(user.id, filename)
    url = await get_storage().upload(key, data, content_type)

    logger.info("attachment_uploaded", user_id=user.id, key=key, size=len(data))
    return AttachmentResponse(url=url, name=filename, content_type=content_type)


@router.delete("")
async def delete_attachment(
    request: AttachmentDeleteRequest,
    user: SessionUser = Depends(get_current_user),
):
    storage = get_storage()
    key = storage.key_from_url(request.url)
    if not is_own_attachment(key, user.id):
        raise PermissionDeniedError("Unauthorized")

    if not await delete_with_retry(storage, key):
        raise HTTPException(status_code=500, detail="Failed to delete file after multiple attempts")
    return {"message": "File deleted"}
