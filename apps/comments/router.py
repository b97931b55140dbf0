from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from apps.comments.schemas import CommentCreate, CommentUpdate
from apps.comments.service import CommentService
from apps.issues.schemas import AttachmentDetailOut, CommentOut, MessageResponse
from apps.storage.interface import FileStorage
from apps.storage.service import get_storage, read_uploads
from common.multipart import parse_form_json
from common.responses import message_response
from models.base import get_db
from models.user import User
from security.auth_backend import get_current_active_user

router = APIRouter(prefix="/api/issues/{issue_id}/comments", tags=["Comments"])


@router.post("", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def add_comment(
    issue_id: int,
    commentData: str = Form(..., description="JSON document with text and optional parentId"),
    files: Optional[List[UploadFile]] = File(default=None),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    payload = parse_form_json(CommentCreate, commentData, "commentData")
    uploads = await read_uploads(files)
    return await CommentService.add_comment(db, storage, current_user, issue_id, payload, uploads)


@router.put("/{comment_id}", response_model=CommentOut)
async def update_comment(
    issue_id: int,
    comment_id: int,
    payload: CommentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return await CommentService.update_comment(db, current_user, issue_id, comment_id, payload)


@router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    issue_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    await CommentService.delete_comment(db, storage, current_user, issue_id, comment_id)
    return message_response("Comment deleted successfully.")


@router.post(
    "/{comment_id}/attachments",
    response_model=List[AttachmentDetailOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_comment_attachments(
    issue_id: int,
    comment_id: int,
    files: Optional[List[UploadFile]] = File(default=None),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    uploads = await read_uploads(files)
    return await CommentService.add_comment_attachments(db, storage, current_user, issue_id, comment_id, uploads)
