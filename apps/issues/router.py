from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from apps.issues.schemas import (
    AttachmentDetailOut,
    IssueCreate,
    IssueDetailOut,
    IssueListResponse,
    IssueUpdate,
    MessageResponse,
)
from apps.issues.service import IssueService
from apps.storage.interface import FileStorage
from apps.storage.service import get_storage, read_uploads
from common.multipart import parse_form_json
from common.pagination import MAX_PAGE_SIZE
from common.responses import message_response
from models.base import get_db
from models.user import User
from security.auth_backend import get_current_active_user

router = APIRouter(prefix="/api/issues", tags=["Issues"])


@router.post("", response_model=IssueDetailOut, status_code=status.HTTP_201_CREATED)
async def create_issue(
    issueData: str = Form(..., description="JSON document with the issue fields"),
    files: Optional[List[UploadFile]] = File(default=None),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    """
    Report a new issue. At least one file is required.
    """
    payload = parse_form_json(IssueCreate, issueData, "issueData")
    uploads = await read_uploads(files)
    return await IssueService.create_issue(db, storage, current_user, payload, uploads)


@router.get("", response_model=IssueListResponse)
async def list_issues(
    page: int = Query(1, ge=0, description="1-based; 0 is treated as the first page"),
    size: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    sort: Optional[List[str]] = Query(default=None, description="field[,asc|desc]; repeatable"),
    search: Optional[str] = Query(default=None, description="Search title or description"),
    category: Optional[str] = Query(default=None, description="Category name, or All"),
    status_name: Optional[str] = Query(default=None, alias="status", description="Status name, or All"),
    reported_by: Optional[str] = Query(default=None, alias="reportedBy", description="Set to 'me'"),
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo", description="Set to 'me' (staff/admin)"),
    filters: Optional[List[str]] = Query(default=None, description="field:operator:value; repeatable"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    items, pagination = await IssueService.list_issues(
        db,
        current_user,
        search=search,
        category=category,
        status=status_name,
        reported_by=reported_by,
        assigned_to=assigned_to,
        filters=filters,
        sorts=sort,
        page=page,
        size=size,
    )
    return IssueListResponse(items=items, pagination=pagination)


@router.get("/{issue_id}", response_model=IssueDetailOut, dependencies=[Depends(get_current_active_user)])
async def get_issue(issue_id: int, db: AsyncSession = Depends(get_db)):
    return await IssueService.get_issue(db, issue_id)


@router.put("/{issue_id}", response_model=IssueDetailOut)
async def update_issue(
    issue_id: int,
    payload: IssueUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return await IssueService.update_issue(db, current_user, issue_id, payload)


@router.delete("/{issue_id}", response_model=MessageResponse)
async def delete_issue(
    issue_id: int,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    await IssueService.delete_issue(db, storage, current_user, issue_id)
    return message_response(f"Issue {issue_id} deleted successfully.")


@router.post("/{issue_id}/attachments", response_model=List[AttachmentDetailOut], status_code=status.HTTP_201_CREATED)
async def add_issue_attachments(
    issue_id: int,
    files: Optional[List[UploadFile]] = File(default=None),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    uploads = await read_uploads(files)
    return await IssueService.add_issue_attachments(db, storage, current_user, issue_id, uploads)


@router.delete("/{issue_id}/attachments/{attachment_id}", response_model=MessageResponse)
async def delete_attachment(
    issue_id: int,
    attachment_id: int,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    await IssueService.delete_attachment(db, storage, current_user, issue_id, attachment_id)
    return message_response("Attachment deleted successfully.")
