from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField, constr


class IssueCreate(BaseModel):
    """
    JSON part (`issueData`) of the multipart create request.
    """
    title: constr(strip_whitespace=True, min_length=10, max_length=255)
    description: constr(strip_whitespace=True, min_length=20)
    category: constr(strip_whitespace=True, min_length=1)
    latitude: float
    longitude: float
    start_date: Optional[datetime] = PydanticField(default=None, alias="startDate")
    due_date: Optional[datetime] = PydanticField(default=None, alias="dueDate")

    model_config = ConfigDict(populate_by_name=True)


class IssueUpdate(BaseModel):
    """
    Partial update. Fields left out (or null) keep their stored value.
    assigneeId=0 removes the current assignee.
    """
    title: Optional[constr(strip_whitespace=True, min_length=10, max_length=255)] = None
    description: Optional[constr(strip_whitespace=True, min_length=20)] = None
    category_id: Optional[int] = PydanticField(default=None, alias="categoryId")
    status_id: Optional[int] = PydanticField(default=None, alias="statusId")
    priority_id: Optional[int] = PydanticField(default=None, alias="priorityId")
    assignee_id: Optional[int] = PydanticField(default=None, alias="assigneeId", ge=0)
    start_date: Optional[datetime] = PydanticField(default=None, alias="startDate")
    due_date: Optional[datetime] = PydanticField(default=None, alias="dueDate")
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = ConfigDict(populate_by_name=True)


class UserSummaryOut(BaseModel):
    id: int
    name: str


class AttachmentOut(BaseModel):
    id: int
    url: str
    file_name: str = PydanticField(alias="fileName")
    file_type: Optional[str] = PydanticField(default=None, alias="fileType")
    created_at: Optional[datetime] = PydanticField(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class AttachmentDetailOut(AttachmentOut):
    """
    Attachment plus its owner; issue_id is set for comment attachments too.
    """
    issue_id: Optional[int] = PydanticField(default=None, alias="issueId")
    comment_id: Optional[int] = PydanticField(default=None, alias="commentId")


class CommentOut(BaseModel):
    id: int
    text: str
    created_at: Optional[datetime] = PydanticField(default=None, alias="createdAt")
    author: Optional[UserSummaryOut] = None
    attachments: List[AttachmentOut] = []
    parent_id: Optional[int] = PydanticField(default=None, alias="parentId")

    model_config = ConfigDict(populate_by_name=True)


class IssueSummaryOut(BaseModel):
    id: int
    title: str
    category: Optional[str] = None
    status: str
    priority: str
    reported_at: Optional[datetime] = PydanticField(default=None, alias="reportedAt")
    reporter: Optional[UserSummaryOut] = None
    assignee: Optional[UserSummaryOut] = None

    model_config = ConfigDict(populate_by_name=True)


class IssueDetailOut(BaseModel):
    id: int
    title: str
    description: str
    category: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    latitude: float
    longitude: float
    created_at: Optional[datetime] = PydanticField(default=None, alias="createdAt")
    updated_at: Optional[datetime] = PydanticField(default=None, alias="updatedAt")
    reporter: Optional[UserSummaryOut] = None
    assignee: Optional[UserSummaryOut] = None
    start_date: Optional[datetime] = PydanticField(default=None, alias="startDate")
    due_date: Optional[datetime] = PydanticField(default=None, alias="dueDate")
    attachments: List[AttachmentOut] = []
    comments: List[CommentOut] = []

    model_config = ConfigDict(populate_by_name=True)


class IssueListResponse(BaseModel):
    items: List[IssueSummaryOut]
    pagination: dict


class MessageResponse(BaseModel):
    message: str
