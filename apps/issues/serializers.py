from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from constants.priorities import MEDIUM
from constants.statuses import OPEN
from models.attachment import Attachment
from models.base import as_utc
from models.comment import Comment
from models.issue import Issue
from models.user import User


def user_summary(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.full_name}


def attachment_dict(attachment: Attachment) -> dict:
    return {
        "id": attachment.id,
        "url": attachment.url,
        "fileName": attachment.file_name,
        "fileType": attachment.file_type,
        "createdAt": attachment.created_at,
    }


def attachment_detail_dict(attachment: Attachment, issue_id: Optional[int]) -> dict:
    data = attachment_dict(attachment)
    data["issueId"] = issue_id
    data["commentId"] = attachment.comment_id
    return data


def comment_dict(comment: Comment, attachments: Iterable[Attachment] = ()) -> dict:
    return {
        "id": comment.id,
        "text": comment.text,
        "createdAt": comment.created_at,
        "author": user_summary(comment.author),
        "attachments": [attachment_dict(a) for a in attachments],
        "parentId": comment.parent_id,
    }


def issue_summary(issue: Issue) -> dict:
    """
    List row. Missing status/priority fall back to the creation defaults.
    """
    return {
        "id": issue.id,
        "title": issue.title,
        "category": issue.category.name if issue.category else None,
        "status": issue.status.name if issue.status else OPEN,
        "priority": issue.priority.name if issue.priority else MEDIUM,
        "reportedAt": issue.created_at,
        "reporter": user_summary(issue.reporter),
        "assignee": user_summary(issue.assignee),
    }


def issue_detail(
    issue: Issue,
    attachments: Iterable[Attachment],
    comments: Iterable[Comment],
    comment_attachments: Dict[int, List[Attachment]],
) -> dict:
    """
    Full issue view. Comments are returned flat, oldest first, each carrying its parentId.
    """
    ordered = sorted(comments, key=lambda c: (as_utc(c.created_at) or datetime.min.replace(tzinfo=timezone.utc), c.id))
    return {
        "id": issue.id,
        "title": issue.title,
        "description": issue.description,
        "category": issue.category.name if issue.category else None,
        "status": issue.status.name if issue.status else None,
        "priority": issue.priority.name if issue.priority else None,
        "latitude": issue.latitude,
        "longitude": issue.longitude,
        "createdAt": issue.created_at,
        "updatedAt": issue.updated_at,
        "reporter": user_summary(issue.reporter),
        "assignee": user_summary(issue.assignee),
        "startDate": issue.start_date,
        "dueDate": issue.due_date,
        "attachments": [attachment_dict(a) for a in attachments],
        "comments": [comment_dict(c, comment_attachments.get(c.id, [])) for c in ordered],
    }
