"""
Permission rules for issues, comments and attachments.

Every check takes the acting user explicitly and returns a bool; `require`
turns a failed check into an authorization error. Anything not explicitly
allowed is denied.
"""
from typing import Optional

from common.exceptions import BadRequestError, UnauthorizedError
from constants.roles import ADMIN, STAFF
from models.attachment import Attachment
from models.comment import Comment
from models.issue import Issue
from models.user import User


def _roles(actor: Optional[User]) -> set:
    if actor is None:
        return set()
    return set(actor.role_names)


def _is_admin(actor: Optional[User]) -> bool:
    return ADMIN in _roles(actor)


def _is_same_user(actor: Optional[User], user_id: Optional[int]) -> bool:
    return actor is not None and user_id is not None and actor.id == user_id


def can_modify_issue(actor: User, issue: Issue) -> bool:
    """
    ADMIN, the reporter, or a STAFF member who is the current assignee.
    STAFF alone is not enough.
    """
    if _is_admin(actor) or _is_same_user(actor, issue.reporter_id):
        return True
    return STAFF in _roles(actor) and _is_same_user(actor, issue.assignee_id)


def can_add_issue_attachment(actor: User, issue: Issue) -> bool:
    return can_modify_issue(actor, issue)


def can_delete_issue(actor: User, issue: Issue) -> bool:
    return _is_admin(actor) or _is_same_user(actor, issue.reporter_id)


def can_modify_comment(actor: User, comment: Comment) -> bool:
    # Admins cannot rewrite someone else's words
    return _is_same_user(actor, comment.author_id)


def can_delete_comment(actor: User, comment: Comment) -> bool:
    return _is_admin(actor) or _is_same_user(actor, comment.author_id)


def can_add_comment_attachment(actor: User, comment: Comment) -> bool:
    return _is_same_user(actor, comment.author_id)


def can_delete_attachment(
    actor: User,
    attachment: Attachment,
    issue: Issue,
    comment: Optional[Comment] = None,
) -> bool:
    """
    Issue attachments follow the issue modify rule; comment attachments
    may be removed by the comment author or an ADMIN.
    """
    if attachment.issue_id is not None:
        return can_modify_issue(actor, issue)
    if comment is not None:
        return can_delete_comment(actor, comment)
    return False


def ensure_attachment_in_issue(attachment: Attachment, issue_id: int, comment: Optional[Comment] = None) -> None:
    """
    Reject an attachment that does not belong to the issue in the request path.
    Raises BadRequestError on mismatch.
    """
    if attachment.issue_id is not None:
        if attachment.issue_id != issue_id:
            raise BadRequestError("Attachment does not belong to the specified issue.")
        return
    if attachment.comment_id is not None:
        if comment is None or comment.id != attachment.comment_id or comment.issue_id != issue_id:
            raise BadRequestError("Attachment's parent comment does not belong to the specified issue.")
        return
    raise RuntimeError(f"Attachment {attachment.id} is not linked to an issue or a comment.")


def can_use_assigned_filter(actor: User) -> bool:
    roles = _roles(actor)
    return STAFF in roles or ADMIN in roles


def require(allowed: bool, message: str) -> None:
    if not allowed:
        raise UnauthorizedError(message)
