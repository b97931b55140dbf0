import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.comments.tree import CommentArena, purge_comments
from apps.issues.permissions import (
    can_add_issue_attachment,
    can_delete_attachment,
    can_delete_issue,
    can_modify_issue,
    ensure_attachment_in_issue,
    require,
)
from apps.issues.query import apply_sort, build_issue_query, count_query, parse_sort, remap_sort
from apps.issues.schemas import IssueCreate, IssueUpdate
from apps.issues.serializers import attachment_detail_dict, issue_detail, issue_summary
from apps.storage.cleanup import delete_remote_files
from apps.storage.interface import FileStorage, StoredFile, UploadedFile
from apps.storage.service import StorageService
from common.exceptions import BadRequestError, NotFoundError
from common.pagination import PaginationParams, paginate_select
from models.attachment import Attachment
from models.base import as_utc
from models.category import Category
from models.comment import Comment
from models.issue import Issue
from models.priority import Priority
from models.status import Status
from models.user import User
from settings.config import get_settings

logger = logging.getLogger(__name__)


def non_empty_files(files: Optional[Sequence[UploadedFile]]) -> List[UploadedFile]:
    return [f for f in (files or []) if not f.is_empty]


def build_attachments(
    uploaded: Sequence[Tuple[UploadedFile, StoredFile]],
    issue_id: Optional[int] = None,
    comment_id: Optional[int] = None,
) -> List[Attachment]:
    """
    Attachment rows for freshly uploaded files; exactly one owner id is set.
    """
    return [
        Attachment(
            url=stored.url,
            public_id=stored.storage_key,
            file_name=file.filename,
            file_type=file.content_type,
            issue_id=issue_id,
            comment_id=comment_id,
        )
        for file, stored in uploaded
    ]


def validate_schedule(start_date, due_date) -> None:
    start, due = as_utc(start_date), as_utc(due_date)
    if start is not None and due is not None and due < start:
        raise BadRequestError("Due date cannot be before the start date.")


class IssueService:
    @staticmethod
    async def get_issue_or_404(db: AsyncSession, issue_id: int) -> Issue:
        issue = await db.get(Issue, issue_id)
        if not issue:
            raise NotFoundError("Issue", "id", issue_id)
        return issue

    @staticmethod
    async def _resolve_by_id(db: AsyncSession, model, value: int, label: str):
        row = await db.get(model, value)
        if not row:
            raise BadRequestError(f"Invalid {label} ID: {value}")
        return row

    @staticmethod
    async def _find_by_name(db: AsyncSession, model, name: str):
        res = await db.execute(select(model).where(model.name == name))
        return res.scalar_one_or_none()

    @staticmethod
    async def create_issue(
        db: AsyncSession,
        storage: FileStorage,
        actor: User,
        payload: IssueCreate,
        files: Optional[Sequence[UploadedFile]],
    ) -> dict:
        """
        Report a new issue. Needs at least one non-empty file; status and priority
        start at the configured defaults.
        """
        settings = get_settings()
        uploads = non_empty_files(files)
        if not uploads:
            raise BadRequestError("Cannot create an issue without at least one attachment.")

        category = await IssueService._find_by_name(db, Category, payload.category)
        if not category:
            raise BadRequestError(f"Invalid category provided: {payload.category}")

        initial_status = await IssueService._find_by_name(db, Status, settings.DEFAULT_ISSUE_STATUS)
        if not initial_status:
            raise BadRequestError(
                f"Default status '{settings.DEFAULT_ISSUE_STATUS}' is not configured in the database."
            )
        # Missing default priority is tolerated
        default_priority = await IssueService._find_by_name(db, Priority, settings.DEFAULT_ISSUE_PRIORITY)

        validate_schedule(payload.start_date, payload.due_date)

        uploaded = await StorageService.upload_or_reject(storage, uploads)

        issue = Issue(
            title=payload.title,
            description=payload.description,
            latitude=payload.latitude,
            longitude=payload.longitude,
            start_date=payload.start_date,
            due_date=payload.due_date,
            category=category,
            status=initial_status,
            priority=default_priority,
            reporter=actor,
            assignee=None,
        )
        try:
            db.add(issue)
            await db.flush()
            attachments = build_attachments(uploaded, issue_id=issue.id)
            db.add_all(attachments)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            await delete_remote_files(storage, [stored.storage_key for _, stored in uploaded])
            raise

        logger.info("Issue created", extra={"issue_id": issue.id})
        return issue_detail(issue, attachments, [], {})

    @staticmethod
    async def list_issues(
        db: AsyncSession,
        actor: User,
        search: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        reported_by: Optional[str] = None,
        assigned_to: Optional[str] = None,
        filters: Optional[Sequence[str]] = None,
        sorts: Optional[Sequence[str]] = None,
        page: int = 1,
        size: int = 10,
    ) -> Tuple[List[dict], Dict[str, int]]:
        stmt = build_issue_query(
            actor,
            search=search,
            category=category,
            status=status,
            reported_by=reported_by,
            assigned_to=assigned_to,
            advanced_filters=filters,
        )
        count_stmt = count_query(stmt)
        stmt = apply_sort(stmt, remap_sort(parse_sort(sorts)))
        items, pagination = await paginate_select(db, stmt, count_stmt, PaginationParams(page=page, size=size))
        return [issue_summary(i) for i in items], pagination

    @staticmethod
    async def load_detail(db: AsyncSession, issue: Issue) -> dict:
        comments_res = await db.execute(
            select(Comment).where(Comment.issue_id == issue.id).order_by(Comment.created_at, Comment.id)
        )
        comments = list(comments_res.scalars().all())
        comment_ids = [c.id for c in comments]

        att_stmt = select(Attachment).order_by(Attachment.id)
        if comment_ids:
            att_stmt = att_stmt.where(or_(Attachment.issue_id == issue.id, Attachment.comment_id.in_(comment_ids)))
        else:
            att_stmt = att_stmt.where(Attachment.issue_id == issue.id)
        att_res = await db.execute(att_stmt)

        issue_attachments: List[Attachment] = []
        by_comment: Dict[int, List[Attachment]] = defaultdict(list)
        for attachment in att_res.scalars().all():
            if attachment.issue_id is not None:
                issue_attachments.append(attachment)
            else:
                by_comment[attachment.comment_id].append(attachment)
        return issue_detail(issue, issue_attachments, comments, by_comment)

    @staticmethod
    async def get_issue(db: AsyncSession, issue_id: int) -> dict:
        issue = await IssueService.get_issue_or_404(db, issue_id)
        return await IssueService.load_detail(db, issue)

    @staticmethod
    async def update_issue(db: AsyncSession, actor: User, issue_id: int, payload: IssueUpdate) -> dict:
        """
        Apply only the fields that are present and non-null.
        """
        issue = await IssueService.get_issue_or_404(db, issue_id)
        require(can_modify_issue(actor, issue), "You do not have permission to update this issue.")

        if payload.title is not None:
            issue.title = payload.title
        if payload.description is not None:
            issue.description = payload.description
        if payload.category_id is not None:
            issue.category = await IssueService._resolve_by_id(db, Category, payload.category_id, "Category")
        if payload.status_id is not None:
            issue.status = await IssueService._resolve_by_id(db, Status, payload.status_id, "Status")
        if payload.priority_id is not None:
            issue.priority = await IssueService._resolve_by_id(db, Priority, payload.priority_id, "Priority")
        if payload.assignee_id is not None:
            if payload.assignee_id == 0:
                issue.assignee = None
            else:
                issue.assignee = await IssueService._resolve_by_id(db, User, payload.assignee_id, "Assignee")

        if payload.start_date is not None or payload.due_date is not None:
            effective_start = payload.start_date if payload.start_date is not None else issue.start_date
            effective_due = payload.due_date if payload.due_date is not None else issue.due_date
            validate_schedule(effective_start, effective_due)
        if payload.start_date is not None:
            issue.start_date = payload.start_date
        if payload.due_date is not None:
            issue.due_date = payload.due_date

        if payload.latitude is not None:
            issue.latitude = payload.latitude
        if payload.longitude is not None:
            issue.longitude = payload.longitude

        await db.commit()
        return await IssueService.load_detail(db, issue)

    @staticmethod
    async def delete_issue(db: AsyncSession, storage: FileStorage, actor: User, issue_id: int) -> None:
        """
        Delete an issue with its whole comment tree and every attachment.
        Remote deletes are best-effort; the database delete always proceeds.
        """
        issue = await IssueService.get_issue_or_404(db, issue_id)
        require(can_delete_issue(actor, issue), "You do not have permission to delete this issue.")

        keys_res = await db.execute(
            select(Attachment.public_id).where(Attachment.issue_id == issue.id).order_by(Attachment.id)
        )
        await delete_remote_files(storage, list(keys_res.scalars().all()))

        arena = await CommentArena.load(db, issue.id)
        await purge_comments(db, storage, arena.collect_subtree(arena.roots()))

        await db.execute(delete(Attachment).where(Attachment.issue_id == issue.id))
        await db.delete(issue)
        await db.commit()
        logger.info("Issue deleted", extra={"issue_id": issue_id})

    @staticmethod
    async def add_issue_attachments(
        db: AsyncSession,
        storage: FileStorage,
        actor: User,
        issue_id: int,
        files: Optional[Sequence[UploadedFile]],
    ) -> List[dict]:
        issue = await IssueService.get_issue_or_404(db, issue_id)
        require(can_add_issue_attachment(actor, issue), "You do not have permission to add attachments to this issue.")

        uploads = non_empty_files(files)
        if not uploads:
            raise BadRequestError("At least one non-empty file is required.")

        uploaded = await StorageService.upload_or_reject(storage, uploads)
        attachments = build_attachments(uploaded, issue_id=issue.id)
        try:
            db.add_all(attachments)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            await delete_remote_files(storage, [stored.storage_key for _, stored in uploaded])
            raise
        return [attachment_detail_dict(a, issue.id) for a in attachments]

    @staticmethod
    async def delete_attachment(
        db: AsyncSession,
        storage: FileStorage,
        actor: User,
        issue_id: int,
        attachment_id: int,
    ) -> None:
        """
        Linkage to the path issue is checked before permissions.
        """
        attachment = await db.get(Attachment, attachment_id)
        if not attachment:
            raise NotFoundError("Attachment", "id", attachment_id)

        comment = await db.get(Comment, attachment.comment_id) if attachment.comment_id is not None else None
        ensure_attachment_in_issue(attachment, issue_id, comment)

        issue = await IssueService.get_issue_or_404(db, issue_id)
        require(
            can_delete_attachment(actor, attachment, issue, comment),
            "You do not have permission to delete this attachment.",
        )

        await delete_remote_files(storage, [attachment.public_id])
        await db.delete(attachment)
        await db.commit()
        logger.info("Attachment deleted", extra={"issue_id": issue_id, "attachment_id": attachment_id})
