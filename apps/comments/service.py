import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.comments.schemas import CommentCreate, CommentUpdate
from apps.comments.tree import CommentArena, purge_comments
from apps.issues.permissions import (
    can_add_comment_attachment,
    can_delete_comment,
    can_modify_comment,
    require,
)
from apps.issues.serializers import attachment_detail_dict, comment_dict
from apps.issues.service import IssueService, build_attachments, non_empty_files
from apps.storage.cleanup import delete_remote_files
from apps.storage.interface import FileStorage, UploadedFile
from apps.storage.service import StorageService
from common.exceptions import BadRequestError, NotFoundError
from models.attachment import Attachment
from models.comment import Comment
from models.user import User

logger = logging.getLogger(__name__)

COMMENT_UPLOAD_FAILURE = "Failed to upload file for comment: "


class CommentService:
    @staticmethod
    async def get_comment_or_404(db: AsyncSession, comment_id: int, resource: str = "Comment") -> Comment:
        comment = await db.get(Comment, comment_id)
        if not comment:
            raise NotFoundError(resource, "id", comment_id)
        return comment

    @staticmethod
    async def _get_comment_in_issue(db: AsyncSession, issue_id: int, comment_id: int) -> Comment:
        comment = await CommentService.get_comment_or_404(db, comment_id)
        issue = await IssueService.get_issue_or_404(db, issue_id)
        if comment.issue_id != issue.id:
            raise BadRequestError("Comment does not belong to the specified issue.")
        return comment

    @staticmethod
    async def _attachments_of(db: AsyncSession, comment_id: int) -> List[Attachment]:
        res = await db.execute(
            select(Attachment).where(Attachment.comment_id == comment_id).order_by(Attachment.id)
        )
        return list(res.scalars().all())

    @staticmethod
    async def add_comment(
        db: AsyncSession,
        storage: FileStorage,
        actor: User,
        issue_id: int,
        payload: CommentCreate,
        files: Optional[Sequence[UploadedFile]] = None,
    ) -> dict:
        """
        Any authenticated user may comment. A reply must stay within its parent's issue.
        """
        issue = await IssueService.get_issue_or_404(db, issue_id)

        parent: Optional[Comment] = None
        if payload.parent_id is not None:
            parent = await CommentService.get_comment_or_404(db, payload.parent_id, "Parent Comment")
            if parent.issue_id != issue.id:
                raise BadRequestError("Parent comment does not belong to the specified issue.")

        uploads = non_empty_files(files)
        uploaded = await StorageService.upload_or_reject(storage, uploads, COMMENT_UPLOAD_FAILURE) if uploads else []

        comment = Comment(
            text=payload.text,
            issue_id=issue.id,
            parent_id=parent.id if parent else None,
            author=actor,
        )
        try:
            db.add(comment)
            await db.flush()
            attachments = build_attachments(uploaded, comment_id=comment.id)
            db.add_all(attachments)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            await delete_remote_files(storage, [stored.storage_key for _, stored in uploaded])
            raise

        logger.info("Comment added", extra={"issue_id": issue.id, "comment_id": comment.id})
        return comment_dict(comment, attachments)

    @staticmethod
    async def update_comment(
        db: AsyncSession,
        actor: User,
        issue_id: int,
        comment_id: int,
        payload: CommentUpdate,
    ) -> dict:
        comment = await CommentService._get_comment_in_issue(db, issue_id, comment_id)
        require(can_modify_comment(actor, comment), "You are not authorized to edit this comment.")

        comment.text = payload.text
        await db.commit()
        return comment_dict(comment, await CommentService._attachments_of(db, comment.id))

    @staticmethod
    async def delete_comment(
        db: AsyncSession,
        storage: FileStorage,
        actor: User,
        issue_id: int,
        comment_id: int,
    ) -> None:
        """
        Remove a comment with every reply beneath it and all their attachments.
        """
        comment = await CommentService._get_comment_in_issue(db, issue_id, comment_id)
        require(can_delete_comment(actor, comment), "You are not authorized to delete this comment.")

        arena = await CommentArena.load(db, comment.issue_id)
        await purge_comments(db, storage, arena.collect_subtree([comment.id]))
        await db.commit()
        logger.info("Comment deleted", extra={"issue_id": issue_id, "comment_id": comment_id})

    @staticmethod
    async def add_comment_attachments(
        db: AsyncSession,
        storage: FileStorage,
        actor: User,
        issue_id: int,
        comment_id: int,
        files: Optional[Sequence[UploadedFile]],
    ) -> List[dict]:
        comment = await CommentService.get_comment_or_404(db, comment_id)
        if comment.issue_id != issue_id:
            raise BadRequestError("Comment does not belong to the specified issue.")
        # Author only, even for admins
        require(
            can_add_comment_attachment(actor, comment),
            "You do not have permission to add attachments to this comment.",
        )

        uploads = non_empty_files(files)
        if not uploads:
            raise BadRequestError("At least one non-empty file is required.")

        uploaded = await StorageService.upload_or_reject(storage, uploads, COMMENT_UPLOAD_FAILURE)
        attachments = build_attachments(uploaded, comment_id=comment.id)
        try:
            db.add_all(attachments)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            await delete_remote_files(storage, [stored.storage_key for _, stored in uploaded])
            raise
        return [attachment_detail_dict(a, comment.issue_id) for a in attachments]
