"""CommentService: replies, authorship rules and subtree deletion"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from apps.comments.schemas import CommentCreate, CommentUpdate
from apps.comments.service import CommentService
from apps.issues.service import IssueService
from common.exceptions import BadRequestError, NotFoundError, UnauthorizedError
from conftest import upload
from models.attachment import Attachment
from models.comment import Comment


async def _comment_ids(db):
    res = await db.execute(select(Comment.id).order_by(Comment.id))
    return list(res.scalars().all())


@pytest.fixture
async def issue(make_issue, citizen):
    return await make_issue(citizen)


class TestAddComment:
    async def test_top_level_and_reply(self, db, storage, issue, citizen, other_citizen):
        root = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="Still broken"))
        reply = await CommentService.add_comment(
            db, storage, other_citizen, issue.id, CommentCreate(text="Same here", parentId=root["id"]), [upload("r.jpg")]
        )

        assert root["parentId"] is None
        assert root["author"] == {"id": citizen.id, "name": "Citizen Tester"}
        assert reply["parentId"] == root["id"]
        assert [a["fileName"] for a in reply["attachments"]] == ["r.jpg"]

        detail = await IssueService.get_issue(db, issue.id)
        assert [c["text"] for c in detail["comments"]] == ["Still broken", "Same here"]

    async def test_missing_issue(self, db, storage, citizen):
        with pytest.raises(NotFoundError, match="Issue not found with id : '77'"):
            await CommentService.add_comment(db, storage, citizen, 77, CommentCreate(text="hello"))

    async def test_missing_parent(self, db, storage, issue, citizen):
        with pytest.raises(NotFoundError) as exc_info:
            await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="hi", parentId=555))

        assert exc_info.value.detail == "Parent Comment not found with id : '555'"

    async def test_parent_from_other_issue(self, db, storage, make_issue, issue, citizen):
        other = await make_issue(citizen)
        foreign = await CommentService.add_comment(db, storage, citizen, other.id, CommentCreate(text="elsewhere"))

        with pytest.raises(BadRequestError, match="Parent comment does not belong to the specified issue."):
            await CommentService.add_comment(
                db, storage, citizen, issue.id, CommentCreate(text="reply", parentId=foreign["id"])
            )

    async def test_upload_failure_names_the_file(self, db, storage, issue, citizen):
        storage.fail_uploads_for = {"bad.png"}

        with pytest.raises(BadRequestError) as exc_info:
            await CommentService.add_comment(
                db, storage, citizen, issue.id, CommentCreate(text="pics"), [upload("ok.png"), upload("bad.png")]
            )

        assert exc_info.value.detail == "Failed to upload file for comment: bad.png"
        assert await _comment_ids(db) == []


class TestUpdateComment:
    async def test_author_edits(self, db, storage, issue, citizen):
        comment = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="typo"))

        updated = await CommentService.update_comment(db, citizen, issue.id, comment["id"], CommentUpdate(text="fixed"))

        assert updated["text"] == "fixed"

    async def test_admin_cannot_edit(self, db, storage, issue, citizen, admin):
        comment = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="mine"))

        with pytest.raises(UnauthorizedError, match="You are not authorized to edit this comment."):
            await CommentService.update_comment(db, admin, issue.id, comment["id"], CommentUpdate(text="theirs"))

    async def test_comment_from_other_issue(self, db, storage, make_issue, issue, citizen):
        other = await make_issue(citizen)
        comment = await CommentService.add_comment(db, storage, citizen, other.id, CommentCreate(text="elsewhere"))

        with pytest.raises(BadRequestError, match="Comment does not belong to the specified issue."):
            await CommentService.update_comment(db, citizen, issue.id, comment["id"], CommentUpdate(text="x"))


class TestDeleteComment:
    async def test_admin_deletes_subtree(self, db, storage, issue, citizen, other_citizen, admin):
        root = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="root"), [upload("root.jpg")])
        child = await CommentService.add_comment(
            db, storage, other_citizen, issue.id, CommentCreate(text="child", parentId=root["id"]), [upload("child.jpg")]
        )
        await CommentService.add_comment(
            db, storage, citizen, issue.id, CommentCreate(text="grandchild", parentId=child["id"])
        )
        sibling = await CommentService.add_comment(db, storage, other_citizen, issue.id, CommentCreate(text="sibling"))

        await CommentService.delete_comment(db, storage, admin, issue.id, root["id"])

        assert await _comment_ids(db) == [sibling["id"]]
        assert storage.delete_attempts == ["test/3-child.jpg", "test/2-root.jpg"]
        res = await db.execute(select(func.count()).select_from(Attachment).where(Attachment.comment_id.is_not(None)))
        assert res.scalar_one() == 0

    async def test_other_citizen_cannot_delete(self, db, storage, issue, citizen, other_citizen):
        comment = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="mine"))

        with pytest.raises(UnauthorizedError, match="You are not authorized to delete this comment."):
            await CommentService.delete_comment(db, storage, other_citizen, issue.id, comment["id"])


class TestCommentAttachments:
    async def test_author_adds(self, db, storage, issue, citizen):
        comment = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="later"))

        added = await CommentService.add_comment_attachments(db, storage, citizen, issue.id, comment["id"], [upload("x.jpg")])

        assert added[0]["commentId"] == comment["id"]
        assert added[0]["issueId"] == issue.id

    async def test_admin_cannot_add(self, db, storage, issue, citizen, admin):
        """Only the author attaches files to a comment, admins included"""
        comment = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="later"))

        with pytest.raises(UnauthorizedError, match="You do not have permission to add attachments to this comment."):
            await CommentService.add_comment_attachments(db, storage, admin, issue.id, comment["id"], [upload()])

    async def test_removes_uploads_when_commit_fails(self, db, storage, issue, citizen, request):
        comment = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="later"))
        request.getfixturevalue("broken_commit")

        with pytest.raises(OperationalError):
            await CommentService.add_comment_attachments(db, storage, citizen, issue.id, comment["id"], [upload("b.jpg")])

        assert storage.deleted == ["test/2-b.jpg"]
        res = await db.execute(select(func.count()).select_from(Attachment).where(Attachment.comment_id == comment["id"]))
        assert res.scalar_one() == 0

    async def test_requires_a_file(self, db, storage, issue, citizen):
        comment = await CommentService.add_comment(db, storage, citizen, issue.id, CommentCreate(text="later"))

        with pytest.raises(BadRequestError, match="At least one non-empty file is required."):
            await CommentService.add_comment_attachments(db, storage, citizen, issue.id, comment["id"], [])
