"""IssueService: create, update, cascade delete and attachment management"""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from apps.comments.schemas import CommentCreate
from apps.comments.service import CommentService
from apps.issues.schemas import IssueUpdate
from apps.issues.service import IssueService
from common.exceptions import BadRequestError, NotFoundError, UnauthorizedError
from conftest import issue_payload, upload
from constants.statuses import RESOLVED
from models.attachment import Attachment
from models.comment import Comment
from models.issue import Issue
from models.priority import Priority
from models.status import Status

START = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


async def _count(db, model, *where):
    res = await db.execute(select(func.count()).select_from(model).where(*where))
    return res.scalar_one()


async def _lookup(db, model, name):
    res = await db.execute(select(model).where(model.name == name))
    return res.scalar_one()


class TestCreateIssue:
    async def test_defaults(self, db, storage, citizen):
        detail = await IssueService.create_issue(db, storage, citizen, issue_payload(), [upload()])

        assert detail["status"] == "OPEN"
        assert detail["priority"] == "Medium"
        assert detail["category"] == "Street Lighting"
        assert detail["reporter"] == {"id": citizen.id, "name": "Citizen Tester"}
        assert detail["assignee"] is None
        assert detail["comments"] == []
        assert [a["fileName"] for a in detail["attachments"]] == ["photo.jpg"]
        assert storage.uploaded == ["test/1-photo.jpg"]

    @pytest.mark.parametrize("files", [None, [], [upload(content=b"")]])
    async def test_requires_a_non_empty_file(self, db, storage, citizen, files):
        with pytest.raises(BadRequestError, match="Cannot create an issue without at least one attachment."):
            await IssueService.create_issue(db, storage, citizen, issue_payload(), files)
        assert storage.uploaded == []

    async def test_empty_files_are_skipped(self, db, storage, citizen):
        files = [upload("blank.png", content=b""), upload("real.png")]
        detail = await IssueService.create_issue(db, storage, citizen, issue_payload(), files)

        assert [a["fileName"] for a in detail["attachments"]] == ["real.png"]

    async def test_unknown_category(self, db, storage, citizen):
        with pytest.raises(BadRequestError, match="Invalid category provided: Volcanoes"):
            await IssueService.create_issue(db, storage, citizen, issue_payload(category="Volcanoes"), [upload()])
        assert storage.uploaded == []

    async def test_missing_default_status(self, db, storage, citizen):
        await db.delete(await _lookup(db, Status, "OPEN"))
        await db.commit()

        with pytest.raises(BadRequestError, match="Default status 'OPEN' is not configured in the database."):
            await IssueService.create_issue(db, storage, citizen, issue_payload(), [upload()])

    async def test_missing_default_priority_is_tolerated(self, db, storage, citizen):
        await db.delete(await _lookup(db, Priority, "Medium"))
        await db.commit()

        detail = await IssueService.create_issue(db, storage, citizen, issue_payload(), [upload()])

        assert detail["priority"] is None
        items, _ = await IssueService.list_issues(db, citizen)
        assert items[0]["priority"] == "Medium"

    async def test_upload_failure_cleans_up_and_persists_nothing(self, db, storage, citizen):
        storage.fail_uploads_for = {"second.jpg"}
        files = [upload("first.jpg"), upload("second.jpg"), upload("third.jpg")]

        with pytest.raises(BadRequestError) as exc_info:
            await IssueService.create_issue(db, storage, citizen, issue_payload(), files)

        assert exc_info.value.detail == "Failed to upload file: second.jpg"
        assert storage.deleted == ["test/1-first.jpg"]
        assert storage.files == {}
        assert await _count(db, Issue) == 0
        assert await _count(db, Attachment) == 0

    async def test_equal_dates_are_accepted(self, db, storage, citizen):
        detail = await IssueService.create_issue(
            db, storage, citizen, issue_payload(start_date=START, due_date=START), [upload()]
        )
        assert detail["startDate"] == detail["dueDate"]

    async def test_due_before_start_is_rejected(self, db, storage, citizen):
        payload = issue_payload(start_date=START, due_date=START - timedelta(days=1))

        with pytest.raises(BadRequestError, match="Due date cannot be before the start date."):
            await IssueService.create_issue(db, storage, citizen, payload, [upload()])
        assert storage.uploaded == []


class TestUpdateIssue:
    async def test_only_status_changes(self, db, make_issue, citizen):
        issue = await make_issue(citizen)
        resolved = await _lookup(db, Status, RESOLVED)

        detail = await IssueService.update_issue(db, citizen, issue.id, IssueUpdate(statusId=resolved.id))

        assert detail["status"] == RESOLVED
        assert detail["title"] == "Broken streetlight on Main Street"
        assert detail["category"] == "Street Lighting"
        assert detail["priority"] == "Medium"
        assert detail["latitude"] == 12.97

    @pytest.mark.parametrize(
        "field,label",
        [("categoryId", "Category"), ("statusId", "Status"), ("priorityId", "Priority"), ("assigneeId", "Assignee")],
    )
    async def test_invalid_reference_ids(self, db, make_issue, citizen, field, label):
        issue = await make_issue(citizen)

        with pytest.raises(BadRequestError) as exc_info:
            await IssueService.update_issue(db, citizen, issue.id, IssueUpdate(**{field: 9999}))

        assert exc_info.value.detail == f"Invalid {label} ID: 9999"

    async def test_assign_and_unassign(self, db, make_issue, citizen, staff):
        issue = await make_issue(citizen)

        detail = await IssueService.update_issue(db, citizen, issue.id, IssueUpdate(assigneeId=staff.id))
        assert detail["assignee"] == {"id": staff.id, "name": "Staffer Tester"}

        detail = await IssueService.update_issue(db, citizen, issue.id, IssueUpdate(assigneeId=0))
        assert detail["assignee"] is None

    async def test_staff_assignee_may_update(self, db, make_issue, citizen, staff):
        issue = await make_issue(citizen)
        issue.assignee = staff
        await db.commit()

        detail = await IssueService.update_issue(
            db, staff, issue.id, IssueUpdate(description="Crew dispatched, replacement bulb on order.")
        )
        assert detail["description"] == "Crew dispatched, replacement bulb on order."

    async def test_staff_not_assigned_is_forbidden(self, db, make_issue, citizen, staff):
        issue = await make_issue(citizen)

        with pytest.raises(UnauthorizedError, match="You do not have permission to update this issue."):
            await IssueService.update_issue(db, staff, issue.id, IssueUpdate(latitude=1.0))

    async def test_other_citizen_is_forbidden(self, db, make_issue, citizen, other_citizen):
        issue = await make_issue(citizen)

        with pytest.raises(UnauthorizedError):
            await IssueService.update_issue(db, other_citizen, issue.id, IssueUpdate(latitude=1.0))

    async def test_due_date_checked_against_stored_start(self, db, make_issue, citizen):
        issue = await make_issue(citizen, start_date=START)

        with pytest.raises(BadRequestError, match="Due date cannot be before the start date."):
            await IssueService.update_issue(db, citizen, issue.id, IssueUpdate(dueDate=START - timedelta(hours=1)))

        detail = await IssueService.update_issue(db, citizen, issue.id, IssueUpdate(dueDate=START + timedelta(days=3)))
        assert detail["dueDate"] is not None

    async def test_missing_issue(self, db, citizen):
        with pytest.raises(NotFoundError, match="Issue not found with id : '404'"):
            await IssueService.update_issue(db, citizen, 404, IssueUpdate(latitude=1.0))


class TestDeleteIssue:
    async def _comment(self, db, storage, actor, issue, name, parent=None):
        payload = CommentCreate(text=f"comment {name}", parentId=parent["id"] if parent else None)
        return await CommentService.add_comment(db, storage, actor, issue.id, payload, [upload(f"{name}.jpg")])

    async def test_cascade_with_failing_remote_deletes(self, db, storage, make_issue, citizen, other_citizen, caplog):
        issue = await make_issue(citizen)
        a = await self._comment(db, storage, citizen, issue, "a")
        await self._comment(db, storage, other_citizen, issue, "b")
        await self._comment(db, storage, other_citizen, issue, "a1", parent=a)
        await self._comment(db, storage, citizen, issue, "a2", parent=a)
        storage.fail_deletes = True

        with caplog.at_level(logging.WARNING, logger="apps.storage.cleanup"):
            await IssueService.delete_issue(db, storage, citizen, issue.id)

        # Issue files first, then replies before their parents
        assert storage.delete_attempts == [
            "test/1-photo.jpg",
            "test/4-a1.jpg",
            "test/5-a2.jpg",
            "test/2-a.jpg",
            "test/3-b.jpg",
        ]
        failures = [r for r in caplog.records if getattr(r, "event", None) == "attachment_cleanup_failed"]
        assert len(failures) == 5
        assert await db.get(Issue, issue.id) is None
        assert await _count(db, Comment) == 0
        assert await _count(db, Attachment) == 0

    async def test_admin_may_delete(self, db, storage, make_issue, citizen, admin):
        issue = await make_issue(citizen)
        await IssueService.delete_issue(db, storage, admin, issue.id)

        assert storage.deleted == ["test/1-photo.jpg"]
        assert await _count(db, Issue) == 0

    async def test_staff_assignee_may_not_delete(self, db, storage, make_issue, citizen, staff):
        issue = await make_issue(citizen)
        issue.assignee = staff
        await db.commit()

        with pytest.raises(UnauthorizedError, match="You do not have permission to delete this issue."):
            await IssueService.delete_issue(db, storage, staff, issue.id)
        assert storage.delete_attempts == []


class TestIssueAttachments:
    async def test_add_requires_a_file(self, db, storage, make_issue, citizen):
        issue = await make_issue(citizen)

        with pytest.raises(BadRequestError, match="At least one non-empty file is required."):
            await IssueService.add_issue_attachments(db, storage, citizen, issue.id, [upload(content=b"")])

    async def test_add(self, db, storage, make_issue, citizen):
        issue = await make_issue(citizen)

        added = await IssueService.add_issue_attachments(db, storage, citizen, issue.id, [upload("after.pdf")])

        assert added[0]["fileName"] == "after.pdf"
        assert added[0]["issueId"] == issue.id
        assert added[0]["commentId"] is None
        detail = await IssueService.get_issue(db, issue.id)
        assert [a["fileName"] for a in detail["attachments"]] == ["photo.jpg", "after.pdf"]

    async def test_add_removes_uploads_when_commit_fails(self, db, storage, make_issue, citizen, request):
        issue = await make_issue(citizen)
        request.getfixturevalue("broken_commit")

        with pytest.raises(OperationalError):
            await IssueService.add_issue_attachments(db, storage, citizen, issue.id, [upload("a.jpg"), upload("b.jpg")])

        assert storage.deleted == ["test/2-a.jpg", "test/3-b.jpg"]
        assert list(storage.files) == ["test/1-photo.jpg"]
        assert await _count(db, Attachment) == 1

    async def test_add_forbidden_for_other_citizen(self, db, storage, make_issue, citizen, other_citizen):
        issue = await make_issue(citizen)

        with pytest.raises(UnauthorizedError, match="You do not have permission to add attachments to this issue."):
            await IssueService.add_issue_attachments(db, storage, other_citizen, issue.id, [upload()])

    async def test_delete_attachment(self, db, storage, make_issue, citizen):
        issue = await make_issue(citizen)
        detail = await IssueService.get_issue(db, issue.id)
        attachment_id = detail["attachments"][0]["id"]

        await IssueService.delete_attachment(db, storage, citizen, issue.id, attachment_id)

        assert storage.deleted == ["test/1-photo.jpg"]
        assert await db.get(Attachment, attachment_id) is None

    async def test_delete_attachment_survives_remote_failure(self, db, storage, make_issue, citizen):
        issue = await make_issue(citizen)
        detail = await IssueService.get_issue(db, issue.id)
        storage.fail_deletes = True

        await IssueService.delete_attachment(db, storage, citizen, issue.id, detail["attachments"][0]["id"])

        assert await _count(db, Attachment) == 0

    async def test_delete_attachment_from_other_issue(self, db, storage, make_issue, citizen):
        first = await make_issue(citizen)
        second = await make_issue(citizen)
        detail = await IssueService.get_issue(db, first.id)

        with pytest.raises(BadRequestError, match="Attachment does not belong to the specified issue."):
            await IssueService.delete_attachment(db, storage, citizen, second.id, detail["attachments"][0]["id"])
        assert storage.delete_attempts == []

    async def test_delete_comment_attachment_via_other_issue(self, db, storage, make_issue, citizen):
        first = await make_issue(citizen)
        second = await make_issue(citizen)
        comment = await CommentService.add_comment(
            db, storage, citizen, first.id, CommentCreate(text="see photo"), [upload("c.jpg")]
        )

        with pytest.raises(BadRequestError, match="parent comment does not belong"):
            await IssueService.delete_attachment(db, storage, citizen, second.id, comment["attachments"][0]["id"])

    async def test_delete_comment_attachment_by_admin(self, db, storage, make_issue, citizen, admin):
        issue = await make_issue(citizen)
        comment = await CommentService.add_comment(
            db, storage, citizen, issue.id, CommentCreate(text="see photo"), [upload("c.jpg")]
        )

        await IssueService.delete_attachment(db, storage, admin, issue.id, comment["attachments"][0]["id"])
        assert storage.deleted == ["test/2-c.jpg"]

    async def test_delete_comment_attachment_by_issue_reporter_is_forbidden(
        self, db, storage, make_issue, citizen, other_citizen
    ):
        """Comment files belong to the comment author, not the issue reporter"""
        issue = await make_issue(citizen)
        comment = await CommentService.add_comment(
            db, storage, other_citizen, issue.id, CommentCreate(text="see photo"), [upload("c.jpg")]
        )

        with pytest.raises(UnauthorizedError, match="You do not have permission to delete this attachment."):
            await IssueService.delete_attachment(db, storage, citizen, issue.id, comment["attachments"][0]["id"])

    async def test_missing_attachment(self, db, storage, make_issue, citizen):
        issue = await make_issue(citizen)

        with pytest.raises(NotFoundError, match="Attachment not found with id : '999'"):
            await IssueService.delete_attachment(db, storage, citizen, issue.id, 999)
