"""
Comment reply trees held as a flat arena.

Comments are keyed by id and children are indexed by parent id, so a subtree
is collected with an explicit stack instead of walking live ORM relationships.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.storage.cleanup import delete_remote_files
from apps.storage.interface import FileStorage
from models.attachment import Attachment
from models.comment import Comment

logger = logging.getLogger(__name__)


class CommentArena:
    def __init__(self, rows: Iterable[Tuple[int, Optional[int]]]):
        self.parents: Dict[int, Optional[int]] = {}
        self.children: Dict[int, List[int]] = defaultdict(list)
        for comment_id, parent_id in rows:
            self.parents[comment_id] = parent_id
        for comment_id, parent_id in self.parents.items():
            if parent_id is not None and parent_id in self.parents:
                self.children[parent_id].append(comment_id)
        for ids in self.children.values():
            ids.sort()

    @classmethod
    async def load(cls, db: AsyncSession, issue_id: int) -> "CommentArena":
        res = await db.execute(
            select(Comment.id, Comment.parent_id).where(Comment.issue_id == issue_id).order_by(Comment.id)
        )
        return cls(res.all())

    def __contains__(self, comment_id: int) -> bool:
        return comment_id in self.parents

    def roots(self) -> List[int]:
        """Top-level comments, plus any whose parent is outside the arena."""
        return sorted(cid for cid, pid in self.parents.items() if pid is None or pid not in self.parents)

    def collect_subtree(self, root_ids: Sequence[int]) -> List[int]:
        """
        Ids of the given roots and all their descendants in post-order
        (every reply before its parent). Each id appears once.
        """
        ordered: List[int] = []
        visited = set()
        stack: List[Tuple[int, bool]] = [(rid, False) for rid in reversed(list(root_ids))]
        while stack:
            comment_id, expanded = stack.pop()
            if expanded:
                ordered.append(comment_id)
                continue
            if comment_id in visited or comment_id not in self.parents:
                continue
            visited.add(comment_id)
            stack.append((comment_id, True))
            for child_id in reversed(self.children.get(comment_id, [])):
                if child_id not in visited:
                    stack.append((child_id, False))
        return ordered


async def purge_comments(db: AsyncSession, storage: FileStorage, comment_ids: Sequence[int]) -> None:
    """
    Remove the given comments and their attachments. Does not commit.

    Remote files are deleted best-effort in the order of `comment_ids`, then
    attachment and comment rows go in bulk.
    """
    if not comment_ids:
        return

    res = await db.execute(
        select(Attachment.comment_id, Attachment.public_id).where(Attachment.comment_id.in_(comment_ids))
    )
    keys_by_comment: Dict[int, List[str]] = defaultdict(list)
    for comment_id, public_id in res.all():
        keys_by_comment[comment_id].append(public_id)

    keys = [key for cid in comment_ids for key in keys_by_comment.get(cid, [])]
    failures = await delete_remote_files(storage, keys)
    if failures:
        logger.warning("%d of %d comment attachment(s) could not be removed remotely", failures, len(keys))

    await db.execute(delete(Attachment).where(Attachment.comment_id.in_(comment_ids)))
    await db.execute(delete(Comment).where(Comment.id.in_(comment_ids)))
