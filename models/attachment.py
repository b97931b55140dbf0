from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, func

from models.base import Base, utcnow


class Attachment(Base):
    """
    A file stored in the remote file store.
    - public_id: opaque storage key used for remote deletion
    - exactly one of issue_id / comment_id is set
    """
    __tablename__ = "attachments"
    __table_args__ = (
        CheckConstraint("(issue_id IS NULL) <> (comment_id IS NULL)", name="single_owner"),
    )

    id = Column(Integer, primary_key=True, index=True)
    url = Column(String(512), nullable=False)
    public_id = Column(String(255), nullable=False, unique=True)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    issue_id = Column(Integer, ForeignKey("issues.id", ondelete="CASCADE"), nullable=True, index=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
