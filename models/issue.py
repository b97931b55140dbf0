from sqlalchemy import Column, Integer, String, Text, Float, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship

from models.base import Base, utcnow
from models.category import Category
from models.priority import Priority
from models.status import Status
from models.user import User


class Issue(Base):
    """
    A reported infrastructure problem.
    - category/status are required lookups, priority is optional
    - reporter is required, assignee is optional
    - due_date may not precede start_date
    Comments and attachments are fetched with explicit queries, not through relationships.
    """
    __tablename__ = "issues"
    __table_args__ = (
        CheckConstraint(
            "start_date IS NULL OR due_date IS NULL OR due_date >= start_date",
            name="due_after_start",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    status_id = Column(Integer, ForeignKey("statuses.id"), nullable=False, index=True)
    priority_id = Column(Integer, ForeignKey("priorities.id", ondelete="SET NULL"), nullable=True, index=True)
    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assignee_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    start_date = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Many-to-one references load eagerly so they are safe to touch in async code
    category = relationship(Category, lazy="joined")
    status = relationship(Status, lazy="joined")
    priority = relationship(Priority, lazy="joined")
    reporter = relationship(User, foreign_keys=[reporter_id], lazy="joined")
    assignee = relationship(User, foreign_keys=[assignee_id], lazy="joined")
