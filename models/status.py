from sqlalchemy import Column, Integer, String

from models.base import Base


class Status(Base):
    """
    Issue status lookup (OPEN, IN_PROGRESS, RESOLVED).
    """
    __tablename__ = "statuses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True, index=True)
