from sqlalchemy import Column, Integer, String

from models.base import Base


class Priority(Base):
    """
    Priority lookup.
    - sort_order: numeric rank used for logical ordering (Highest=5 ... Lowest=1)
    """
    __tablename__ = "priorities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True, index=True)
    sort_order = Column(Integer, nullable=False, server_default="0")
