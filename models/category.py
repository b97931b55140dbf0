from sqlalchemy import Column, Integer, String

from models.base import Base


class Category(Base):
    """
    Issue category lookup (e.g. "Street Lighting"). Resolved by name on create, by id on update.
    """
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
