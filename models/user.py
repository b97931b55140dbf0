from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, func, Table, ForeignKey
from sqlalchemy.orm import relationship

from models.base import Base, utcnow


class User(Base):
    """
    User ORM model.
    - Integer primary key (0 is reserved as the "unassign" sentinel on issue updates)
    - Unique user_name used for login
    - Stores only a secure password hash (never plaintext)
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(200), nullable=False)
    user_name = Column(String(50), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)

    @property
    def role_names(self) -> set[str]:
        return {r.name for r in (self.roles or [])}

    def to_public_dict(self) -> dict:
        """
        Returns a sanitized dict without sensitive fields.
        """
        return {
            "id": self.id,
            "fullName": self.full_name,
            "userName": self.user_name,
            "roles": sorted(self.role_names),
            "createdAt": self.created_at.isoformat() if isinstance(self.created_at, datetime) else None,
        }


# Association table for many-to-many User <-> Role
user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    """
    Role ORM model with unique name. Valid values are listed in constants.roles.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True, index=True)


# Add roles relationship to User (after Role is defined)
User.roles = relationship("Role", secondary=user_roles, lazy="selectin")
