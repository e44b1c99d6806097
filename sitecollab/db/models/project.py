import enum

from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship

from sitecollab.db.base import BaseModel, utcnow


class LinkAccess(str, enum.Enum):
    NONE = "none"
    READ = "read"
    WRITE = "write"


class PermissionLevel(str, enum.Enum):
    READ = "read"
    WRITE = "write"


class Project(BaseModel):
    __tablename__ = "projects"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    # Аренда эксклюзивной блокировки: оба поля заданы или оба пусты
    locked_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    link_access = Column(String(10), nullable=False, default=LinkAccess.NONE.value)
    link_token = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    owner = relationship("User", back_populates="owned_projects", foreign_keys=[owner_id])
    permissions = relationship(
        "ProjectPermission", back_populates="project", cascade="all, delete-orphan"
    )
    versions = relationship("ProjectVersion", back_populates="project", cascade="all, delete-orphan")
    pages = relationship("Page", back_populates="project", cascade="all, delete-orphan")


class ProjectPermission(BaseModel):
    __tablename__ = "project_permissions"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_permission_user"),)

    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    permission = Column(String(10), nullable=False)

    # Relationships
    project = relationship("Project", back_populates="permissions")
    user = relationship("User", back_populates="permissions")


class ProjectVersion(BaseModel):
    __tablename__ = "project_versions"

    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    comment = Column(Text, nullable=True)
    snapshot = Column(JSON, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="versions")
