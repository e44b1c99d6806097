from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from sitecollab.db.base import BaseModel, utcnow


class Page(BaseModel):
    __tablename__ = "pages"
    __table_args__ = (
        UniqueConstraint("project_id", "client_id", name="uq_page_project_client"),
        Index("ix_pages_project_deleted", "project_id", "is_deleted"),
    )

    # Стабильный идентификатор, выбранный клиентом; уникален в пределах проекта
    client_id = Column(String(255), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    html = Column(Text, nullable=True)
    css = Column(Text, nullable=True)
    components = Column(JSON, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    project = relationship("Project", back_populates="pages")
