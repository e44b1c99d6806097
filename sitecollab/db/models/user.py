from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from sitecollab.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    password_reset_token = Column(String(255), nullable=True, index=True)
    password_reset_expiry = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    owned_projects = relationship("Project", back_populates="owner", foreign_keys="Project.owner_id")
    permissions = relationship("ProjectPermission", back_populates="user")
