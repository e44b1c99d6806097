import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String

from sitecollab.core.db import Base


def new_id() -> str:
    return str(uuid.uuid4())


class BaseModel(Base):
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=new_id)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
