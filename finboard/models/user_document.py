from datetime import datetime, timezone

from sqlalchemy import Column, String, JSON, DateTime
from finboard.core.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class UserDocument(Base):
    __tablename__ = "user_documents"

    user_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
