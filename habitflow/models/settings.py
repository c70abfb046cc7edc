# habitflow/models/settings.py
from sqlalchemy import JSON, Column, DateTime, String

from ..database import Base
from .habit import new_id, utcnow

DEFAULT_USER_ID = "default_user"


class UserSettingsRow(Base):
    __tablename__ = "user_settings"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), nullable=False, unique=True, default=DEFAULT_USER_ID)
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
