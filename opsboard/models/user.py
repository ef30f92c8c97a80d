"""
User model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from datetime import datetime
from opsboard.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    # Second secret required to switch a session into admin mode
    hashed_admin_code = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    last_login_at = Column(DateTime, nullable=True)
    # Bumped on logout; tokens carrying an older version are rejected
    token_version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
