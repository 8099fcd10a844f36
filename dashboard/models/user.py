from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import func

from dashboard.db import Base


class User(Base):
    __tablename__ = "t_user"

    id = Column(String, primary_key=True)
    display_name = Column(String, nullable=False, default="")
    email = Column(String, nullable=False, default="")
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
