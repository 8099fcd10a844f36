from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from dashboard.db import Base


class ExternalAccount(Base):
    __tablename__ = "t_account"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    provider = Column(String, nullable=False)
    account_id = Column(String, nullable=False, default="")
    token = Column(JSON, nullable=True)


class TemporaryCode(Base):
    __tablename__ = "t_temporarycode"

    code = Column(String, primary_key=True)
    user_id = Column(String, nullable=False)
    provider = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
