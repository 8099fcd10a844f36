from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String

from dashboard.db import Base


class EmailItem(Base):
    __tablename__ = "t_emailitem"

    account_id = Column(Integer, ForeignKey("t_account.id", ondelete="CASCADE"), primary_key=True)
    guid = Column(String, primary_key=True)
    title = Column(String, nullable=False, default="")
    published = Column(DateTime(timezone=True), nullable=False)
    link = Column(String, nullable=False, default="")
    sender = Column(String, nullable=False, default="")
    snippet = Column(String, nullable=False, default="")
    read = Column(Boolean, nullable=False, default=False)
    version = Column(BigInteger, nullable=False, default=0)
