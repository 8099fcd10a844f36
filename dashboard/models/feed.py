from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from dashboard.db import Base


class Feed(Base):
    __tablename__ = "t_feed"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, unique=True, nullable=False)
    next_retrieval = Column(DateTime(timezone=True), nullable=False)
    title = Column(String, nullable=False, default="")


class FeedItem(Base):
    __tablename__ = "t_feeditem"

    feed_id = Column(Integer, ForeignKey("t_feed.id", ondelete="CASCADE"), primary_key=True)
    guid = Column(String, primary_key=True)
    title = Column(String, nullable=False, default="")
    published = Column(DateTime(timezone=True), nullable=False)
    link = Column(String, nullable=False, default="")


class FeedItemRead(Base):
    __tablename__ = "tj_feeditem_user"

    user_id = Column(String, primary_key=True)
    feed_id = Column(Integer, ForeignKey("t_feed.id", ondelete="CASCADE"), primary_key=True)
    guid = Column(String, primary_key=True)
    read = Column(Boolean, nullable=False, default=False)
