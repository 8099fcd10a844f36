from sqlalchemy import JSON, Column, ForeignKey, Integer, String

from dashboard.db import Base


class Widget(Base):
    __tablename__ = "t_widget"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tab_id = Column(Integer, ForeignKey("t_tab.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)
    config = Column(JSON, nullable=False, default=dict)
