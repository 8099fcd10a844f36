from sqlalchemy import JSON, Column, ForeignKey, Integer, String

from dashboard.db import Base


class Tab(Base):
    __tablename__ = "t_tab"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False, default="")
    # column-major list of widget id lists
    layout = Column(JSON, nullable=False, default=list)


class TabAccess(Base):
    __tablename__ = "tj_tabaccess"

    user_id = Column(String, primary_key=True)
    tab_id = Column(Integer, ForeignKey("t_tab.id", ondelete="CASCADE"), primary_key=True, index=True)
