from typing import List

from pydantic import BaseModel

from dashboard.schemas.account import ExternalAccount
from dashboard.schemas.feed import Feed
from dashboard.schemas.tab import Tab
from dashboard.schemas.user import User


class Snapshot(BaseModel):
    """Everything needed to rebuild a user's dashboard elsewhere"""
    user: User
    tabs: List[Tab] = []
    feeds: List[Feed] = []
    accounts: List[ExternalAccount] = []
