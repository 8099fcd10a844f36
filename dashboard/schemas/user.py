from typing import List

from pydantic import BaseModel

from dashboard.schemas.tab import TabSummary


class User(BaseModel):
    user_id: str
    display_name: str = ""
    email: str = ""
    is_admin: bool = False


class UserData(BaseModel):
    user: User
    tabs: List[TabSummary] = []


class Identity(BaseModel):
    """The authenticated caller, as supplied by the session layer"""
    user_id: str
    display_name: str = ""
    email: str = ""
    is_admin: bool = False

    def can_act_for(self, user_id: str) -> bool:
        return self.is_admin or self.user_id == user_id
