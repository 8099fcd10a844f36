from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

SERVICE_EMAIL = "EMAIL"


class ExternalAccount(BaseModel):
    id: int = 0
    provider_name: str
    account_id: str = ""
    # never sent to clients
    token: Optional[Dict[str, Any]] = Field(default=None, exclude=True)

    def key(self) -> str:
        return f"{self.provider_name}:{self.account_id}"


class ProviderDescription(BaseModel):
    name: str
    title: str
    link: str
    services: List[str] = []


class EmailItem(BaseModel):
    guid: str
    title: str = ""
    published: datetime
    link: str = ""
    read: bool = False
    sender: str = ""
    snippet: str = ""


class EmailQuery(BaseModel):
    category: str = ""


class EmailPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[EmailItem] = []
    next_page_token: Optional[str] = Field(default=None, alias="nextpage")
    result_size_estimate: int = 0
