from datetime import datetime
from typing import List

from pydantic import BaseModel


class Feed(BaseModel):
    id: int = 0
    url: str
    next_retrieval: datetime
    title: str = ""


class FeedItem(BaseModel):
    guid: str
    title: str = ""
    published: datetime
    link: str = ""


class ItemForUser(BaseModel):
    item: FeedItem
    read: bool = False


class ParsedFeed(BaseModel):
    title: str = ""
    items: List[FeedItem] = []


class PreviewItem(BaseModel):
    title: str = ""
    published: datetime
    link: str = ""


class PreviewResult(BaseModel):
    title: str = ""
    items: List[PreviewItem] = []


class MarkAsReadRequest(BaseModel):
    guids: List[str]


class PreviewRequest(BaseModel):
    url: str
