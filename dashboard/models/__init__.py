from dashboard.db import Base
from dashboard.models.user import User
from dashboard.models.tab import Tab, TabAccess
from dashboard.models.widget import Widget
from dashboard.models.feed import Feed, FeedItem, FeedItemRead
from dashboard.models.account import ExternalAccount, TemporaryCode
from dashboard.models.email_item import EmailItem

__all__ = [
    "Base",
    "User",
    "Tab",
    "TabAccess",
    "Widget",
    "Feed",
    "FeedItem",
    "FeedItemRead",
    "ExternalAccount",
    "TemporaryCode",
    "EmailItem",
]
