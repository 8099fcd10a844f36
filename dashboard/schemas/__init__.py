from dashboard.schemas.user import Identity, User, UserData
from dashboard.schemas.tab import (
    WIDGET_EMAIL_TYPE,
    WIDGET_FEED_TYPE,
    EmailConfig,
    FeedConfig,
    RawConfig,
    Tab,
    TabSummary,
    Widget,
    WidgetConfig,
    WidgetCreate,
    coerce_config,
    config_from_storage,
    config_to_storage,
)
from dashboard.schemas.feed import (
    Feed,
    FeedItem,
    ItemForUser,
    MarkAsReadRequest,
    ParsedFeed,
    PreviewItem,
    PreviewRequest,
    PreviewResult,
)
from dashboard.schemas.account import (
    SERVICE_EMAIL,
    EmailItem,
    EmailPage,
    EmailQuery,
    ExternalAccount,
    ProviderDescription,
)
from dashboard.schemas.snapshot import Snapshot

__all__ = [
    "Identity",
    "User",
    "UserData",
    "WIDGET_EMAIL_TYPE",
    "WIDGET_FEED_TYPE",
    "EmailConfig",
    "FeedConfig",
    "RawConfig",
    "Tab",
    "TabSummary",
    "Widget",
    "WidgetConfig",
    "WidgetCreate",
    "coerce_config",
    "config_from_storage",
    "config_to_storage",
    "Feed",
    "FeedItem",
    "ItemForUser",
    "MarkAsReadRequest",
    "ParsedFeed",
    "PreviewItem",
    "PreviewRequest",
    "PreviewResult",
    "SERVICE_EMAIL",
    "EmailItem",
    "EmailPage",
    "EmailQuery",
    "ExternalAccount",
    "ProviderDescription",
    "Snapshot",
]
