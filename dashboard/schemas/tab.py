from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dashboard.exceptions import InvalidInputError

WIDGET_FEED_TYPE = "feed"
WIDGET_EMAIL_TYPE = "email"


class TabSummary(BaseModel):
    id: int = 0
    title: str = ""


class WidgetConfig(BaseModel):
    """Settings shared by every widget kind"""
    title: str = ""
    display_count: int = 0
    link: str = ""


class FeedConfig(BaseModel):
    kind: Literal["feed"] = "feed"
    common: WidgetConfig = WidgetConfig()
    feed_id: int = 0
    url: str = ""


class EmailConfig(BaseModel):
    kind: Literal["email"] = "email"
    common: WidgetConfig = WidgetConfig()
    account_id: int = 0


class RawConfig(BaseModel):
    """Configuration of a widget whose type is unknown or whose blob does not match its type"""
    kind: Literal["raw"] = "raw"
    data: Dict[str, Any] = {}


AnyWidgetConfig = Annotated[Union[FeedConfig, EmailConfig, RawConfig], Field(discriminator="kind")]


class Widget(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int = 0
    type: str = Field(alias="widgetType")
    config: AnyWidgetConfig = RawConfig()


class Tab(BaseModel):
    summary: TabSummary = TabSummary()
    widgets: List[List[Widget]] = []

    @property
    def id(self) -> int:
        return self.summary.id

    @property
    def title(self) -> str:
        return self.summary.title


_TYPED_CONFIGS = {
    WIDGET_FEED_TYPE: FeedConfig,
    WIDGET_EMAIL_TYPE: EmailConfig,
}
_COMMON_FIELDS = ("title", "display_count", "link")


def coerce_config(widget_type: str, raw: Dict[str, Any]):
    """
    Convert untyped config input into the variant matching the widget type.

    Both the nested shape (``{"common": {...}, "url": ...}``) and the flat
    wire shape (``{"title": ..., "url": ...}``) are accepted.

    Args:
        widget_type: Widget type discriminator (``feed`` or ``email``)
        raw: Decoded JSON configuration

    Returns:
        FeedConfig, EmailConfig, or RawConfig for unknown types

    Raises:
        InvalidInputError: If the data does not fit the variant of a known type
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    raw = dict(raw or {})

    config_class = _TYPED_CONFIGS.get(widget_type)
    if config_class is None:
        return RawConfig(data=raw)

    raw.pop("kind", None)
    common = dict(raw.pop("common", None) or {})
    for field in _COMMON_FIELDS:
        if field in raw:
            common.setdefault(field, raw.pop(field))
    allowed = set(config_class.model_fields) - {"kind", "common"}
    payload = {key: value for key, value in raw.items() if key in allowed}

    try:
        return config_class(common=WidgetConfig(**common), **payload)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {widget_type} widget config: {e.errors()[0]['msg']}") from e


def config_to_storage(config) -> Dict[str, Any]:
    """Flatten a typed config into the JSON blob persisted next to the type tag"""
    if isinstance(config, RawConfig):
        return dict(config.data)
    blob = config.common.model_dump()
    blob.update(config.model_dump(exclude={"kind", "common"}))
    return blob


def config_from_storage(widget_type: str, blob: Dict[str, Any]):
    try:
        return coerce_config(widget_type, blob)
    except InvalidInputError:
        return RawConfig(data=dict(blob or {}))


class WidgetCreate(BaseModel):
    """Widget as posted by clients: a type tag and an untyped config"""
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(alias="widgetType")
    config: Dict[str, Any] = {}

    def to_widget(self) -> Widget:
        return Widget(type=self.type, config=coerce_config(self.type, self.config))
