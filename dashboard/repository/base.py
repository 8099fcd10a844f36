"""
Storage contract shared by every backend.

A backend implements all operations below. Operations a backend cannot
support still exist and raise ``BackendCapabilityError``.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, List, Optional, Tuple, Type, TypeVar

from dashboard.exceptions import DashboardError, NotFoundError, StorageError, root_cause
from dashboard.schemas import (
    EmailItem,
    ExternalAccount,
    Feed,
    FeedItem,
    Tab,
    TabSummary,
    User,
    Widget,
)
from dashboard.utils.layout import rearrange_layout, remove_widget

T = TypeVar("T")


@contextmanager
def storage_errors(message: str, errors: Tuple[Type[BaseException], ...] = (Exception,)):
    """
    Wrap backend failures into ``StorageError`` with some context.

    Our own errors pass through untouched; the original backend error stays
    reachable through ``__cause__`` so ``is_not_found`` can still classify it.
    """
    try:
        yield
    except DashboardError:
        raise
    except errors as exc:
        raise StorageError(message) from exc


class Repository(ABC):
    """Interface allowing usage of any data store for tabs, widgets, read flags and all other data"""

    # backend specific "no such row" errors, matched on the root cause
    not_found_errors: Tuple[Type[BaseException], ...] = ()

    @property
    def in_transaction(self) -> bool:
        """True for the transactional view handed to a ``run_in_transaction`` closure"""
        return False

    def is_not_found(self, exc: BaseException) -> bool:
        if isinstance(exc, NotFoundError):
            return True
        # errors with a class of their own (not authorized, bad input) keep it
        if isinstance(exc, DashboardError) and not isinstance(exc, StorageError):
            return False
        root = root_cause(exc)
        return isinstance(root, NotFoundError) or isinstance(root, self.not_found_errors)

    @abstractmethod
    def run_in_transaction(self, fn: Callable[["Repository"], T]) -> T:
        """
        Run ``fn`` with a transactional view of this repository.

        Either every write made through the view is committed or none is.
        The view must not be used once ``fn`` returns, and calling
        ``run_in_transaction`` on the view raises ``TransactionMisuseError``.
        """

    def _atomically(self, fn: Callable[["Repository"], T]) -> T:
        # composite operations join the current transaction instead of nesting
        if self.in_transaction:
            return fn(self)
        return self.run_in_transaction(fn)

    # Users

    @abstractmethod
    def get_user(self, user_id: str) -> User:
        pass

    @abstractmethod
    def store_user(self, user: User) -> None:
        pass

    # Tab access

    @abstractmethod
    def get_tabs(self, user_id: str) -> List[TabSummary]:
        pass

    @abstractmethod
    def is_tab_access_allowed(self, user_id: str, tab_id: int) -> bool:
        pass

    @abstractmethod
    def allow_tab_access(self, user_id: str, tab_id: int) -> None:
        pass

    # Tabs

    @abstractmethod
    def get_tab(self, tab_id: int) -> Tab:
        """Get a tab with every widget of its layout resolved, column by column"""

    @abstractmethod
    def store_tab(self, tab: Tab) -> Tab:
        """Insert (id 0) or update a tab's title and layout; returns the tab with its id"""

    @abstractmethod
    def delete_tab(self, tab_id: int) -> None:
        """Delete a tab along with its widgets and access grants"""

    # Widgets

    @abstractmethod
    def get_widget(self, tab_id: int, widget_id: int) -> Widget:
        pass

    @abstractmethod
    def store_widget(self, tab_id: int, widget: Widget) -> Widget:
        pass

    @abstractmethod
    def delete_widget(self, tab_id: int, widget_id: int) -> None:
        pass

    # Layout

    def update_tab_layout(self, tab_id: int, layout: List[List[int]]) -> None:
        """
        Replace the arrangement of a tab's widgets.

        Raises:
            InvalidInputError: If ``layout`` is not a permutation of the tab's widgets
        """
        def _update(repo: "Repository") -> None:
            tab = repo.get_tab(tab_id)
            repo.store_tab(rearrange_layout(tab, layout))

        self._atomically(_update)

    def delete_widget_from_tab(self, tab_id: int, widget_id: int) -> None:
        """
        Remove a widget reference from the tab layout, leaving the widget row alone.

        Raises:
            WidgetNotInTabError: If the widget is not part of the layout
        """
        def _remove(repo: "Repository") -> None:
            tab = repo.get_tab(tab_id)
            repo.store_tab(remove_widget(tab, widget_id))

        self._atomically(_remove)

    # Feeds

    @abstractmethod
    def get_or_create_feed_id(self, url: str) -> int:
        pass

    @abstractmethod
    def get_feed(self, feed_id: int) -> Feed:
        pass

    @abstractmethod
    def get_feed_items(self, feed_id: int) -> List[FeedItem]:
        """Items of a feed, most recent first"""

    @abstractmethod
    def store_feed(self, feed: Feed, items: List[FeedItem]) -> None:
        """Update the feed row and replace its whole item set"""

    # Read state

    @abstractmethod
    def are_items_read(self, user_id: str, feed_id: int, guids: List[str]) -> List[bool]:
        """Read flags in the order of ``guids``; unknown items are unread"""

    @abstractmethod
    def set_item_read(self, user_id: str, feed_id: int, guid: str, read: bool) -> None:
        pass

    def set_items_read(self, user_id: str, feed_id: int, guids: List[str], read: bool) -> None:
        def _set(repo: "Repository") -> None:
            for guid in guids:
                repo.set_item_read(user_id, feed_id, guid, read)

        self._atomically(_set)

    # External accounts

    @abstractmethod
    def get_account(self, user_id: str, account_id: int) -> ExternalAccount:
        pass

    @abstractmethod
    def get_accounts(self, user_id: str) -> List[ExternalAccount]:
        pass

    @abstractmethod
    def delete_account(self, user_id: str, account_id: int) -> None:
        pass

    @abstractmethod
    def store_account(self, user_id: str, account: ExternalAccount) -> ExternalAccount:
        pass

    # OAuth2 temporary codes

    @abstractmethod
    def get_user_from_temporary_code(self, provider: str, code: str) -> str:
        pass

    @abstractmethod
    def store_temporary_code(self, user_id: str, provider: str, code: str) -> None:
        pass

    @abstractmethod
    def delete_temporary_code(self, user_id: str, provider: str) -> None:
        pass

    # Email cache

    @abstractmethod
    def get_email_item(self, account: ExternalAccount, guid: str, min_version: int) -> Optional[EmailItem]:
        """Cached item if stored with ``version >= min_version``, else None"""

    @abstractmethod
    def store_email_item(self, account: ExternalAccount, version: int, item: EmailItem) -> None:
        """Insert the item, or overwrite it only when ``version`` is strictly newer"""
