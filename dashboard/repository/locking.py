import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from dashboard.exceptions import LockTimeoutError, TransactionMisuseError
from dashboard.logging_config import get_logger
from dashboard.repository.base import Repository, T
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

logger = get_logger(__name__)


def _name(operation: Callable) -> str:
    return getattr(operation, "__name__", repr(operation))


class ReadWriteLock:
    """
    Reader/writer lock preferring writers.

    Readers share the lock; a writer excludes readers and other writers.
    Once a writer is waiting, new readers queue behind it so a steady flow
    of reads cannot starve writes.

    The thread owning the write lock may not acquire it again (in either
    mode): that would deadlock, so ``TransactionMisuseError`` is raised.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: Optional[int] = None
        self._waiting_writers = 0

    def _check_reentry(self) -> None:
        if self._writer == threading.get_ident():
            raise TransactionMisuseError("Repository re-entered while holding its write lock")

    def acquire_read(self, timeout: Optional[float] = None) -> None:
        with self._cond:
            self._check_reentry()
            acquired = self._cond.wait_for(
                lambda: self._writer is None and self._waiting_writers == 0,
                timeout
            )
            if not acquired:
                raise LockTimeoutError("read", timeout)
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: Optional[float] = None) -> None:
        with self._cond:
            self._check_reentry()
            self._waiting_writers += 1
            try:
                acquired = self._cond.wait_for(
                    lambda: self._writer is None and self._readers == 0,
                    timeout
                )
            finally:
                self._waiting_writers -= 1

            if not acquired:
                # readers may have been queued behind this writer
                self._cond.notify_all()
                raise LockTimeoutError("write", timeout)
            self._writer = threading.get_ident()

    def release_write(self) -> None:
        with self._cond:
            self._writer = None
            self._cond.notify_all()

    @contextmanager
    def read_locked(self, timeout: Optional[float] = None) -> Iterator[None]:
        self.acquire_read(timeout)
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self, timeout: Optional[float] = None) -> Iterator[None]:
        self.acquire_write(timeout)
        try:
            yield
        finally:
            self.release_write()


class LockedRepository(Repository):
    """
    Decorator serializing access to a backend without its own isolation.

    Read operations hold the shared lock, write operations the exclusive
    one, for the duration of the delegated call. The wrapped repository
    never calls back into this wrapper, so composite operations (a tab
    resolving its widgets, a layout update) take the lock only once.

    Each instance owns its lock unless one is passed in.
    """

    def __init__(
        self,
        inner: Repository,
        lock: Optional[ReadWriteLock] = None,
        timeout: Optional[float] = None
    ):
        self.inner = inner
        self.lock = lock or ReadWriteLock()
        self.timeout = timeout

    def _read(self, operation: Callable[..., T], *args) -> T:
        logger.debug(f"Waiting for read lock ({_name(operation)})")
        with self.lock.read_locked(self.timeout):
            return operation(*args)

    def _write(self, operation: Callable[..., T], *args) -> T:
        logger.debug(f"Waiting for write lock ({_name(operation)})")
        with self.lock.write_locked(self.timeout):
            return operation(*args)

    def is_not_found(self, exc: BaseException) -> bool:
        return self.inner.is_not_found(exc)

    def run_in_transaction(self, fn: Callable[[Repository], T]) -> T:
        # the closure works on the unlocked transactional view of the inner backend
        return self._write(self.inner.run_in_transaction, fn)

    def get_user(self, user_id: str) -> User:
        return self._read(self.inner.get_user, user_id)

    def store_user(self, user: User) -> None:
        return self._write(self.inner.store_user, user)

    def get_tabs(self, user_id: str) -> List[TabSummary]:
        return self._read(self.inner.get_tabs, user_id)

    def is_tab_access_allowed(self, user_id: str, tab_id: int) -> bool:
        return self._read(self.inner.is_tab_access_allowed, user_id, tab_id)

    def allow_tab_access(self, user_id: str, tab_id: int) -> None:
        return self._write(self.inner.allow_tab_access, user_id, tab_id)

    def get_tab(self, tab_id: int) -> Tab:
        return self._read(self.inner.get_tab, tab_id)

    def store_tab(self, tab: Tab) -> Tab:
        return self._write(self.inner.store_tab, tab)

    def delete_tab(self, tab_id: int) -> None:
        return self._write(self.inner.delete_tab, tab_id)

    def get_widget(self, tab_id: int, widget_id: int) -> Widget:
        return self._read(self.inner.get_widget, tab_id, widget_id)

    def store_widget(self, tab_id: int, widget: Widget) -> Widget:
        return self._write(self.inner.store_widget, tab_id, widget)

    def delete_widget(self, tab_id: int, widget_id: int) -> None:
        return self._write(self.inner.delete_widget, tab_id, widget_id)

    def update_tab_layout(self, tab_id: int, layout: List[List[int]]) -> None:
        return self._write(self.inner.update_tab_layout, tab_id, layout)

    def delete_widget_from_tab(self, tab_id: int, widget_id: int) -> None:
        return self._write(self.inner.delete_widget_from_tab, tab_id, widget_id)

    def get_or_create_feed_id(self, url: str) -> int:
        return self._write(self.inner.get_or_create_feed_id, url)

    def get_feed(self, feed_id: int) -> Feed:
        return self._read(self.inner.get_feed, feed_id)

    def get_feed_items(self, feed_id: int) -> List[FeedItem]:
        return self._read(self.inner.get_feed_items, feed_id)

    def store_feed(self, feed: Feed, items: List[FeedItem]) -> None:
        return self._write(self.inner.store_feed, feed, items)

    def are_items_read(self, user_id: str, feed_id: int, guids: List[str]) -> List[bool]:
        return self._read(self.inner.are_items_read, user_id, feed_id, guids)

    def set_item_read(self, user_id: str, feed_id: int, guid: str, read: bool) -> None:
        return self._write(self.inner.set_item_read, user_id, feed_id, guid, read)

    def set_items_read(self, user_id: str, feed_id: int, guids: List[str], read: bool) -> None:
        return self._write(self.inner.set_items_read, user_id, feed_id, guids, read)

    def get_account(self, user_id: str, account_id: int) -> ExternalAccount:
        return self._read(self.inner.get_account, user_id, account_id)

    def get_accounts(self, user_id: str) -> List[ExternalAccount]:
        return self._read(self.inner.get_accounts, user_id)

    def delete_account(self, user_id: str, account_id: int) -> None:
        return self._write(self.inner.delete_account, user_id, account_id)

    def store_account(self, user_id: str, account: ExternalAccount) -> ExternalAccount:
        return self._write(self.inner.store_account, user_id, account)

    def get_user_from_temporary_code(self, provider: str, code: str) -> str:
        return self._read(self.inner.get_user_from_temporary_code, provider, code)

    def store_temporary_code(self, user_id: str, provider: str, code: str) -> None:
        return self._write(self.inner.store_temporary_code, user_id, provider, code)

    def delete_temporary_code(self, user_id: str, provider: str) -> None:
        return self._write(self.inner.delete_temporary_code, user_id, provider)

    def get_email_item(self, account: ExternalAccount, guid: str, min_version: int) -> Optional[EmailItem]:
        return self._read(self.inner.get_email_item, account, guid, min_version)

    def store_email_item(self, account: ExternalAccount, version: int, item: EmailItem) -> None:
        return self._write(self.inner.store_email_item, account, version, item)
