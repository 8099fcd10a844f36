from abc import abstractmethod
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoResultFound, SQLAlchemyError
from sqlalchemy.orm import Session

from dashboard import models
from dashboard.exceptions import StorageError, TransactionMisuseError
from dashboard.logging_config import get_logger
from dashboard.repository.base import Repository, T, storage_errors
from dashboard.schemas import (
    EmailItem,
    ExternalAccount,
    Feed,
    FeedItem,
    Tab,
    TabSummary,
    User,
    Widget,
    config_from_storage,
    config_to_storage,
)
from dashboard.utils.date_utils import as_utc, utcnow
from dashboard.utils.layout import layout_ids

logger = get_logger(__name__)

SQL_ERRORS = (SQLAlchemyError,)


class SqlRepository(Repository):
    """
    Repository over a relational database through SQLAlchemy.

    Without a bound session every operation runs in its own short
    transaction. ``run_in_transaction`` hands the closure a copy of the
    repository bound to a single session, committed when the closure
    returns and rolled back when it raises.

    Dialect specific upserts come from ``insert``, provided by subclasses.
    """

    not_found_errors = (NoResultFound,)

    def __init__(self, engine: Engine, session: Optional[Session] = None):
        self.engine = engine
        self._session = session
        self._closed = False

    @abstractmethod
    def insert(self, table):
        """Dialect specific ``INSERT`` supporting ON CONFLICT clauses"""

    @property
    def in_transaction(self) -> bool:
        return self._session is not None

    @contextmanager
    def _begin(self) -> Iterator[Session]:
        if self._session is not None:
            if self._closed:
                raise TransactionMisuseError("Transactional repository used after commit or rollback")
            yield self._session
            return

        with Session(self.engine, expire_on_commit=False) as session:
            with session.begin():
                yield session

    def run_in_transaction(self, fn: Callable[[Repository], T]) -> T:
        if self._session is not None:
            raise TransactionMisuseError()

        with storage_errors("Transaction failed", SQL_ERRORS):
            with Session(self.engine, expire_on_commit=False) as session:
                view = type(self)(self.engine, session=session)
                try:
                    with session.begin():
                        return fn(view)
                finally:
                    view._closed = True

    # Users

    def get_user(self, user_id: str) -> User:
        with storage_errors(f"Fetching user {user_id} failed", SQL_ERRORS), self._begin() as session:
            row = session.execute(
                select(models.User).where(models.User.id == user_id)
            ).scalar_one()
            return User(
                user_id=row.id,
                display_name=row.display_name,
                email=row.email,
                is_admin=row.is_admin
            )

    def store_user(self, user: User) -> None:
        with storage_errors(f"Storing user {user.user_id} failed", SQL_ERRORS), self._begin() as session:
            session.merge(models.User(
                id=user.user_id,
                display_name=user.display_name,
                email=user.email,
                is_admin=user.is_admin
            ))

    # Tab access

    def get_tabs(self, user_id: str) -> List[TabSummary]:
        with storage_errors("Fetching tabs failed", SQL_ERRORS), self._begin() as session:
            rows = session.execute(
                select(models.Tab.id, models.Tab.title)
                .join(models.TabAccess, models.TabAccess.tab_id == models.Tab.id)
                .where(models.TabAccess.user_id == user_id)
                .order_by(models.Tab.id)
            ).all()
            return [TabSummary(id=row.id, title=row.title) for row in rows]

    def is_tab_access_allowed(self, user_id: str, tab_id: int) -> bool:
        with storage_errors("Checking tab access failed", SQL_ERRORS), self._begin() as session:
            count = session.execute(
                select(func.count())
                .select_from(models.TabAccess)
                .where(models.TabAccess.user_id == user_id, models.TabAccess.tab_id == tab_id)
            ).scalar_one()
            return count == 1

    def allow_tab_access(self, user_id: str, tab_id: int) -> None:
        with storage_errors("Adding tab access failed", SQL_ERRORS), self._begin() as session:
            session.execute(
                self.insert(models.TabAccess)
                .values(user_id=user_id, tab_id=tab_id)
                .on_conflict_do_nothing(index_elements=["user_id", "tab_id"])
            )

    # Tabs

    def get_tab(self, tab_id: int) -> Tab:
        with storage_errors(f"Fetching tab {tab_id} failed", SQL_ERRORS), self._begin() as session:
            row = session.execute(
                select(models.Tab).where(models.Tab.id == tab_id)
            ).scalar_one()

            widget_rows = session.execute(
                select(models.Widget).where(models.Widget.tab_id == tab_id)
            ).scalars().all()
            widgets = {w.id: self._to_widget(w) for w in widget_rows}

            columns = []
            for column in row.layout or []:
                resolved = []
                for widget_id in column:
                    if widget_id not in widgets:
                        raise StorageError(f"Tab {tab_id} layout references missing widget {widget_id}")
                    resolved.append(widgets[widget_id])
                columns.append(resolved)

            return Tab(summary=TabSummary(id=row.id, title=row.title), widgets=columns)

    def store_tab(self, tab: Tab) -> Tab:
        layout = layout_ids(tab)
        with storage_errors(f"Storing tab {tab.id} failed", SQL_ERRORS), self._begin() as session:
            if tab.id:
                row = session.execute(
                    select(models.Tab).where(models.Tab.id == tab.id)
                ).scalar_one()
                row.title = tab.title
                row.layout = layout
            else:
                row = models.Tab(title=tab.title, layout=layout)
                session.add(row)
            session.flush()
            tab_id = row.id

        summary = TabSummary(id=tab_id, title=tab.title)
        return tab.model_copy(update={"summary": summary})

    def delete_tab(self, tab_id: int) -> None:
        with storage_errors(f"Deleting tab {tab_id} failed", SQL_ERRORS), self._begin() as session:
            session.execute(delete(models.Widget).where(models.Widget.tab_id == tab_id))
            session.execute(delete(models.TabAccess).where(models.TabAccess.tab_id == tab_id))
            session.execute(delete(models.Tab).where(models.Tab.id == tab_id))

    # Widgets

    @staticmethod
    def _to_widget(row: models.Widget) -> Widget:
        return Widget(id=row.id, type=row.type, config=config_from_storage(row.type, row.config))

    def get_widget(self, tab_id: int, widget_id: int) -> Widget:
        with storage_errors(f"Fetching widget {widget_id} failed", SQL_ERRORS), self._begin() as session:
            row = session.execute(
                select(models.Widget)
                .where(models.Widget.id == widget_id, models.Widget.tab_id == tab_id)
            ).scalar_one()
            return self._to_widget(row)

    def store_widget(self, tab_id: int, widget: Widget) -> Widget:
        blob = config_to_storage(widget.config)
        with storage_errors(f"Storing widget {widget.id} failed", SQL_ERRORS), self._begin() as session:
            if widget.id:
                row = session.execute(
                    select(models.Widget)
                    .where(models.Widget.id == widget.id, models.Widget.tab_id == tab_id)
                ).scalar_one()
                row.type = widget.type
                row.config = blob
            else:
                row = models.Widget(tab_id=tab_id, type=widget.type, config=blob)
                session.add(row)
            session.flush()
            widget_id = row.id

        return widget.model_copy(update={"id": widget_id})

    def delete_widget(self, tab_id: int, widget_id: int) -> None:
        with storage_errors(f"Deleting widget {widget_id} failed", SQL_ERRORS), self._begin() as session:
            session.execute(
                delete(models.Widget)
                .where(models.Widget.id == widget_id, models.Widget.tab_id == tab_id)
            )

    # Feeds

    def get_or_create_feed_id(self, url: str) -> int:
        with storage_errors(f"Getting feed for {url} failed", SQL_ERRORS), self._begin() as session:
            # the unique url constraint settles concurrent creations
            session.execute(
                self.insert(models.Feed)
                .values(url=url, next_retrieval=utcnow(), title="")
                .on_conflict_do_nothing(index_elements=["url"])
            )
            return session.execute(
                select(models.Feed.id).where(models.Feed.url == url)
            ).scalar_one()

    def get_feed(self, feed_id: int) -> Feed:
        with storage_errors(f"Fetching feed {feed_id} failed", SQL_ERRORS), self._begin() as session:
            row = session.execute(
                select(models.Feed).where(models.Feed.id == feed_id)
            ).scalar_one()
            return Feed(
                id=row.id,
                url=row.url,
                next_retrieval=as_utc(row.next_retrieval),
                title=row.title
            )

    def get_feed_items(self, feed_id: int) -> List[FeedItem]:
        with storage_errors(f"Fetching items of feed {feed_id} failed", SQL_ERRORS), self._begin() as session:
            rows = session.execute(
                select(models.FeedItem)
                .where(models.FeedItem.feed_id == feed_id)
                .order_by(models.FeedItem.published.desc())
            ).scalars().all()
            return [
                FeedItem(guid=r.guid, title=r.title, published=as_utc(r.published), link=r.link)
                for r in rows
            ]

    def store_feed(self, feed: Feed, items: List[FeedItem]) -> None:
        unique_items = {}
        for item in items:
            unique_items.setdefault(item.guid, item)

        with storage_errors(f"Storing feed {feed.id} failed", SQL_ERRORS), self._begin() as session:
            row = session.execute(
                select(models.Feed).where(models.Feed.id == feed.id)
            ).scalar_one()
            row.next_retrieval = as_utc(feed.next_retrieval)
            row.title = feed.title

            session.execute(delete(models.FeedItem).where(models.FeedItem.feed_id == feed.id))
            session.add_all([
                models.FeedItem(
                    feed_id=feed.id,
                    guid=item.guid,
                    title=item.title,
                    published=as_utc(item.published),
                    link=item.link
                )
                for item in unique_items.values()
            ])

        logger.info(f"Stored feed {feed.id} with {len(unique_items)} items")

    # Read state

    def are_items_read(self, user_id: str, feed_id: int, guids: List[str]) -> List[bool]:
        if not guids:
            return []

        with storage_errors("Fetching read status failed", SQL_ERRORS), self._begin() as session:
            rows = session.execute(
                select(models.FeedItemRead.guid, models.FeedItemRead.read)
                .where(
                    models.FeedItemRead.user_id == user_id,
                    models.FeedItemRead.feed_id == feed_id,
                    models.FeedItemRead.guid.in_(guids)
                )
            ).all()

        flags = {row.guid: row.read for row in rows}
        return [bool(flags.get(guid, False)) for guid in guids]

    def set_item_read(self, user_id: str, feed_id: int, guid: str, read: bool) -> None:
        with storage_errors("Saving read status failed", SQL_ERRORS), self._begin() as session:
            if not read:
                # unread is the absence of a row
                session.execute(
                    delete(models.FeedItemRead).where(
                        models.FeedItemRead.user_id == user_id,
                        models.FeedItemRead.feed_id == feed_id,
                        models.FeedItemRead.guid == guid
                    )
                )
                return

            session.execute(
                self.insert(models.FeedItemRead)
                .values(user_id=user_id, feed_id=feed_id, guid=guid, read=True)
                .on_conflict_do_update(
                    index_elements=["user_id", "feed_id", "guid"],
                    set_={"read": True}
                )
            )

    # External accounts

    @staticmethod
    def _to_account(row: models.ExternalAccount) -> ExternalAccount:
        return ExternalAccount(
            id=row.id,
            provider_name=row.provider,
            account_id=row.account_id,
            token=row.token
        )

    def get_account(self, user_id: str, account_id: int) -> ExternalAccount:
        with storage_errors(f"Fetching account {account_id} failed", SQL_ERRORS), self._begin() as session:
            row = session.execute(
                select(models.ExternalAccount)
                .where(models.ExternalAccount.id == account_id, models.ExternalAccount.user_id == user_id)
            ).scalar_one()
            return self._to_account(row)

    def get_accounts(self, user_id: str) -> List[ExternalAccount]:
        with storage_errors("Fetching accounts failed", SQL_ERRORS), self._begin() as session:
            rows = session.execute(
                select(models.ExternalAccount)
                .where(models.ExternalAccount.user_id == user_id)
                .order_by(models.ExternalAccount.id)
            ).scalars().all()
            return [self._to_account(row) for row in rows]

    def delete_account(self, user_id: str, account_id: int) -> None:
        with storage_errors(f"Deleting account {account_id} failed", SQL_ERRORS), self._begin() as session:
            owned = select(models.ExternalAccount.id).where(
                models.ExternalAccount.id == account_id,
                models.ExternalAccount.user_id == user_id
            )
            session.execute(delete(models.EmailItem).where(models.EmailItem.account_id.in_(owned)))
            session.execute(
                delete(models.ExternalAccount)
                .where(models.ExternalAccount.id == account_id, models.ExternalAccount.user_id == user_id)
            )

    def store_account(self, user_id: str, account: ExternalAccount) -> ExternalAccount:
        with storage_errors("Storing account failed", SQL_ERRORS), self._begin() as session:
            if account.id:
                row = session.execute(
                    select(models.ExternalAccount)
                    .where(models.ExternalAccount.id == account.id, models.ExternalAccount.user_id == user_id)
                ).scalar_one()
                row.provider = account.provider_name
                row.account_id = account.account_id
                row.token = account.token
            else:
                row = models.ExternalAccount(
                    user_id=user_id,
                    provider=account.provider_name,
                    account_id=account.account_id,
                    token=account.token
                )
                session.add(row)
            session.flush()
            account_id = row.id

        return account.model_copy(update={"id": account_id})

    # OAuth2 temporary codes

    def get_user_from_temporary_code(self, provider: str, code: str) -> str:
        with storage_errors("Retrieving user from temporary code failed", SQL_ERRORS), self._begin() as session:
            return session.execute(
                select(models.TemporaryCode.user_id)
                .where(models.TemporaryCode.provider == provider, models.TemporaryCode.code == code)
            ).scalar_one()

    def store_temporary_code(self, user_id: str, provider: str, code: str) -> None:
        with storage_errors("Storing temporary code failed", SQL_ERRORS), self._begin() as session:
            session.add(models.TemporaryCode(code=code, user_id=user_id, provider=provider))

    def delete_temporary_code(self, user_id: str, provider: str) -> None:
        with storage_errors("Deleting temporary code failed", SQL_ERRORS), self._begin() as session:
            session.execute(
                delete(models.TemporaryCode)
                .where(models.TemporaryCode.user_id == user_id, models.TemporaryCode.provider == provider)
            )

    # Email cache

    def get_email_item(self, account: ExternalAccount, guid: str, min_version: int) -> Optional[EmailItem]:
        with storage_errors(f"Retrieving email item {guid} failed", SQL_ERRORS), self._begin() as session:
            row = session.execute(
                select(models.EmailItem).where(
                    models.EmailItem.account_id == account.id,
                    models.EmailItem.guid == guid,
                    models.EmailItem.version >= min_version
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            return EmailItem(
                guid=row.guid,
                title=row.title,
                published=as_utc(row.published),
                link=row.link,
                read=row.read,
                sender=row.sender,
                snippet=row.snippet
            )

    def store_email_item(self, account: ExternalAccount, version: int, item: EmailItem) -> None:
        stmt = self.insert(models.EmailItem).values(
            account_id=account.id,
            guid=item.guid,
            title=item.title,
            published=as_utc(item.published),
            link=item.link,
            sender=item.sender,
            snippet=item.snippet,
            read=item.read,
            version=version
        )
        # only a strictly newer version may replace the cached copy
        stmt = stmt.on_conflict_do_update(
            index_elements=["account_id", "guid"],
            set_={
                "title": stmt.excluded.title,
                "published": stmt.excluded.published,
                "link": stmt.excluded.link,
                "sender": stmt.excluded.sender,
                "snippet": stmt.excluded.snippet,
                "read": stmt.excluded.read,
                "version": stmt.excluded.version,
            },
            where=models.EmailItem.version < stmt.excluded.version
        )

        with storage_errors(f"Storing email item {item.guid} failed", SQL_ERRORS), self._begin() as session:
            session.execute(stmt)
