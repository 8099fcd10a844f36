from typing import Callable, List, Optional

from google.api_core import exceptions as gexc
from google.cloud import datastore

from dashboard.exceptions import BackendCapabilityError, TransactionMisuseError
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
)

logger = get_logger(__name__)

USER_KIND = "User"
DATASTORE_ERRORS = (gexc.GoogleAPICallError,)


class DatastoreRepository(Repository):
    """
    Google Cloud Datastore backend.

    Only users are stored here for now. Every other operation raises
    ``BackendCapabilityError`` naming the operation, so callers can tell a
    missing capability apart from a storage failure.
    """

    not_found_errors = (gexc.NotFound,)

    def __init__(self, client: datastore.Client, transaction: Optional[datastore.Transaction] = None):
        self.client = client
        self._transaction = transaction

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    def run_in_transaction(self, fn: Callable[[Repository], T]) -> T:
        if self._transaction is not None:
            raise TransactionMisuseError()

        with storage_errors("Datastore transaction failed", DATASTORE_ERRORS):
            with self.client.transaction() as transaction:
                return fn(DatastoreRepository(self.client, transaction=transaction))

    def _put(self, entity: datastore.Entity) -> None:
        if self._transaction is not None:
            self._transaction.put(entity)
        else:
            self.client.put(entity)

    def get_user(self, user_id: str) -> User:
        with storage_errors(f"Fetching user {user_id} failed", DATASTORE_ERRORS):
            key = self.client.key(USER_KIND, user_id)
            entity = self.client.get(key, transaction=self._transaction)
            if entity is None:
                raise gexc.NotFound(f"User {user_id} not found")

            return User(
                user_id=user_id,
                display_name=entity.get("display_name", ""),
                email=entity.get("email", ""),
                is_admin=entity.get("is_admin", False)
            )

    def store_user(self, user: User) -> None:
        with storage_errors(f"Storing user {user.user_id} failed", DATASTORE_ERRORS):
            entity = datastore.Entity(key=self.client.key(USER_KIND, user.user_id))
            entity.update({
                "display_name": user.display_name,
                "email": user.email,
                "is_admin": user.is_admin,
            })
            self._put(entity)

    def get_tabs(self, user_id: str) -> List[TabSummary]:
        raise BackendCapabilityError("get_tabs")

    def is_tab_access_allowed(self, user_id: str, tab_id: int) -> bool:
        raise BackendCapabilityError("is_tab_access_allowed")

    def allow_tab_access(self, user_id: str, tab_id: int) -> None:
        raise BackendCapabilityError("allow_tab_access")

    def get_tab(self, tab_id: int) -> Tab:
        raise BackendCapabilityError("get_tab")

    def store_tab(self, tab: Tab) -> Tab:
        raise BackendCapabilityError("store_tab")

    def delete_tab(self, tab_id: int) -> None:
        raise BackendCapabilityError("delete_tab")

    def get_widget(self, tab_id: int, widget_id: int) -> Widget:
        raise BackendCapabilityError("get_widget")

    def store_widget(self, tab_id: int, widget: Widget) -> Widget:
        raise BackendCapabilityError("store_widget")

    def delete_widget(self, tab_id: int, widget_id: int) -> None:
        raise BackendCapabilityError("delete_widget")

    def update_tab_layout(self, tab_id: int, layout: List[List[int]]) -> None:
        raise BackendCapabilityError("update_tab_layout")

    def delete_widget_from_tab(self, tab_id: int, widget_id: int) -> None:
        raise BackendCapabilityError("delete_widget_from_tab")

    def get_or_create_feed_id(self, url: str) -> int:
        raise BackendCapabilityError("get_or_create_feed_id")

    def get_feed(self, feed_id: int) -> Feed:
        raise BackendCapabilityError("get_feed")

    def get_feed_items(self, feed_id: int) -> List[FeedItem]:
        raise BackendCapabilityError("get_feed_items")

    def store_feed(self, feed: Feed, items: List[FeedItem]) -> None:
        raise BackendCapabilityError("store_feed")

    def are_items_read(self, user_id: str, feed_id: int, guids: List[str]) -> List[bool]:
        raise BackendCapabilityError("are_items_read")

    def set_item_read(self, user_id: str, feed_id: int, guid: str, read: bool) -> None:
        raise BackendCapabilityError("set_item_read")

    def set_items_read(self, user_id: str, feed_id: int, guids: List[str], read: bool) -> None:
        raise BackendCapabilityError("set_items_read")

    def get_account(self, user_id: str, account_id: int) -> ExternalAccount:
        raise BackendCapabilityError("get_account")

    def get_accounts(self, user_id: str) -> List[ExternalAccount]:
        raise BackendCapabilityError("get_accounts")

    def delete_account(self, user_id: str, account_id: int) -> None:
        raise BackendCapabilityError("delete_account")

    def store_account(self, user_id: str, account: ExternalAccount) -> ExternalAccount:
        raise BackendCapabilityError("store_account")

    def get_user_from_temporary_code(self, provider: str, code: str) -> str:
        raise BackendCapabilityError("get_user_from_temporary_code")

    def store_temporary_code(self, user_id: str, provider: str, code: str) -> None:
        raise BackendCapabilityError("store_temporary_code")

    def delete_temporary_code(self, user_id: str, provider: str) -> None:
        raise BackendCapabilityError("delete_temporary_code")

    def get_email_item(self, account: ExternalAccount, guid: str, min_version: int) -> Optional[EmailItem]:
        raise BackendCapabilityError("get_email_item")

    def store_email_item(self, account: ExternalAccount, version: int, item: EmailItem) -> None:
        raise BackendCapabilityError("store_email_item")
