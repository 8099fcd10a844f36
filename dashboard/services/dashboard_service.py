import secrets
from typing import Dict, List, Optional

from dashboard.config import Settings
from dashboard.exceptions import (
    InvalidInputError,
    NotAuthorizedError,
    NotFoundError,
    WidgetNotInTabError,
)
from dashboard.logging_config import get_logger
from dashboard.repository import Repository
from dashboard.schemas import (
    EmailConfig,
    EmailPage,
    EmailQuery,
    ExternalAccount,
    FeedConfig,
    Identity,
    ItemForUser,
    PreviewResult,
    ProviderDescription,
    RawConfig,
    Snapshot,
    Tab,
    TabSummary,
    User,
    UserData,
    Widget,
    WidgetConfig,
)
from dashboard.services.feed_service import FeedService
from dashboard.services.providers import EmailProvider
from dashboard.utils.layout import append_widget, find_widget

logger = get_logger(__name__)

NEW_TAB_COLUMNS = 4


class DashboardService:
    """
    Use cases of the dashboard: users, tabs, widgets, feeds and linked accounts.

    Every operation receives the authenticated caller and checks it before
    touching storage. User scoped operations require the caller to be that
    user or an admin; tab operations require a tab access grant or admin.
    """

    def __init__(
        self,
        repository: Repository,
        feed_service: FeedService,
        providers: Dict[str, EmailProvider],
        settings: Settings
    ):
        self.repository = repository
        self.feed_service = feed_service
        self.providers = providers
        self.settings = settings

    # Authorization

    def _check_user(self, caller: Identity, user_id: str) -> None:
        if not caller.can_act_for(user_id):
            raise NotAuthorizedError(f"access denied to user {user_id} for {caller.user_id}")

    def _check_tab(self, caller: Identity, tab_id: int) -> None:
        if caller.is_admin:
            return
        if not self.repository.is_tab_access_allowed(caller.user_id, tab_id):
            raise NotAuthorizedError(f"access denied to tab {tab_id} for {caller.user_id}")

    def _email_provider(self, name: str) -> EmailProvider:
        provider = self.providers.get(name)
        if provider is None:
            raise InvalidInputError(f"Unknown service: {name}")
        return provider

    # Users

    def user(self, caller: Identity, user_id: str) -> UserData:
        """Basic information and tab list of a user, creating the user on first visit"""
        self._check_user(caller, user_id)

        try:
            user = self.repository.get_user(user_id)
        except Exception as e:
            if not self.repository.is_not_found(e) or caller.user_id != user_id:
                raise
            user = User(
                user_id=caller.user_id,
                display_name=caller.display_name,
                email=caller.email,
                is_admin=False
            )
            self.repository.store_user(user)
            logger.info(f"Created user {user.user_id}")

        tabs = self.repository.get_tabs(user_id)
        return UserData(user=user, tabs=tabs)

    def backup_user(self, caller: Identity, user_id: str) -> Snapshot:
        """Collect the user's configuration: tabs with their widgets, feeds and accounts"""
        self._check_user(caller, user_id)

        user = self.repository.get_user(user_id)
        tabs = [self.repository.get_tab(summary.id) for summary in self.repository.get_tabs(user_id)]

        feed_ids = []
        for tab in tabs:
            for column in tab.widgets:
                for widget in column:
                    if isinstance(widget.config, FeedConfig) and widget.config.feed_id not in feed_ids:
                        feed_ids.append(widget.config.feed_id)
        feeds = [self.repository.get_feed(feed_id) for feed_id in feed_ids]

        accounts = self.repository.get_accounts(user_id)
        return Snapshot(user=user, tabs=tabs, feeds=feeds, accounts=accounts)

    def restore_user(self, caller: Identity, user_id: str, snapshot: Snapshot) -> None:
        """
        Recreate tabs and widgets from a snapshot.

        The user must have no tab yet and must already have linked every
        account the snapshot refers to. Feed and account ids are remapped to
        the ones of this installation.

        Raises:
            InvalidInputError: If the snapshot cannot be applied to this user
        """
        self._check_user(caller, user_id)

        if snapshot.user.user_id != user_id:
            raise InvalidInputError(f"User IDs do not match: '{user_id}' '{snapshot.user.user_id}'")

        def _restore(repo: Repository) -> None:
            existing_tabs = repo.get_tabs(user_id)
            if existing_tabs:
                raise InvalidInputError(f"Restore not possible due to {len(existing_tabs)} existing tabs")

            existing_accounts = {a.key(): a.id for a in repo.get_accounts(user_id)}
            account_ids = {}
            for account in snapshot.accounts:
                if account.key() not in existing_accounts:
                    raise InvalidInputError(f"Restore not possible due to missing account: {account.key()}")
                account_ids[account.id] = existing_accounts[account.key()]

            feed_ids = {feed.id: repo.get_or_create_feed_id(feed.url) for feed in snapshot.feeds}

            for tab in snapshot.tabs:
                new_tab = repo.store_tab(Tab(summary=TabSummary(title=tab.title)))
                repo.allow_tab_access(user_id, new_tab.id)

                columns = []
                for column in tab.widgets:
                    new_column = []
                    for widget in column:
                        config = widget.config
                        if isinstance(config, FeedConfig):
                            if config.feed_id not in feed_ids:
                                raise InvalidInputError("Unknown feed ID")
                            config = config.model_copy(update={"feed_id": feed_ids[config.feed_id]})
                        elif isinstance(config, EmailConfig):
                            if config.account_id not in account_ids:
                                raise InvalidInputError("Unknown account ID")
                            config = config.model_copy(update={"account_id": account_ids[config.account_id]})

                        new_widget = widget.model_copy(update={"id": 0, "config": config})
                        new_column.append(repo.store_widget(new_tab.id, new_widget))
                    columns.append(new_column)

                repo.store_tab(new_tab.model_copy(update={"widgets": columns}))

        self.repository.run_in_transaction(_restore)
        logger.info(f"Restored {len(snapshot.tabs)} tabs for user {user_id}")

    # Providers and accounts

    def services(self) -> List[ProviderDescription]:
        return [provider.description() for provider in self.providers.values()]

    def associated_account(self, caller: Identity, user_id: str, account_id: int) -> ExternalAccount:
        self._check_user(caller, user_id)
        return self.repository.get_account(user_id, account_id)

    def associated_accounts(self, caller: Identity, user_id: str) -> List[ExternalAccount]:
        self._check_user(caller, user_id)
        return self.repository.get_accounts(user_id)

    def associated_service_accounts(self, caller: Identity, user_id: str, provider: str) -> List[ExternalAccount]:
        accounts = self.associated_accounts(caller, user_id)
        return [account for account in accounts if account.provider_name == provider]

    def revoke_account(self, caller: Identity, user_id: str, account_id: int) -> bool:
        self._check_user(caller, user_id)
        self.repository.delete_account(user_id, account_id)
        logger.info(f"Revoked account {account_id} of user {user_id}")
        return True

    # Tabs

    def tab(self, caller: Identity, tab_id: int) -> Tab:
        self._check_tab(caller, tab_id)
        return self.repository.get_tab(tab_id)

    def edit_tab(self, caller: Identity, tab_id: int, summary: TabSummary) -> Tab:
        self._check_tab(caller, tab_id)

        def _edit(repo: Repository) -> Tab:
            tab = repo.get_tab(tab_id)
            updated = tab.model_copy(update={"summary": TabSummary(id=tab_id, title=summary.title)})
            return repo.store_tab(updated)

        return self.repository.run_in_transaction(_edit)

    def delete_tab(self, caller: Identity, tab_id: int) -> bool:
        self._check_tab(caller, tab_id)
        self.repository.delete_tab(tab_id)
        logger.info(f"Deleted tab {tab_id}")
        return True

    def new_tab(self, caller: Identity, summary: TabSummary) -> Tab:
        """Create a tab with empty columns, visible to the caller"""
        def _create(repo: Repository) -> Tab:
            tab = Tab(
                summary=TabSummary(title=summary.title),
                widgets=[[] for _ in range(NEW_TAB_COLUMNS)]
            )
            tab = repo.store_tab(tab)
            repo.allow_tab_access(caller.user_id, tab.id)
            return tab

        tab = self.repository.run_in_transaction(_create)
        logger.info(f"Created tab {tab.id} for {caller.user_id}")
        return tab

    # Widgets

    def _prepare_feed_config(self, config: FeedConfig) -> FeedConfig:
        if not config.url:
            raise InvalidInputError("A feed widget needs a URL")

        common = config.common
        if common.display_count <= 0:
            common = common.model_copy(update={"display_count": self.settings.DEFAULT_DISPLAY_COUNT})

        feed_id = self.repository.get_or_create_feed_id(config.url)
        if not common.title:
            feed, _ = self.feed_service.feed(feed_id, load_items=False)
            common = common.model_copy(update={"title": feed.title})

        return config.model_copy(update={"feed_id": feed_id, "common": common})

    def _prepare_email_config(self, caller: Identity, config: EmailConfig) -> EmailConfig:
        common = config.common
        if common.display_count <= 0:
            common = common.model_copy(update={"display_count": self.settings.DEFAULT_DISPLAY_COUNT})

        account = self.repository.get_account(caller.user_id, config.account_id)
        description = self._email_provider(account.provider_name).description()
        if not common.title:
            common = common.model_copy(update={"title": description.title})
        if not common.link:
            common = common.model_copy(update={"link": description.link})

        return config.model_copy(update={"common": common})

    def new_widget(self, caller: Identity, tab_id: int, widget: Widget) -> Widget:
        """
        Add a widget at the bottom of the tab's first column.

        Feed widgets are attached to the feed of their URL, created if new;
        email widgets must use one of the caller's linked accounts. Missing
        titles, links and display counts get sensible defaults.
        """
        self._check_tab(caller, tab_id)

        if isinstance(widget.config, FeedConfig):
            config = self._prepare_feed_config(widget.config)
        elif isinstance(widget.config, EmailConfig):
            config = self._prepare_email_config(caller, widget.config)
        else:
            raise InvalidInputError(f"Unknown widget type: {widget.type}")

        new_widget = widget.model_copy(update={"id": 0, "config": config})

        def _add(repo: Repository) -> Widget:
            tab = repo.get_tab(tab_id)
            stored = repo.store_widget(tab_id, new_widget)
            repo.store_tab(append_widget(tab, stored))
            return stored

        stored = self.repository.run_in_transaction(_add)
        logger.info(f"Added widget {stored.id} to tab {tab_id}")
        return stored

    def delete_widget(self, caller: Identity, tab_id: int, widget_id: int) -> bool:
        self._check_tab(caller, tab_id)
        logger.info(f"Removing widget {tab_id} {widget_id}")

        def _delete(repo: Repository) -> None:
            repo.delete_widget_from_tab(tab_id, widget_id)
            repo.delete_widget(tab_id, widget_id)

        self.repository.run_in_transaction(_delete)
        return True

    def edit_widget(self, caller: Identity, tab_id: int, widget_id: int, new_config: WidgetConfig) -> Widget:
        """Change the title and display count of a widget"""
        self._check_tab(caller, tab_id)
        logger.info(f"Editing widget {tab_id} {widget_id}")

        def _edit(repo: Repository) -> Widget:
            widget = repo.get_widget(tab_id, widget_id)
            if isinstance(widget.config, RawConfig):
                raise InvalidInputError("Invalid widget config type")

            common = widget.config.common.model_copy(update={
                "title": new_config.title,
                "display_count": new_config.display_count,
            })
            config = widget.config.model_copy(update={"common": common})
            return repo.store_widget(tab_id, widget.model_copy(update={"config": config}))

        return self.repository.run_in_transaction(_edit)

    def widget(self, caller: Identity, tab_id: int, widget_id: int) -> Widget:
        tab = self.tab(caller, tab_id)
        widget = find_widget(tab, widget_id)
        if widget is None:
            raise WidgetNotInTabError(tab_id, widget_id)
        return widget

    def update_layout(self, caller: Identity, tab_id: int, layout: List[List[int]]) -> List[List[int]]:
        self._check_tab(caller, tab_id)
        self.repository.update_tab_layout(tab_id, layout)
        return layout

    # Feeds

    def preview(self, caller: Identity, url: str) -> PreviewResult:
        logger.info(f"Preview of {url} for {caller.user_id}")
        return self.feed_service.preview(url)

    def feed_items(self, caller: Identity, user_id: str, feed_id: int) -> List[ItemForUser]:
        """
        Items of a feed with the user's read flags.

        Raises:
            NotFoundError: If the feed has no item
        """
        logger.info(f"Getting items for {user_id} feed {feed_id}")
        self._check_user(caller, user_id)

        feed, items = self.feed_service.feed(feed_id, load_items=True)
        if not items:
            raise NotFoundError(f"No items in feed {feed.url}")
        items = items[:self.settings.FEED_ITEMS_LIMIT]

        read_flags = self.repository.are_items_read(user_id, feed_id, [item.guid for item in items])
        result = [
            ItemForUser(item=item, read=read_flags[i] if i < len(read_flags) else False)
            for i, item in enumerate(items)
        ]

        logger.info(f"Done with {len(result)} items")
        return result

    def mark_as_read(self, caller: Identity, user_id: str, feed_id: int, guids: List[str]) -> None:
        self._check_user(caller, user_id)
        self.repository.set_items_read(user_id, feed_id, guids, True)

    # Emails

    def get_emails(
        self,
        caller: Identity,
        user_id: str,
        account_id: int,
        page_token: Optional[str] = None
    ) -> EmailPage:
        logger.info(f"Getting emails for {user_id} account {account_id}")
        self._check_user(caller, user_id)

        account = self.repository.get_account(user_id, account_id)
        provider = self._email_provider(account.provider_name)
        return provider.get_items(account, EmailQuery(), page_token)

    # OAuth2 flow

    def service_register(self, caller: Identity, provider_name: str) -> str:
        """
        Start linking an account: remember who asked and return the consent URL.

        The random code sent as OAuth2 ``state`` lets the callback find the
        user back.
        """
        provider = self._email_provider(provider_name)

        state = secrets.token_urlsafe(24)
        self.repository.store_temporary_code(caller.user_id, provider_name, state)

        url = provider.authorization_url(state)
        logger.info(f"Registration on {provider_name} started for {caller.user_id}")
        return url

    def handle_oauth2_callback(self, provider_name: str, state: str, code: str) -> str:
        """
        Finish linking an account and store it for the user who started the flow.

        Returns:
            Id of the user owning the new account

        Raises:
            NotAuthorizedError: If the state does not match a pending registration
            InvalidInputError: If no code was received or the provider is unknown
        """
        try:
            user_id = self.repository.get_user_from_temporary_code(provider_name, state)
        except Exception as e:
            if not self.repository.is_not_found(e):
                raise
            raise NotAuthorizedError("invalid oauth2 state") from e

        if not user_id:
            raise NotAuthorizedError("invalid oauth2 state")
        if not code:
            raise InvalidInputError("Empty code received")

        provider = self._email_provider(provider_name)
        token = provider.exchange_code(code)

        self.repository.delete_temporary_code(user_id, provider_name)

        account = ExternalAccount(provider_name=provider_name, token=token)
        account = account.model_copy(update={"account_id": provider.current_email_address(account)})
        account = self.repository.store_account(user_id, account)

        logger.info(f"New account {account.id} on {provider_name} for {user_id}")
        return user_id
