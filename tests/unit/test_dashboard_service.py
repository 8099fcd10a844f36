"""
DashboardService unit tests

Runs the use cases against the locked in-memory SQLite repository with a
mocked feed fetcher and an in-memory email provider.
"""

import pytest

from dashboard.exceptions import (
    InvalidInputError,
    NotAuthorizedError,
    NotFoundError,
    StorageError,
    WidgetNotInTabError,
)
from dashboard.schemas import (
    EmailConfig,
    ExternalAccount,
    FeedConfig,
    ParsedFeed,
    RawConfig,
    Snapshot,
    TabSummary,
    User,
    Widget,
    WidgetConfig,
)
from dashboard.utils.layout import layout_ids

FEED_URL = "http://example.com/rss"


def feed_widget(url: str = FEED_URL, **common) -> Widget:
    return Widget(type="feed", config=FeedConfig(common=WidgetConfig(**common), url=url))


def link_account(service, caller) -> ExternalAccount:
    url = service.service_register(caller, "fake")
    state = url.split("state=")[1]
    service.handle_oauth2_callback("fake", state, "code-1")
    return service.associated_accounts(caller, caller.user_id)[-1]


class TestTabScenario:
    """Test the tab and widget lifecycle end to end"""

    def test_create_tab_add_widget_rearrange_delete(self, dashboard_service, repository, alice, mock_store):
        """Create a tab, add a feed widget, move it and remove it"""
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))
        assert tab.id == 1
        assert tab.title == "News"
        assert tab.widgets == [[], [], [], []]

        widget = dashboard_service.new_widget(alice, tab.id, feed_widget())
        assert widget.id == 1
        assert widget.type == "feed"
        assert widget.config.feed_id == 1
        assert widget.config.common.title == "Example Feed"
        assert widget.config.common.display_count == 5
        assert layout_ids(dashboard_service.tab(alice, tab.id)) == [[1], [], [], []]
        mock_store.dispatch.assert_called_once()

        assert dashboard_service.update_layout(alice, tab.id, [[1], [], [], []]) == [[1], [], [], []]

        with pytest.raises(InvalidInputError):
            dashboard_service.update_layout(alice, tab.id, [[99]])
        assert layout_ids(dashboard_service.tab(alice, tab.id)) == [[1], [], [], []]

        assert dashboard_service.delete_widget(alice, tab.id, widget.id) is True
        assert layout_ids(dashboard_service.tab(alice, tab.id)) == [[], [], [], []]
        with pytest.raises(StorageError) as exc_info:
            repository.get_widget(tab.id, widget.id)
        assert repository.is_not_found(exc_info.value)

    def test_same_url_shares_feed(self, dashboard_service, alice, bob):
        """Widgets of different users on one URL point to one feed"""
        first = dashboard_service.new_tab(alice, TabSummary(title="A"))
        second = dashboard_service.new_tab(bob, TabSummary(title="B"))

        w1 = dashboard_service.new_widget(alice, first.id, feed_widget(title="Mine"))
        w2 = dashboard_service.new_widget(bob, second.id, feed_widget(display_count=3))

        assert w1.config.feed_id == w2.config.feed_id
        assert w1.config.common.title == "Mine"
        assert w2.config.common.display_count == 3

    def test_edit_widget(self, dashboard_service, alice):
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))
        widget = dashboard_service.new_widget(alice, tab.id, feed_widget())

        edited = dashboard_service.edit_widget(alice, tab.id, widget.id, WidgetConfig(title="Renamed", display_count=9))

        assert edited.config.common.title == "Renamed"
        assert edited.config.common.display_count == 9
        assert edited.config.url == FEED_URL
        assert dashboard_service.widget(alice, tab.id, widget.id).config.common.title == "Renamed"

    def test_widget_not_in_tab(self, dashboard_service, alice):
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))

        with pytest.raises(WidgetNotInTabError):
            dashboard_service.widget(alice, tab.id, 42)

    def test_unknown_widget_type_rejected(self, dashboard_service, alice):
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))

        with pytest.raises(InvalidInputError):
            dashboard_service.new_widget(alice, tab.id, Widget(type="clock", config=RawConfig(data={"tz": "UTC"})))

    def test_feed_widget_needs_url(self, dashboard_service, alice):
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))

        with pytest.raises(InvalidInputError):
            dashboard_service.new_widget(alice, tab.id, feed_widget(url=""))

    def test_edit_and_delete_tab(self, dashboard_service, alice):
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))

        edited = dashboard_service.edit_tab(alice, tab.id, TabSummary(id=999, title="World"))
        assert edited.id == tab.id
        assert edited.title == "World"

        assert dashboard_service.delete_tab(alice, tab.id) is True
        assert dashboard_service.user(alice, "alice").tabs == []


class TestAuthorization:
    """Test that callers only reach their own data"""

    def test_other_user_cannot_touch_tab(self, dashboard_service, alice, bob):
        """A denied caller changes nothing"""
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))

        with pytest.raises(NotAuthorizedError):
            dashboard_service.tab(bob, tab.id)
        with pytest.raises(NotAuthorizedError):
            dashboard_service.edit_tab(bob, tab.id, TabSummary(title="Hacked"))
        with pytest.raises(NotAuthorizedError):
            dashboard_service.new_widget(bob, tab.id, feed_widget())
        with pytest.raises(NotAuthorizedError):
            dashboard_service.delete_tab(bob, tab.id)

        stored = dashboard_service.tab(alice, tab.id)
        assert stored.title == "News"
        assert layout_ids(stored) == [[], [], [], []]

    def test_other_user_cannot_act_for_user(self, dashboard_service, alice, bob):
        dashboard_service.user(alice, "alice")

        with pytest.raises(NotAuthorizedError):
            dashboard_service.user(bob, "alice")
        with pytest.raises(NotAuthorizedError):
            dashboard_service.mark_as_read(bob, "alice", 1, ["a"])
        with pytest.raises(NotAuthorizedError):
            dashboard_service.associated_accounts(bob, "alice")

    def test_admin_can_access_everything(self, dashboard_service, alice, admin):
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))
        dashboard_service.user(alice, "alice")

        assert dashboard_service.tab(admin, tab.id).title == "News"
        assert [t.id for t in dashboard_service.user(admin, "alice").tabs] == [tab.id]

    def test_admin_does_not_create_other_users(self, dashboard_service, admin):
        """Only the user's own first visit creates the user"""
        with pytest.raises(StorageError):
            dashboard_service.user(admin, "ghost")


class TestUsers:
    """Test user creation, backup and restore"""

    def test_first_visit_creates_user(self, dashboard_service, repository, alice):
        data = dashboard_service.user(alice, "alice")

        assert data.user == User(user_id="alice", display_name="Alice", email="alice@example.com")
        assert data.tabs == []
        assert repository.get_user("alice").display_name == "Alice"

    def test_backup_and_restore(self, dashboard_service, alice):
        dashboard_service.user(alice, "alice")
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))
        dashboard_service.new_widget(alice, tab.id, feed_widget(title="Example"))

        snapshot = dashboard_service.backup_user(alice, "alice")
        assert [t.title for t in snapshot.tabs] == ["News"]
        assert [f.url for f in snapshot.feeds] == [FEED_URL]

        with pytest.raises(InvalidInputError):
            dashboard_service.restore_user(alice, "alice", snapshot)

        dashboard_service.delete_tab(alice, tab.id)
        dashboard_service.restore_user(alice, "alice", snapshot)

        tabs = dashboard_service.user(alice, "alice").tabs
        assert [t.title for t in tabs] == ["News"]
        restored = dashboard_service.tab(alice, tabs[0].id)
        widget = restored.widgets[0][0]
        assert widget.config.common.title == "Example"
        assert widget.config.feed_id == snapshot.feeds[0].id

    def test_restore_for_other_user_rejected(self, dashboard_service, alice):
        snapshot = Snapshot(user=User(user_id="bob"))

        with pytest.raises(InvalidInputError):
            dashboard_service.restore_user(alice, "alice", snapshot)

    def test_restore_needs_linked_accounts(self, dashboard_service, alice):
        """Nothing is restored when an account is missing"""
        snapshot = Snapshot(
            user=User(user_id="alice"),
            accounts=[ExternalAccount(id=9, provider_name="fake", account_id="someone@example.com")]
        )

        with pytest.raises(InvalidInputError):
            dashboard_service.restore_user(alice, "alice", snapshot)
        assert dashboard_service.user(alice, "alice").tabs == []


class TestFeeds:
    """Test feed items and read flags"""

    def test_feed_items_with_read_flags(self, dashboard_service, alice):
        tab = dashboard_service.new_tab(alice, TabSummary(title="News"))
        widget = dashboard_service.new_widget(alice, tab.id, feed_widget())
        feed_id = widget.config.feed_id

        dashboard_service.mark_as_read(alice, "alice", feed_id, ["item-2"])
        items = dashboard_service.feed_items(alice, "alice", feed_id)

        assert [i.item.guid for i in items] == ["item-3", "item-2", "item-1"]
        assert [i.read for i in items] == [False, True, False]

    def test_empty_feed_is_not_found(self, dashboard_service, repository, alice, mock_fetcher):
        mock_fetcher.fetch.return_value = ParsedFeed(title="Empty")
        feed_id = repository.get_or_create_feed_id(FEED_URL)

        with pytest.raises(NotFoundError):
            dashboard_service.feed_items(alice, "alice", feed_id)

    def test_preview(self, dashboard_service, alice, mock_fetcher):
        result = dashboard_service.preview(alice, FEED_URL)

        assert result.title == "Example Feed"
        assert len(result.items) == 3
        mock_fetcher.fetch.assert_called_once_with(FEED_URL)


class TestAccounts:
    """Test OAuth2 account linking and email widgets"""

    def test_services(self, dashboard_service):
        assert [s.name for s in dashboard_service.services()] == ["fake"]

    def test_link_account(self, dashboard_service, repository, alice, fake_provider):
        account = link_account(dashboard_service, alice)

        assert account.provider_name == "fake"
        assert account.account_id == "alice@mail.example.com"
        assert fake_provider.exchanged == ["code-1"]
        assert repository.get_account("alice", account.id).token == {"access_token": "token-code-1"}
        assert dashboard_service.associated_service_accounts(alice, "alice", "google") == []

    def test_state_used_once(self, dashboard_service, alice):
        url = dashboard_service.service_register(alice, "fake")
        state = url.split("state=")[1]

        assert dashboard_service.handle_oauth2_callback("fake", state, "code-1") == "alice"
        with pytest.raises(NotAuthorizedError):
            dashboard_service.handle_oauth2_callback("fake", state, "code-2")

    def test_unknown_state(self, dashboard_service):
        with pytest.raises(NotAuthorizedError):
            dashboard_service.handle_oauth2_callback("fake", "forged", "code")

    def test_empty_code(self, dashboard_service, alice):
        url = dashboard_service.service_register(alice, "fake")

        with pytest.raises(InvalidInputError):
            dashboard_service.handle_oauth2_callback("fake", url.split("state=")[1], "")

    def test_unknown_provider(self, dashboard_service, alice):
        with pytest.raises(InvalidInputError):
            dashboard_service.service_register(alice, "myspace")

    def test_email_widget_defaults(self, dashboard_service, alice):
        account = link_account(dashboard_service, alice)
        tab = dashboard_service.new_tab(alice, TabSummary(title="Mail"))

        widget = dashboard_service.new_widget(
            alice, tab.id, Widget(type="email", config=EmailConfig(account_id=account.id))
        )

        assert widget.config.common.title == "Fake Mail"
        assert widget.config.common.link == "https://mail.example.com"
        assert widget.config.account_id == account.id

    def test_get_emails(self, dashboard_service, alice):
        account = link_account(dashboard_service, alice)

        page = dashboard_service.get_emails(alice, "alice", account.id)

        assert [item.guid for item in page.items] == ["m1"]
        assert page.next_page_token == "page-2"

    def test_revoke_account(self, dashboard_service, alice):
        account = link_account(dashboard_service, alice)

        assert dashboard_service.revoke_account(alice, "alice", account.id) is True
        assert dashboard_service.associated_accounts(alice, "alice") == []
