"""
Datastore repository unit tests

The Datastore client is mocked; only users are supported by this backend.
"""

import pytest
from unittest.mock import MagicMock

from dashboard.exceptions import BackendCapabilityError, StorageError, TransactionMisuseError
from dashboard.repository.datastore import DatastoreRepository
from dashboard.schemas import Tab, User


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.key.side_effect = lambda kind, name: (kind, name)
    return client


@pytest.fixture
def datastore_repository(mock_client):
    return DatastoreRepository(mock_client)


class TestDatastoreUsers:
    """Test user storage on Datastore"""

    def test_get_user(self, datastore_repository, mock_client):
        mock_client.get.return_value = {"display_name": "Alice", "email": "a@example.com", "is_admin": True}

        user = datastore_repository.get_user("alice")

        assert user == User(user_id="alice", display_name="Alice", email="a@example.com", is_admin=True)
        mock_client.get.assert_called_once_with(("User", "alice"), transaction=None)

    def test_missing_user_is_not_found(self, datastore_repository, mock_client):
        """A missing entity is reported as a wrapped not-found error"""
        mock_client.get.return_value = None

        with pytest.raises(StorageError) as exc_info:
            datastore_repository.get_user("nobody")

        assert datastore_repository.is_not_found(exc_info.value)

    def test_store_user(self, datastore_repository, mock_client):
        datastore_repository.store_user(User(user_id="alice", display_name="Alice"))

        entity = mock_client.put.call_args[0][0]
        assert entity.key == ("User", "alice")
        assert entity["display_name"] == "Alice"
        assert entity["is_admin"] is False


class TestDatastoreTransactions:
    """Test transaction scoping on Datastore"""

    def test_writes_go_through_transaction(self, datastore_repository, mock_client):
        transaction = mock_client.transaction.return_value.__enter__.return_value

        datastore_repository.run_in_transaction(lambda repo: repo.store_user(User(user_id="alice")))

        transaction.put.assert_called_once()
        mock_client.put.assert_not_called()

    def test_nested_transaction_is_rejected(self, datastore_repository):
        with pytest.raises(TransactionMisuseError):
            datastore_repository.run_in_transaction(lambda repo: repo.run_in_transaction(lambda inner: None))


class TestDatastoreCapabilities:
    """Test operations the backend does not implement"""

    @pytest.mark.parametrize("operation, args", [
        ("get_tabs", ("alice",)),
        ("get_tab", (1,)),
        ("store_tab", (Tab(),)),
        ("update_tab_layout", (1, [[1]])),
        ("get_or_create_feed_id", ("http://example.com/rss",)),
        ("set_items_read", ("alice", 1, ["a"], True)),
        ("get_accounts", ("alice",)),
    ])
    def test_capability_error(self, datastore_repository, mock_client, operation, args):
        """Unsupported operations name themselves and touch nothing"""
        with pytest.raises(BackendCapabilityError) as exc_info:
            getattr(datastore_repository, operation)(*args)

        assert exc_info.value.operation == operation
        assert isinstance(exc_info.value, StorageError)
        assert not datastore_repository.is_not_found(exc_info.value)
        mock_client.put.assert_not_called()
