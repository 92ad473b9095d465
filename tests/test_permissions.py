"""Tests for permission management."""

from unittest.mock import Mock

import pytest

from pygdrive.models import AccountType, Role
from pygdrive.permissions import PermissionManager, public_url


@pytest.fixture
def mock_client():
    return Mock()


@pytest.fixture
def manager(mock_client):
    return PermissionManager(mock_client)


class TestPermissionManager:
    """Tests for PermissionManager."""

    def test_list_permissions(self, manager, mock_client):
        mock_client.list_permissions.return_value = {
            "items": [
                {"id": "anyone", "role": "reader", "type": "anyone"},
                {"id": "123", "role": "writer", "type": "user", "value": "a@b.c"},
            ]
        }
        perms = manager.list_permissions("f1")
        assert [p.id for p in perms] == ["anyone", "123"]
        assert perms[1].value == "a@b.c"

    def test_insert_for_user(self, manager, mock_client):
        """Role, type and value are sent; the message goes along if given."""
        mock_client.insert_permission.return_value = {
            "id": "123",
            "role": "writer",
            "type": "user",
        }
        result = manager.insert(
            "f1", Role.WRITER, AccountType.USER, value="a@b.c", email_message="hi"
        )
        mock_client.insert_permission.assert_called_once_with(
            "f1",
            {"role": "writer", "type": "user", "value": "a@b.c"},
            email_message="hi",
        )
        assert result.id == "123"

    def test_insert_without_value(self, manager, mock_client):
        mock_client.insert_permission.return_value = {}
        manager.insert("f1", Role.READER, AccountType.ANYONE)
        mock_client.insert_permission.assert_called_once_with(
            "f1", {"role": "reader", "type": "anyone"}, email_message=None
        )

    def test_delete_by_account_type(self, manager, mock_client):
        manager.delete("f1", AccountType.ANYONE)
        mock_client.delete_permission.assert_called_once_with("f1", "anyone")

    def test_delete_by_permission_id(self, manager, mock_client):
        manager.delete("f1", "123")
        mock_client.delete_permission.assert_called_once_with("f1", "123")

    def test_id_for_email(self, manager, mock_client):
        mock_client.get_id_for_email.return_value = {"id": "0987"}
        assert manager.id_for_email("a@b.c") == "0987"

    def test_publish(self, manager, mock_client):
        """Publishing grants anyone read access and gives the host URL."""
        mock_client.insert_permission.return_value = {}
        url = manager.publish("f1")
        assert url == "https://googledrive.com/host/f1"
        assert url == public_url("f1")
        permission = mock_client.insert_permission.call_args.args[1]
        assert permission == {"role": "reader", "type": "anyone"}

    def test_unpublish(self, manager, mock_client):
        manager.unpublish("f1")
        mock_client.delete_permission.assert_called_once_with("f1", "anyone")
