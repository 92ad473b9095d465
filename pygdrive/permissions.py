"""Sharing grants on objects."""

import logging
from typing import Union

from .api import DriveClient
from .models import AccountType, Permission, Role

logger = logging.getLogger(__name__)

# Public objects are served under this prefix followed by their identifier
DRIVE_RESOURCE_HOST_URL = "https://googledrive.com/host/"


def public_url(file_id: str) -> str:
    """Get the public URL of a published object."""
    return DRIVE_RESOURCE_HOST_URL + file_id


class PermissionManager:
    """Lists, grants and revokes permissions; publishes objects."""

    def __init__(self, client: DriveClient):
        self.client = client

    def list_permissions(self, file_id: str) -> list[Permission]:
        """List the permissions currently granted on an object."""
        result = self.client.list_permissions(file_id)
        return [Permission.from_api_response(p) for p in result.get("items") or []]

    def insert(
        self,
        file_id: str,
        role: Role,
        account_type: AccountType,
        value: str = "",
        email_message: str = "",
    ) -> Permission:
        """Grant a role to a principal.

        Args:
            file_id: Identifier of the object
            role: Role to grant
            account_type: Kind of principal
            value: Email address or domain ("" for anyone)
            email_message: Optional notification message

        Returns:
            The created permission
        """
        permission = {"role": Role(role).value, "type": AccountType(account_type).value}
        if value:
            permission["value"] = value
        logger.debug(f"Granting {permission} on {file_id}")
        result = self.client.insert_permission(
            file_id, permission, email_message=email_message or None
        )
        return Permission.from_api_response(result)

    def delete(self, file_id: str, principal: Union[AccountType, str]) -> None:
        """Revoke a permission.

        Args:
            file_id: Identifier of the object
            principal: An AccountType (its value is the permission id of the
                broad principals, e.g. "anyone") or a permission id obtained
                from id_for_email or list
        """
        permission_id = (
            principal.value if isinstance(principal, AccountType) else principal
        )
        logger.debug(f"Revoking permission {permission_id} on {file_id}")
        self.client.delete_permission(file_id, permission_id)

    def id_for_email(self, email: str) -> str:
        """Look up the permission identifier of an email address."""
        result = self.client.get_id_for_email(email)
        return result.get("id", "")

    def publish(self, file_id: str) -> str:
        """Grant "anyone" reader access and return the public URL."""
        self.insert(file_id, Role.READER, AccountType.ANYONE)
        return public_url(file_id)

    def unpublish(self, file_id: str) -> None:
        """Remove the "anyone" grant."""
        self.delete(file_id, AccountType.ANYONE)
