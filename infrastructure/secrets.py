# ============================================================================
# DATABASE SECRET RETRIEVAL
# ============================================================================
# STATUS: Infrastructure - Key Vault secret access
# PURPOSE: Fetch the backing store connection string from Azure Key Vault
# CREATED: 19 OCT 2026
# ============================================================================
"""
Database Secret Retrieval

Fetches the backing store connection string from an Azure Key Vault secret.

Secret Format:
-------------
The secret value is a JSON object. The connection string is taken from
the first present field of:
    connectionString, url, dbUrl

Authentication:
--------------
1. User-assigned managed identity (AZURE_CLIENT_ID set)
2. DefaultAzureCredential (system MI, workload identity or az login)

Errors:
------
Every failure raises a subclass of SecretRetrievalError so callers can
tell a missing identifier from an empty or malformed secret.

Usage:
------
```python
from infrastructure.secrets import KeyVaultSecretProvider

provider = KeyVaultSecretProvider(
    "https://myvault.vault.azure.net/secrets/orders-db"
)
conn_str = await provider.get_connection_string()
```
"""

import json
from typing import Any, Optional, Tuple

from core.logging import ComponentType, get_logger

logger = get_logger(__name__, component=ComponentType.SECRETS)

# Fields searched, in order, for the connection string
CONNECTION_STRING_FIELDS: Tuple[str, ...] = ("connectionString", "url", "dbUrl")


# ============================================================================
# ERRORS
# ============================================================================

class SecretRetrievalError(Exception):
    """Base error for connection secret retrieval."""


class MissingSecretIdentifierError(SecretRetrievalError):
    """No secret identifier configured."""


class EmptySecretError(SecretRetrievalError):
    """Secret exists but has no value."""


class MalformedSecretError(SecretRetrievalError):
    """Secret value is not a JSON object."""


class ConnectionStringNotFoundError(SecretRetrievalError):
    """Secret JSON has none of the recognized connection string fields."""


# ============================================================================
# PARSING
# ============================================================================

def parse_connection_secret(secret_value: Optional[str]) -> str:
    """
    Extract the connection string from a secret payload.

    Args:
        secret_value: Raw secret value

    Returns:
        Connection string

    Raises:
        EmptySecretError: Value is None or blank
        MalformedSecretError: Value is not a JSON object
        ConnectionStringNotFoundError: No recognized field present
    """
    if secret_value is None or not secret_value.strip():
        raise EmptySecretError("Secret value is empty")

    try:
        payload: Any = json.loads(secret_value)
    except json.JSONDecodeError as e:
        raise MalformedSecretError(f"Secret value is not valid JSON: {e.msg}") from e

    if not isinstance(payload, dict):
        raise MalformedSecretError(
            f"Secret value must be a JSON object, got {type(payload).__name__}"
        )

    for field_name in CONNECTION_STRING_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, str) and value:
            return value

    raise ConnectionStringNotFoundError(
        f"No connection string found in secret "
        f"(expected one of: {', '.join(CONNECTION_STRING_FIELDS)})"
    )


# ============================================================================
# KEY VAULT PROVIDER
# ============================================================================

class KeyVaultSecretProvider:
    """
    Fetches the connection string from an Azure Key Vault secret.

    The credential is created lazily and reused across fetches; the
    SDK caches its access token.
    """

    def __init__(
        self,
        secret_id: Optional[str],
        managed_identity_client_id: Optional[str] = None,
    ):
        """
        Initialize provider.

        Args:
            secret_id: Key Vault secret URI
                (https://<vault>.vault.azure.net/secrets/<name>[/<version>])
            managed_identity_client_id: Optional user-assigned MI client ID
        """
        self.secret_id = secret_id
        self.managed_identity_client_id = managed_identity_client_id
        self._credential = None

    def _get_credential(self):
        """Get or create the async Azure credential."""
        if self._credential is None:
            from azure.identity.aio import DefaultAzureCredential, ManagedIdentityCredential

            if self.managed_identity_client_id:
                logger.info(
                    f"Using user-assigned Managed Identity: "
                    f"{self.managed_identity_client_id[:8]}..."
                )
                self._credential = ManagedIdentityCredential(
                    client_id=self.managed_identity_client_id
                )
            else:
                logger.info("Using DefaultAzureCredential (system MI or az login)")
                self._credential = DefaultAzureCredential()
        return self._credential

    async def get_connection_string(self) -> str:
        """
        Fetch and parse the connection secret.

        Returns:
            Connection string

        Raises:
            SecretRetrievalError: On any failure (see subclasses)
        """
        if not self.secret_id:
            raise MissingSecretIdentifierError(
                "DB_SECRET_ID environment variable is required"
            )

        from azure.core.exceptions import AzureError
        from azure.keyvault.secrets import KeyVaultSecretIdentifier
        from azure.keyvault.secrets.aio import SecretClient

        try:
            identifier = KeyVaultSecretIdentifier(self.secret_id)
        except ValueError as e:
            raise SecretRetrievalError(
                f"Invalid Key Vault secret identifier: {self.secret_id}"
            ) from e

        logger.info(
            f"Fetching database credentials from Key Vault "
            f"(vault={identifier.vault_url}, secret={identifier.name})"
        )

        try:
            async with SecretClient(
                vault_url=identifier.vault_url,
                credential=self._get_credential(),
            ) as client:
                secret = await client.get_secret(identifier.name, identifier.version)
        except AzureError as e:
            raise SecretRetrievalError(
                f"Failed to fetch secret {identifier.name}: {type(e).__name__}: {e}"
            ) from e

        connection_string = parse_connection_secret(secret.value)
        logger.info("Successfully fetched database credentials")
        return connection_string

    async def close(self) -> None:
        """Close the credential's transport."""
        if self._credential is not None:
            await self._credential.close()
            self._credential = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "SecretRetrievalError",
    "MissingSecretIdentifierError",
    "EmptySecretError",
    "MalformedSecretError",
    "ConnectionStringNotFoundError",
    "CONNECTION_STRING_FIELDS",
    "parse_connection_secret",
    "KeyVaultSecretProvider",
]
