# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# STATUS: Infrastructure - External resource access
# PURPOSE: Backing store pool construction and connection secret retrieval
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure Module

Wrappers around the external collaborators of the health engine:
- postgresql: connection pool build / probe / teardown
- secrets: connection string retrieval from Azure Key Vault
"""

from infrastructure.postgresql import (
    mask_conninfo,
    open_pool,
    probe_pool,
    close_pool_quietly,
)
from infrastructure.secrets import (
    SecretRetrievalError,
    MissingSecretIdentifierError,
    EmptySecretError,
    MalformedSecretError,
    ConnectionStringNotFoundError,
    parse_connection_secret,
    KeyVaultSecretProvider,
)

__all__ = [
    # PostgreSQL
    "mask_conninfo",
    "open_pool",
    "probe_pool",
    "close_pool_quietly",
    # Secrets
    "SecretRetrievalError",
    "MissingSecretIdentifierError",
    "EmptySecretError",
    "MalformedSecretError",
    "ConnectionStringNotFoundError",
    "parse_connection_secret",
    "KeyVaultSecretProvider",
]
