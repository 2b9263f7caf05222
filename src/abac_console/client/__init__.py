"""Client for the platform's ABAC REST API."""

from abac_console.client.credentials import (
    ChainCredentialProvider,
    CredentialProvider,
    EnvCredentialProvider,
    FileCredentialProvider,
    StaticCredentialProvider,
    default_credential_provider,
)
from abac_console.client.http import ABACClient

__all__ = [
    "ABACClient",
    "ChainCredentialProvider",
    "CredentialProvider",
    "EnvCredentialProvider",
    "FileCredentialProvider",
    "StaticCredentialProvider",
    "default_credential_provider",
]
