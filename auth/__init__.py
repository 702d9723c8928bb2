"""
Authentication Package.

Verifies credentials and returns a role-tagged Identity.
"""

from .service import (
    AuthenticationService,
    Credential,
    CredentialStore,
    InMemoryCredentialStore,
    hash_password,
    verify_password,
)

__all__ = [
    "AuthenticationService",
    "Credential",
    "CredentialStore",
    "InMemoryCredentialStore",
    "hash_password",
    "verify_password",
]
