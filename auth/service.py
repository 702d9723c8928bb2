"""
Authentication Service.

============================================================
PURPOSE
============================================================
Verifies a user id and password and returns the caller's Identity.

- User ids are NRIC-like: S or T, seven digits, one letter
- Every account starts with the configured default password
- Passwords are stored as salted PBKDF2-SHA256 hashes
- The role is derived from the record tables:
  manager > officer > applicant

Authentication never raises for bad input; it answers None
(or False for a password change) and logs the refusal.

============================================================
"""

import hashlib
import hmac
import logging
import re
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from allocation_engine.config import AuthConfig
from allocation_engine.tables import Tables
from allocation_engine.types import Identity


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """A stored password hash."""

    user_id: str
    salt: str
    """Hex-encoded random salt."""

    password_hash: str
    """Hex-encoded PBKDF2 digest."""

    iterations: int


# ============================================================
# CREDENTIAL STORES
# ============================================================

class CredentialStore(ABC):
    """Where password hashes live."""

    @abstractmethod
    def get_credential(self, user_id: str) -> Optional[Credential]:
        pass

    @abstractmethod
    def save_credential(self, credential: Credential) -> None:
        pass


class InMemoryCredentialStore(CredentialStore):

    def __init__(self) -> None:
        self.credentials: Dict[str, Credential] = {}

    def get_credential(self, user_id: str) -> Optional[Credential]:
        return self.credentials.get(user_id)

    def save_credential(self, credential: Credential) -> None:
        self.credentials[credential.user_id] = credential


# ============================================================
# HASHING
# ============================================================

def hash_password(user_id: str, password: str, iterations: int) -> Credential:
    salt = secrets.token_hex(16)
    return Credential(
        user_id=user_id,
        salt=salt,
        password_hash=_digest(password, salt, iterations),
        iterations=iterations,
    )


def verify_password(credential: Credential, password: str) -> bool:
    candidate = _digest(password, credential.salt, credential.iterations)
    return hmac.compare_digest(candidate, credential.password_hash)


def _digest(password: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt),
        iterations,
    ).hex()


# ============================================================
# SERVICE
# ============================================================

class AuthenticationService:
    """Login and password changes."""

    def __init__(
        self,
        tables: Tables,
        store: Optional[CredentialStore] = None,
        config: Optional[AuthConfig] = None,
    ):
        self._tables = tables
        self._store = store or InMemoryCredentialStore()
        self._config = config or AuthConfig()
        self._nric = re.compile(self._config.nric_pattern)

    def is_valid_nric(self, user_id: str) -> bool:
        return bool(user_id) and self._nric.match(user_id) is not None

    def authenticate(self, user_id: str, password: str) -> Optional[Identity]:
        """Return the identity for valid credentials, else None."""
        user_id = (user_id or "").strip().upper()
        if not self.is_valid_nric(user_id):
            logger.warning(f"Login refused: malformed user id {user_id!r}")
            return None

        identity = self.identity_for(user_id)
        if identity is None:
            logger.warning(f"Login refused: unknown user {user_id}")
            return None

        if not self._check(user_id, password or ""):
            logger.warning(f"Login refused: wrong password for {user_id}")
            return None

        logger.info(f"{user_id} logged in as {identity.role.value}")
        return identity

    def change_password(self, user_id: str, old_password: str, new_password: str) -> bool:
        if self.authenticate(user_id, old_password) is None:
            return False
        if not new_password or not new_password.strip():
            logger.warning(f"Password change refused for {user_id}: empty password")
            return False

        user_id = user_id.strip().upper()
        self._store.save_credential(
            hash_password(user_id, new_password, self._config.hash_iterations)
        )
        logger.info(f"Password changed for {user_id}")
        return True

    def identity_for(self, user_id: str) -> Optional[Identity]:
        """Role-tagged identity of a known user."""
        manager = self._tables.managers.get(user_id)
        if manager is not None:
            return Identity.for_manager(manager)

        applicant = self._tables.applicants.get(user_id)
        if applicant is None:
            return None
        if self._tables.is_officer(user_id):
            return Identity.for_officer(applicant)
        return Identity.for_applicant(applicant)

    def seed_default_passwords(self, user_ids: Optional[Iterable[str]] = None) -> int:
        """
        Give every user without a credential the default password.

        Returns:
            Number of credentials created
        """
        if user_ids is None:
            user_ids = list(self._tables.managers) + list(self._tables.applicants)

        created = 0
        for user_id in user_ids:
            if self._store.get_credential(user_id) is None:
                self._store.save_credential(
                    hash_password(user_id, self._config.default_password, self._config.hash_iterations)
                )
                created += 1

        logger.info(f"Seeded {created} default passwords")
        return created

    def _check(self, user_id: str, password: str) -> bool:
        credential = self._store.get_credential(user_id)
        if credential is None:
            return hmac.compare_digest(
                password.encode("utf-8"),
                self._config.default_password.encode("utf-8"),
            )
        return verify_password(credential, password)
