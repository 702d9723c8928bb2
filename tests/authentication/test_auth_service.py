"""
Tests for the Authentication Service.

============================================================
PURPOSE
============================================================
1. NRIC format checks
2. Default password for new accounts
3. Password changes
4. Role derivation (manager > officer > applicant)

============================================================
"""

import pytest

from allocation_engine.config import AuthConfig
from allocation_engine.tables import Tables
from allocation_engine.types import Applicant, Manager, MaritalStatus, Role
from auth.service import (
    AuthenticationService,
    InMemoryCredentialStore,
    hash_password,
    verify_password,
)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def tables():
    tables = Tables()
    tables.load(
        applicants=[
            Applicant("S1234567A", "John", 35, MaritalStatus.SINGLE),
            Applicant("T2109876H", "Daniel", 36, MaritalStatus.SINGLE),
        ],
        managers=[Manager("S5678901G", "Michael")],
        officer_ids=["T2109876H"],
    )
    return tables


@pytest.fixture
def credentials():
    return InMemoryCredentialStore()


@pytest.fixture
def auth(tables, credentials):
    return AuthenticationService(tables, credentials, AuthConfig(hash_iterations=1_000))


# ============================================================
# HASHING
# ============================================================

class TestHashing:

    def test_hash_and_verify(self):
        credential = hash_password("S1234567A", "secret", 1_000)

        assert credential.password_hash != "secret"
        assert verify_password(credential, "secret")
        assert not verify_password(credential, "Secret")

    def test_salts_differ(self):
        first = hash_password("S1234567A", "secret", 1_000)
        second = hash_password("S1234567A", "secret", 1_000)
        assert first.salt != second.salt
        assert first.password_hash != second.password_hash


# ============================================================
# LOGIN
# ============================================================

class TestAuthenticate:

    @pytest.mark.parametrize("user_id,valid", [
        ("S1234567A", True),
        ("T7654321B", True),
        ("A1234567B", False),
        ("S123456A", False),
        ("S12345678", False),
        ("", False),
    ])
    def test_nric_format(self, auth, user_id, valid):
        assert auth.is_valid_nric(user_id) is valid

    def test_default_password(self, auth):
        identity = auth.authenticate("S1234567A", "password")

        assert identity.role == Role.APPLICANT
        assert identity.name == "John"

    def test_user_id_normalized(self, auth):
        assert auth.authenticate("  s1234567a ", "password").user_id == "S1234567A"

    def test_wrong_password(self, auth):
        assert auth.authenticate("S1234567A", "wrong") is None

    def test_non_ascii_password(self, auth):
        assert auth.authenticate("S1234567A", "pässword") is None

    def test_unknown_user(self, auth):
        assert auth.authenticate("S0000000Z", "password") is None

    def test_malformed_user_id(self, auth, caplog):
        assert auth.authenticate("admin", "password") is None
        assert "malformed" in caplog.text

    def test_roles(self, auth):
        assert auth.authenticate("S5678901G", "password").role == Role.MANAGER

        officer = auth.authenticate("T2109876H", "password")
        assert officer.role == Role.OFFICER
        assert officer.applicant.age == 36

    def test_configured_default_password(self, tables):
        auth = AuthenticationService(tables, config=AuthConfig(default_password="welcome"))
        assert auth.authenticate("S1234567A", "password") is None
        assert auth.authenticate("S1234567A", "welcome") is not None


# ============================================================
# PASSWORD MANAGEMENT
# ============================================================

class TestChangePassword:

    def test_change(self, auth, credentials):
        assert auth.change_password("S1234567A", "password", "n3w-secret")

        assert "S1234567A" in credentials.credentials
        assert auth.authenticate("S1234567A", "password") is None
        assert auth.authenticate("S1234567A", "n3w-secret") is not None

    def test_wrong_old_password(self, auth, credentials):
        assert not auth.change_password("S1234567A", "wrong", "n3w-secret")
        assert credentials.credentials == {}

    def test_blank_new_password(self, auth):
        assert not auth.change_password("S1234567A", "password", "   ")
        assert auth.authenticate("S1234567A", "password") is not None

    def test_seed_default_passwords(self, auth, credentials):
        assert auth.seed_default_passwords() == 3
        assert auth.seed_default_passwords() == 0

        assert auth.authenticate("S5678901G", "password") is not None
        assert set(credentials.credentials) == {"S1234567A", "T2109876H", "S5678901G"}
