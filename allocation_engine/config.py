"""
Allocation Engine - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the Allocation Engine.

Values come from dataclass defaults, optionally overridden by
environment variables (a local .env file is honoured).

ENVIRONMENT:
- HOUSING_DATABASE_URL       SQLAlchemy URL for persistence
- HOUSING_DATABASE_ECHO      Log SQL statements (true/false)
- HOUSING_MARRIED_MIN_AGE    Minimum age for married applicants
- HOUSING_SINGLE_MIN_AGE     Minimum age for single applicants
- HOUSING_DEFAULT_PASSWORD   Password given to seeded accounts
- HOUSING_LOG_LEVEL          Root log level for the CLI

============================================================
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from core.exceptions import InvalidConfigError


# ============================================================
# ELIGIBILITY CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class EligibilityConfig:
    """Age thresholds for the BTO scheme."""

    married_min_age: int = 21
    """Married applicants qualify for any flat type from this age."""

    single_min_age: int = 35
    """Single applicants qualify for the smallest flat type from this age."""

    def __post_init__(self) -> None:
        if self.married_min_age < 0:
            raise InvalidConfigError("married_min_age", self.married_min_age, "must be >= 0")
        if self.single_min_age < 0:
            raise InvalidConfigError("single_min_age", self.single_min_age, "must be >= 0")


# ============================================================
# PERSISTENCE CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class PersistenceConfig:
    """Where and how records are persisted."""

    database_url: str = "sqlite:///bto_housing.db"
    """SQLAlchemy database URL."""

    echo: bool = False
    """Whether to log SQL statements."""

    write_through: bool = True
    """Save affected records after every successful mutation."""


# ============================================================
# AUTHENTICATION CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class AuthConfig:
    """Credential settings."""

    default_password: str = "password"
    """Initial password of every seeded account."""

    nric_pattern: str = r"^[ST]\d{7}[A-Z]$"
    """Accepted user id format."""

    hash_iterations: int = 100_000
    """PBKDF2 iterations for stored password hashes."""


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class EngineConfig:
    """Master configuration for the Allocation Engine."""

    eligibility: EligibilityConfig = field(default_factory=EligibilityConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)

    log_level: str = "INFO"
    """Root log level used by the CLI."""

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create configuration from environment variables."""
        load_dotenv()
        return cls(
            eligibility=EligibilityConfig(
                married_min_age=_int_env("HOUSING_MARRIED_MIN_AGE", 21),
                single_min_age=_int_env("HOUSING_SINGLE_MIN_AGE", 35),
            ),
            persistence=PersistenceConfig(
                database_url=os.getenv("HOUSING_DATABASE_URL", "sqlite:///bto_housing.db"),
                echo=os.getenv("HOUSING_DATABASE_ECHO", "false").lower() == "true",
            ),
            auth=AuthConfig(
                default_password=os.getenv("HOUSING_DEFAULT_PASSWORD", "password"),
            ),
            log_level=os.getenv("HOUSING_LOG_LEVEL", "INFO").upper(),
        )

    @classmethod
    def for_testing(cls) -> "EngineConfig":
        """In-memory database, cheap password hashing."""
        return cls(
            persistence=PersistenceConfig(database_url="sqlite:///:memory:"),
            auth=AuthConfig(hash_iterations=1_000),
            log_level="DEBUG",
        )


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfigError(key, raw, "must be an integer")
