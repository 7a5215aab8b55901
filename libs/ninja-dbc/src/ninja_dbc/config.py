"""Database configuration — reads profiles from .ninjastack/database.json."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = ".ninjastack/database.json"


class InvalidDatabaseURL(ValueError):
    """Raised when a database URL is malformed or missing required components."""


class DatabaseConfig(BaseModel):
    """Connection pool settings for one database."""

    url: str = Field(description="SQLAlchemy database URL.")
    pool_size: int = Field(default=5, ge=1, description="Connections kept open in the pool.")
    max_overflow: int = Field(default=10, ge=0, description="Extra connections allowed under load.")
    pool_pre_ping: bool = Field(default=True, description="Test pooled connections before handing them out.")
    echo: bool = Field(default=False, description="Log every statement SQLAlchemy emits.")
    options: dict[str, Any] = Field(default_factory=dict, description="Extra keyword arguments for create_engine().")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the URL has the components its backend needs."""
        parsed = urlparse(v)
        scheme = parsed.scheme.split("+")[0]  # e.g. "postgresql+psycopg" -> "postgresql"

        if not scheme:
            raise InvalidDatabaseURL(f"Invalid database URL '{v}': missing scheme.")
        if scheme == "sqlite":
            # sqlite:// and sqlite:///:memory: are in-memory databases; sqlite:/// is not valid
            if parsed.path == "/" or (parsed.netloc and not parsed.path):
                raise InvalidDatabaseURL(
                    f"Invalid SQLite URL '{v}': missing database path. "
                    "Use 'sqlite:////absolute/path.db', 'sqlite:///relative.db', "
                    "or 'sqlite:///:memory:' for an in-memory database."
                )
        elif scheme in ("postgresql", "postgres", "mysql", "mariadb", "mssql", "oracle"):
            if not parsed.hostname:
                raise InvalidDatabaseURL(
                    f"Invalid database URL '{v}': missing hostname. "
                    f"Expected format: '{scheme}://user:pass@host:port/dbname'"
                )
            if not parsed.path or parsed.path == "/":
                raise InvalidDatabaseURL(
                    f"Invalid database URL '{v}': missing database name. "
                    f"Expected format: '{scheme}://user:pass@host:port/dbname'"
                )
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @classmethod
    def load_profiles(cls, path: str | Path = DEFAULT_CONFIG_PATH) -> dict[str, DatabaseConfig]:
        """Load every named profile from a JSON file; a missing file yields none."""
        filepath = Path(path)
        if not filepath.exists():
            return {}
        raw = json.loads(filepath.read_text())
        return {name: cls(**cfg) for name, cfg in raw.items()}

    @classmethod
    def from_file(cls, path: str | Path = DEFAULT_CONFIG_PATH, profile: str = "default") -> DatabaseConfig:
        """Load one named profile from a JSON file."""
        profiles = cls.load_profiles(path)
        if profile not in profiles:
            raise KeyError(f"Database profile '{profile}' not found in {path}. Available: {list(profiles.keys())}")
        return profiles[profile]
