"""Application settings loaded from environment variables."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432
PER_PAGE_DEFAULT = 100
PER_PAGE_MAX = 1000
CLIENT_TIMEOUT_DEFAULT = 10.0
ID_KEY_FILE_DEFAULT = "~/.config/credcore/id.pem"


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="CRED_DB_")

    url: str = ""
    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "credcore"
    password: str = "credcore"
    database: str = "credcore"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT
    create_schema: bool = False

    @property
    def async_url(self) -> str:
        """Build async PostgreSQL connection URL, unless overridden by url."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class ServiceSettings(BaseSettings):
    """Registry service and settings-surface configuration."""

    model_config = SettingsConfigDict(env_prefix="CRED_")

    issuer_url: str = "http://localhost:8000"
    internal_token: str = ""
    session_secret: str = ""
    login_url: str = "/login"
    default_per_page: int = PER_PAGE_DEFAULT
    max_per_page: int = PER_PAGE_MAX
    log_level: str = "INFO"
    log_json: bool = True


class ClientSettings(BaseSettings):
    """Settings for the command-line registry client."""

    model_config = SettingsConfigDict(env_prefix="CRED_CLIENT_")

    endpoint: str = "http://localhost:8000"
    audience: str = ""
    token: str = ""
    id_key_file: str = ID_KEY_FILE_DEFAULT
    timeout_seconds: float = CLIENT_TIMEOUT_DEFAULT
    log_level: str = "INFO"

    def resolved_id_key_file(self) -> str:
        """Expand environment variables and ~ in the ID key path."""
        return expand_path(self.id_key_file)


def expand_path(path: str) -> str:
    """Expand $VARS and ~ in a user-supplied path."""
    return os.path.expanduser(os.path.expandvars(path))
