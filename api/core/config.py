"""
Process settings and Postgres connection parameters.

Two connection sources are supported:
- environment variables (POSTGRES_DB / POSTGRES_USER / POSTGRES_PASSWORD,
  host `postgres`, port 5432)
- the indexer's JSON config file (INSCRIPTIONS_CONFIG_FILE), either its
  `connection_str` (libpq style "key=value key=value") or `host` + `user`,
  plus its `use_ssl` / `server_ca` / `client_cert` / `client_key` TLS keys

Anything missing or malformed raises `ConfigError` so the process dies at
startup instead of limping along with a partial DSN.
"""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_POSTGRES_HOST = "postgres"
DEFAULT_POSTGRES_PORT = 5432

SSL_MODES = frozenset({"disable", "allow", "prefer", "require", "verify-ca", "verify-full"})

# libpq keyword -> ConnectionParams field
_DSN_KEYS = {
    "host": "host",
    "port": "port",
    "dbname": "database",
    "user": "user",
    "password": "password",
    "sslmode": "sslmode",
    "connect_timeout": "connect_timeout",
    "application_name": "application_name",
}


class ConfigError(RuntimeError):
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Postgres (env source)
    postgres_db: str | None = None
    postgres_user: str | None = None
    postgres_password: SecretStr | None = None

    # Postgres (file source, wins over env when set)
    inscriptions_config_file: Path | None = None

    # Pool
    db_pool_min_size: int = Field(default=1, ge=1)
    db_pool_max_size: int = Field(default=5, ge=1)
    db_command_timeout: float = Field(default=30.0, gt=0)

    # HTTP
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: str = ""

    log_level: str = "INFO"

    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


class ConnectionParams(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    host: str = Field(..., min_length=1)
    port: int = Field(default=DEFAULT_POSTGRES_PORT, ge=1, le=65535)
    user: str = Field(..., min_length=1)
    password: SecretStr | None = None
    database: str | None = None
    sslmode: str | None = None
    connect_timeout: int | None = Field(default=None, ge=0)
    application_name: str | None = None
    # Client-certificate TLS from the config file; wins over `sslmode`.
    ssl_context: ssl.SSLContext | None = Field(default=None, exclude=True, repr=False)

    @field_validator("sslmode")
    @classmethod
    def _check_sslmode(cls, value: str | None) -> str | None:
        if value is not None and value not in SSL_MODES:
            raise ValueError(f"unsupported sslmode {value!r}")
        return value

    def connect_kwargs(self) -> dict[str, Any]:
        """
        Keyword arguments for `asyncpg.connect` / `asyncpg.create_pool`.
        """
        kwargs: dict[str, Any] = {"host": self.host, "port": self.port, "user": self.user}
        if self.password is not None:
            kwargs["password"] = self.password.get_secret_value()
        if self.database:
            kwargs["database"] = self.database
        if self.ssl_context is not None:
            kwargs["ssl"] = self.ssl_context
        elif self.sslmode:
            kwargs["ssl"] = self.sslmode
        if self.connect_timeout:
            kwargs["timeout"] = float(self.connect_timeout)
        if self.application_name:
            kwargs["server_settings"] = {"application_name": self.application_name}
        return kwargs

    def describe(self) -> str:
        # Safe for logs: never includes the password.
        return f"host={self.host} port={self.port} user={self.user} database={self.database or self.user}"


class FileConfig(BaseModel):
    """
    The subset of the indexer's JSON config file we care about.

    The file also carries plugin-only keys (threads, batch sizes, ...), so
    unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    connection_str: str | None = None
    host: str | None = None
    user: str | None = None
    port: int | None = None
    dbname: str | None = None
    password: SecretStr | None = None

    use_ssl: bool = False
    server_ca: Path | None = None
    client_cert: Path | None = None
    client_key: Path | None = None


def build_ssl_context(*, server_ca: Path, client_cert: Path, client_key: Path) -> ssl.SSLContext:
    """
    Verify the server certificate against `server_ca` and present the client
    certificate. The hostname is not checked, as in the indexer.
    """
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=str(server_ca))
    context.check_hostname = False
    context.load_cert_chain(certfile=str(client_cert), keyfile=str(client_key))
    return context


def _file_ssl_context(file_config: FileConfig, path: Path) -> ssl.SSLContext | None:
    if not file_config.use_ssl:
        return None

    files = {
        "server_ca": file_config.server_ca,
        "client_cert": file_config.client_cert,
        "client_key": file_config.client_key,
    }
    missing = [f'"{name}"' for name, value in files.items() if value is None]
    if missing:
        raise ConfigError(
            f'Config file {path}: {", ".join(missing)} must be specified when "use_ssl" is true.'
        )

    try:
        return build_ssl_context(
            server_ca=file_config.server_ca,
            client_cert=file_config.client_cert,
            client_key=file_config.client_key,
        )
    except OSError as exc:  # ssl.SSLError included
        raise ConfigError(f"Config file {path}: cannot load TLS files: {exc}") from exc


def _format_validation_error(exc: ValidationError) -> str:
    # Only field locations and messages: inputs may contain secrets.
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
    )


def _build_params(values: dict[str, Any], *, source: str) -> ConnectionParams:
    try:
        return ConnectionParams.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid connection parameters from {source}: {_format_validation_error(exc)}") from exc


def parse_connection_str(raw: str) -> ConnectionParams:
    """
    Parse a libpq keyword/value DSN: "host=db user=indexer port=5432 dbname=ix".

    Strict on purpose: every token must be key=value with a known key, and
    each key may appear once.
    """
    tokens = (raw or "").split()
    if not tokens:
        raise ConfigError("connection_str is empty.")

    values: dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        key = key.strip()
        if not sep or not key or not value:
            raise ConfigError(f"Malformed connection_str entry for key {key or '<empty>'!r}: expected key=value.")

        field = _DSN_KEYS.get(key)
        if field is None:
            raise ConfigError(f"Unsupported connection_str key {key!r}.")
        if field in values:
            raise ConfigError(f"Duplicate connection_str key {key!r}.")
        values[field] = value

    missing = [key for key in ("host", "user") if key not in values]
    if missing:
        raise ConfigError(f"connection_str is missing required key(s): {', '.join(missing)}.")

    return _build_params(values, source="connection_str")


def load_config_file(path: Path) -> ConnectionParams:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    try:
        file_config = FileConfig.model_validate_json(text)
    except ValidationError as exc:
        raise ConfigError(
            f"The config file {path} is not in the JSON format expected: {_format_validation_error(exc)}"
        ) from exc

    if file_config.connection_str:
        params = parse_connection_str(file_config.connection_str)
    elif file_config.host and file_config.user:
        values: dict[str, Any] = {
            "host": file_config.host,
            "user": file_config.user,
            "port": DEFAULT_POSTGRES_PORT if file_config.port is None else file_config.port,
            "database": file_config.dbname,
            "password": file_config.password,
        }
        params = _build_params(values, source=f"config file {path}")
    else:
        raise ConfigError(
            f'Config file {path}: "connection_str", or "host" and "user" must be specified.'
        )

    ssl_context = _file_ssl_context(file_config, path)
    if ssl_context is not None:
        params = params.model_copy(update={"ssl_context": ssl_context})
    return params


def params_from_env(settings: Settings) -> ConnectionParams:
    password = settings.postgres_password.get_secret_value() if settings.postgres_password else ""
    required = {
        "POSTGRES_DB": settings.postgres_db,
        "POSTGRES_USER": settings.postgres_user,
        "POSTGRES_PASSWORD": password,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}.")

    return _build_params(
        {
            "host": DEFAULT_POSTGRES_HOST,
            "port": DEFAULT_POSTGRES_PORT,
            "user": settings.postgres_user,
            "password": password,
            "database": settings.postgres_db,
        },
        source="environment",
    )


def resolve_connection_params(settings: Settings) -> ConnectionParams:
    if settings.inscriptions_config_file is not None:
        return load_config_file(settings.inscriptions_config_file)
    return params_from_env(settings)


def load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {_format_validation_error(exc)}") from exc
