"""Storefront configuration built on pydantic-settings.

Values come from the process environment and an optional ``.env`` file.
``create_app`` receives one ``Settings`` instance and passes it, or the
relevant nested section, to each component that needs it.
"""

from enum import Enum
from typing import Any
from urllib.parse import quote_plus

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment mode; production tightens limits and hides error details."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Top-level settings object.

    Nested sections are addressed with a double underscore, for example
    ``JWT__SECRET_KEY`` or ``RATE_LIMIT__WINDOW_MINUTES``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # ------------------------------------------------------------
    # Server
    # ------------------------------------------------------------

    app_name: str = Field("storefront-api", description="Service name reported by /health")
    app_version: str = Field("1.0.0", description="Service version reported by /health")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment mode")
    debug: bool = Field(False, description="Expose error details and tracebacks")

    host: str = Field("0.0.0.0", description="Bind address for `storefront serve`")  # nosec B104
    port: int = Field(3000, description="Bind port for `storefront serve`")

    # ------------------------------------------------------------
    # Relational store
    # ------------------------------------------------------------

    class DatabaseSettings(BaseModel):
        """Connection parameters; ``url`` wins over the individual parts."""

        url: str | None = Field(None, description="Complete SQLAlchemy URL, e.g. sqlite+aiosqlite://")
        host: str = Field("localhost", description="PostgreSQL server")
        port: int = Field(5432, description="PostgreSQL port")
        database: str = Field("storefront", description="Schema/database name")
        username: str = Field("postgres", description="Login role")
        password: str = Field("", description="Login password")

        pool_size: int = Field(10, description="Persistent pool connections")
        max_overflow: int = Field(20, description="Extra connections beyond pool_size")
        pool_timeout: int = Field(30, description="Seconds to wait for a free connection")
        pool_recycle: int = Field(3600, description="Connection lifetime in seconds")
        pool_pre_ping: bool = Field(True, description="Ping connections on checkout")
        echo: bool = Field(False, description="Log emitted SQL")

        @property
        def sqlalchemy_url(self) -> str:
            if self.url:
                return self.url
            credentials = quote_plus(self.username)
            if self.password:
                credentials += ":" + quote_plus(self.password)
            return f"postgresql+asyncpg://{credentials}@{self.host}:{self.port}/{self.database}"

    database: DatabaseSettings = DatabaseSettings()  # type: ignore[call-arg]

    # ------------------------------------------------------------
    # Tokens and passwords
    # ------------------------------------------------------------

    class JWTSettings(BaseModel):
        secret_key: str = Field("", description="HMAC signing secret; startup fails when empty")
        algorithm: str = Field("HS256", description="Signing algorithm")
        access_token_expire_minutes: int = Field(1440, description="Token lifetime in minutes")

    jwt: JWTSettings = JWTSettings()  # type: ignore[call-arg]

    class AuthSettings(BaseModel):
        bcrypt_rounds: int = Field(10, ge=4, le=31, description="bcrypt cost factor")

    auth: AuthSettings = AuthSettings()  # type: ignore[call-arg]

    # ------------------------------------------------------------
    # Cross-origin access
    # ------------------------------------------------------------

    class CORSSettings(BaseModel):
        """Options handed to Starlette's CORSMiddleware."""

        enabled: bool = Field(True, description="Install the CORS middleware")
        origins: list[str] = Field(
            default_factory=lambda: [
                "http://localhost:3000",
                "http://localhost:3001",
                "http://localhost:5173",
                "http://localhost:8080",
                "http://127.0.0.1:3000",
            ],
            description="Browser origins allowed to call the API",
        )
        methods: list[str] = Field(
            default_factory=lambda: ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            description="Methods allowed on cross-origin requests",
        )
        headers: list[str] = Field(
            default_factory=lambda: [
                "Origin",
                "X-Requested-With",
                "Content-Type",
                "Accept",
                "Authorization",
                "X-API-Key",
            ],
            description="Request headers allowed on cross-origin requests",
        )
        expose_headers: list[str] = Field(
            default_factory=lambda: [
                "X-Total-Count",
                "X-Page-Count",
                "X-RateLimit-Limit",
                "X-RateLimit-Remaining",
                "X-RateLimit-Reset",
                "X-Request-ID",
                "X-Response-Time",
            ],
            description="Response headers readable by browser scripts",
        )
        credentials: bool = Field(True, description="Allow cookies and Authorization")
        max_age: int = Field(86400, description="Preflight cache lifetime in seconds")

        @field_validator("origins", mode="before")
        @classmethod
        def split_origins(cls, value: Any) -> Any:
            # CORS__ORIGINS=https://a.test,https://b.test
            if isinstance(value, str) and not value.startswith("["):
                return [origin.strip() for origin in value.split(",") if origin.strip()]
            return value

    cors: CORSSettings = CORSSettings()  # type: ignore[call-arg]

    # ------------------------------------------------------------
    # Rate limits
    # ------------------------------------------------------------

    class RateLimitSettings(BaseModel):
        """Fixed-window ceilings keyed by client address.

        Leaving a ceiling unset picks a default from the environment: strict
        in production and looser everywhere else.
        """

        enabled: bool = Field(True, description="Enforce rate limits")
        max_requests: int | None = Field(None, description="Requests per window for the whole API")
        auth_max_requests: int | None = Field(None, description="Attempts per window for /api/auth")
        window_minutes: int = Field(15, ge=1, description="Window length in minutes")
        storage_url: str = Field("memory://", description="limits storage URI")
        allow_list: list[str] = Field(
            default_factory=lambda: ["127.0.0.1", "::1"],
            description="Addresses that are never limited",
        )

    rate_limit: RateLimitSettings = RateLimitSettings()  # type: ignore[call-arg]

    # ------------------------------------------------------------
    # Logging and request metrics
    # ------------------------------------------------------------

    class ObservabilitySettings(BaseModel):
        log_level: LogLevel = Field(LogLevel.INFO, description="Root log level")
        log_format: str = Field("json", description="'json' lines or 'text' console output")

    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]

    class MonitoringSettings(BaseModel):
        """Knobs for the request metrics collector and its middleware.

        ``None`` for the ``include_*`` switches means "only in development".
        """

        api_version: str = Field("1.0.0", description="Sent as X-API-Version")
        request_logging_enabled: bool = Field(True, description="Emit request/response log lines")
        ignore_paths: list[str] = Field(
            default_factory=lambda: ["/health", "/docs", "/redoc", "/openapi.json"],
            description="Path prefixes that are never logged",
        )
        include_headers: bool | None = Field(None, description="Add redacted headers to log lines")
        include_body: bool | None = Field(None, description="Add redacted bodies to log lines")
        max_body_length: int = Field(1000, description="Characters of body kept before truncation")

        performance_enabled: bool = Field(True, description="Record slow requests")
        slow_request_threshold_ms: float = Field(1000.0, description="Duration counted as slow")
        log_slow_requests: bool = Field(True, description="Warn when a request is slow")
        slow_request_capacity: int = Field(100, description="Slow requests kept in memory")
        slow_request_retention_seconds: int = Field(3600, description="Age after which slow requests are dropped")
        cleanup_interval_seconds: int = Field(3600, description="Seconds between cleanup runs")

        error_tracking_enabled: bool = Field(True, description="Count errors per endpoint")
        include_stack: bool | None = Field(None, description="Attach tracebacks to error logs")

        memory_warning_threshold_mb: int = Field(500, description="RSS above which health degrades")

    monitoring: MonitoringSettings = MonitoringSettings()  # type: ignore[call-arg]

    # ------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @property
    def is_production(self) -> bool:
        return self.environment is Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment is Environment.DEVELOPMENT

    @property
    def global_rate_limit(self) -> int:
        configured = self.rate_limit.max_requests
        if configured is None:
            return 100 if self.is_production else 1000
        return configured

    @property
    def auth_rate_limit(self) -> int:
        configured = self.rate_limit.auth_max_requests
        if configured is None:
            return 5 if self.is_production else 50
        return configured

    def _dev_default(self, override: bool | None, *, debug: bool = False) -> bool:
        if override is not None:
            return override
        return self.is_development or (debug and self.debug)

    @property
    def log_request_headers(self) -> bool:
        return self._dev_default(self.monitoring.include_headers)

    @property
    def log_request_body(self) -> bool:
        return self._dev_default(self.monitoring.include_body)

    @property
    def log_error_stack(self) -> bool:
        return self._dev_default(self.monitoring.include_stack, debug=True)

    @property
    def expose_error_details(self) -> bool:
        """True when 5xx messages may be returned to clients verbatim."""
        return self.is_development or self.debug


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached settings, reading the environment on first call."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
