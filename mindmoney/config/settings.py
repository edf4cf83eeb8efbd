"""
Configuration Management for MindMoney

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every external dependency (database, identity provider, Gemini)
has its own settings group and environment prefix.
"""

from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the host/user/password fields"
    )
    host: Optional[str] = Field(
        default=None,
        description="Database host"
    )
    port: int = Field(
        default=5432,
        description="Database port"
    )
    user: Optional[str] = Field(
        default=None,
        description="Database user"
    )
    password: str = Field(
        default="",
        description="Database password"
    )
    name: str = Field(
        default="mindmoney",
        description="Database name"
    )
    sslmode: str = Field(
        default="require",
        description="libpq sslmode used for host-based connections"
    )
    connect_timeout: int = Field(
        default=10,
        ge=1,
        le=120,
        description="Seconds to wait for a new connection"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.url or (self.host and self.user))

    @property
    def sqlalchemy_url(self) -> str:
        """Get the URL passed to SQLAlchemy's create_engine."""
        if self.url:
            return self.url
        if not self.is_configured:
            raise ValueError("Database is not configured (set DB_URL or DB_HOST/DB_USER)")
        return (
            f"postgresql+psycopg2://{quote_plus(self.user)}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{self.name}"
        )

    @property
    def connect_args(self) -> dict:
        """Driver arguments; only PostgreSQL understands sslmode/connect_timeout."""
        if self.sqlalchemy_url.startswith("postgresql"):
            return {
                "sslmode": self.sslmode,
                "connect_timeout": self.connect_timeout,
            }
        return {}


class CognitoSettings(BaseSettings):
    """Identity provider (Cognito user pool) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="COGNITO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    region: str = Field(
        default="us-east-1",
        description="AWS region of the user pool"
    )
    user_pool_id: Optional[str] = Field(
        default=None,
        description="Cognito user pool id, e.g. us-east-1_AbCdEf123"
    )
    client_id: Optional[str] = Field(
        default=None,
        description="App client id the tokens must be issued for"
    )
    token_use: str = Field(
        default="id",
        description="Accepted token_use claim: 'id' or 'access'"
    )
    jwks_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for downloading the signing keys"
    )
    jwks_refresh_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Minimum interval between key downloads triggered by unknown key ids"
    )

    @field_validator("token_use")
    @classmethod
    def validate_token_use(cls, v: str) -> str:
        if v not in ("id", "access"):
            raise ValueError("token_use must be 'id' or 'access'")
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.user_pool_id and self.client_id)

    @property
    def issuer(self) -> str:
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Optional so the service can start without it; generation calls
    # then fail with "not configured".
    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Routing
    stage_prefixes: str = Field(
        default="dev",
        description="Comma-separated deployment stage names stripped from paths"
    )
    cors_allow_origin: str = Field(
        default="*",
        description="Value of the Access-Control-Allow-Origin header"
    )
    enable_diagnostics: bool = Field(
        default=True,
        description="Expose the unauthenticated /test-db, /test-gemini, /test-schema and /debug diagnostics"
    )

    # Storage
    use_database: bool = Field(
        default=True,
        description="Use the relational store; False selects the in-memory store"
    )

    @property
    def stage_prefix_list(self) -> list[str]:
        """Get stage prefixes as a list."""
        return [s.strip().strip("/") for s in self.stage_prefixes.split(",") if s.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def cognito(self) -> CognitoSettings:
        return CognitoSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every group that failed.
    Used by the /debug endpoint.
    """
    results = {}

    settings = get_settings()

    try:
        database = settings.database
        results["database"] = database.is_configured
        if not database.is_configured:
            results["database_error"] = "Not configured"
    except Exception as e:
        results["database"] = False
        results["database_error"] = str(e)

    try:
        cognito = settings.cognito
        results["cognito"] = cognito.is_configured
        if not cognito.is_configured:
            results["cognito_error"] = "Not configured"
    except Exception as e:
        results["cognito"] = False
        results["cognito_error"] = str(e)

    try:
        gemini = settings.gemini
        results["gemini"] = bool(gemini.api_key)
        if not gemini.api_key:
            results["gemini_error"] = "Not configured"
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
