from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = ("development", "production")
JOB_BACKENDS = ("memory", "redis")


class Settings(BaseSettings):
    # App
    app_name: str = "Tenancy"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"  # Options: "development", "production"

    # Database
    database_url: str = ""  # Default shared connection string, validated in model_validator
    database_echo: bool = False
    admin_database_name: str = "postgres"  # Server-level database used to CREATE DATABASE

    # Security
    secret_key: str = ""  # Loaded from environment, validated in model_validator
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480  # 8 hours

    # CORS - comma-separated list of allowed origins
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Tenancy
    root_tenant_id: str = "root"
    tenant_header_name: str = "tenant"
    tenant_claim: str = "tenant"
    user_id_claim: str = "uid"
    tenant_owner_role: str = "academy_owner"

    # Seed data
    root_admin_email: str = "admin@email.com"
    root_admin_password: str = "Password123!"
    root_role: str = "root"
    default_roles: str = (
        "root,academy_owner,academy_admin,director_of_football,coach,parent,player"
    )

    # Redis (notifications pub/sub and durable job queue)
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None

    # Background jobs
    job_backend: str = "memory"  # Options: "memory", "redis"
    job_queue_name: str = "tenancy:jobs"
    job_max_retries: int = 5
    job_backoff_base_seconds: float = 2.0
    job_backoff_max_seconds: float = 60.0
    job_poll_timeout_seconds: float = 1.0
    job_dedup_ttl_seconds: int = 3600

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def role_names(self) -> list[str]:
        return [role.strip() for role in self.default_roles.split(",") if role.strip()]

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required fields and option values"""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set in environment or .env file.")
        if not self.secret_key:
            raise ValueError("SECRET_KEY is required. Generate with: openssl rand -hex 32")

        if self.environment not in ENVIRONMENTS:
            raise ValueError(
                f"Invalid environment '{self.environment}'. "
                f"Must be one of: {', '.join(ENVIRONMENTS)}"
            )
        if self.job_backend not in JOB_BACKENDS:
            raise ValueError(
                f"Invalid job_backend '{self.job_backend}'. "
                f"Must be one of: {', '.join(JOB_BACKENDS)}"
            )
        if self.job_backend == "redis" and not self.redis_enabled:
            raise ValueError("job_backend 'redis' requires redis_enabled=true")
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="allow", case_sensitive=False
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
