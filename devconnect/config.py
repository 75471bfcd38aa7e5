"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database (MySQL-protocol: MySQL / TiDB) ────────────────────────────
    db_host: str = "mysql"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "devconnect"
    # Full SQLAlchemy URL; wins over the individual db_* fields when set
    # (e.g. sqlite+aiosqlite:///./devconnect.db for local runs).
    database_url: Optional[str] = None

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Redis (cross-process event relay) ──────────────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_events_channel: str = "devconnect:events"
    redis_retry_delay: float = 1.0       # seconds before resubscribing after a relay error

    # ── Real-time channel ──────────────────────────────────────────────────
    realtime_backend: str = "memory"     # 'memory' | 'redis'
    ws_ping_interval: float = 25.0       # seconds between server pings
    ws_ping_timeout: float = 60.0        # close if no pong for this long
    client_reconnect_attempts: int = 5
    client_reconnect_delay: float = 1.0  # seconds

    # ── Auth ───────────────────────────────────────────────────────────────
    jwt_secret: str = "dev-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    # ── HTTP ───────────────────────────────────────────────────────────────
    cors_allowed_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # ── Observability ──────────────────────────────────────────────────────
    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "devconnect-api"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
