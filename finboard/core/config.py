from typing import Dict, List
from decouple import config, Csv


class Settings:
    # --- Database ---
    DB_USER: str = config("DB_USER", default="postgres")
    DB_PASSWORD: str = config("DB_PASSWORD", default="postgres")
    DB_NAME: str = config("DB_NAME", default="postgres")
    DB_HOST: str = config("DB_HOST", default="localhost")
    DB_PORT: int = config("DB_PORT", default=5432, cast=int)
    DATABASE_URL_OVERRIDE: str = config("DATABASE_URL", default="")

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # --- Redis ---
    REDIS_HOST: str = config("REDIS_HOST", default="localhost")
    REDIS_PORT: int = config("REDIS_PORT", default=6379, cast=int)
    REDIS_DB: int = config("REDIS_DB", default=0, cast=int)
    REDIS_PASSWORD: str = config("REDIS_PASSWORD", default="")
    REDIS_USE_TLS: bool = config("REDIS_USE_TLS", default=False, cast=bool)

    @property
    def REDIS_URL(self) -> str:
        scheme = "rediss" if self.REDIS_USE_TLS else "redis"
        if self.REDIS_PASSWORD:
            return (
                f"{scheme}://:{self.REDIS_PASSWORD}@"
                f"{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
            )
        return f"{scheme}://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # --- Celery ---
    CELERY_BROKER_URL: str = config(
        "CELERY_BROKER_URL",
        default=f"redis://{REDIS_HOST}:{REDIS_PORT}/0"
    )

    CELERY_RESULT_BACKEND: str = config(
        "CELERY_RESULT_BACKEND",
        default=f"redis://{REDIS_HOST}:{REDIS_PORT}/1"
    )

    CELERY_TIMEZONE: str = config("CELERY_TIMEZONE", default="UTC")
    CELERY_BEAT_ENABLED: bool = config("CELERY_BEAT_ENABLED", default=True, cast=bool)
    CELERY_WORKER_CONCURRENCY: int = config(
        "CELERY_WORKER_CONCURRENCY", default=1, cast=int
    )

    # --- Users ---
    # Identity comes from the upstream auth layer through this header.
    USER_ID_HEADER: str = config("USER_ID_HEADER", default="X-User-Id")
    DEFAULT_USER_ID: str = config("DEFAULT_USER_ID", default="local")

    # "strict" re-persists a corrected active portfolio pointer, "lazy" recomputes it on every read
    ACTIVE_PORTFOLIO_POLICY: str = config("ACTIVE_PORTFOLIO_POLICY", default="strict").lower()

    # --- Import ---
    IMPORT_HEADER_SCAN_ROWS: int = config("IMPORT_HEADER_SCAN_ROWS", default=20, cast=int)
    IMPORT_PREVIEW_TTL: int = config("IMPORT_PREVIEW_TTL", default=1800, cast=int)
    IMPORT_MAX_UPLOAD_BYTES: int = config("IMPORT_MAX_UPLOAD_BYTES", default=5_000_000, cast=int)

    ACTIVITY_TYPE_MAP: Dict[str, str] = {
        "bought": "Buy",
        "sold": "Sell",
        "dividend": "Dividend",
        "qualified dividend": "Dividend",
        "reinvested dividend": "Dividend",
    }

    # Brokerage API records also use plain verbs.
    API_ACTIVITY_TYPE_MAP: Dict[str, str] = {
        "buy": "Buy",
        "sell": "Sell",
    }

    # e.g. IMPORT_EXTRA_ACTIVITY_TYPES="buy to open:Buy,reinvestment:Dividend"
    IMPORT_EXTRA_ACTIVITY_TYPES: List[str] = config(
        "IMPORT_EXTRA_ACTIVITY_TYPES", default="", cast=Csv()
    )

    @property
    def activity_types(self) -> Dict[str, str]:
        mapping = dict(self.ACTIVITY_TYPE_MAP)
        for entry in self.IMPORT_EXTRA_ACTIVITY_TYPES:
            text, sep, tx_type = entry.rpartition(":")
            if sep and text.strip():
                mapping[text.strip().lower()] = tx_type.strip()
        return mapping

    @property
    def api_activity_types(self) -> Dict[str, str]:
        return {**self.activity_types, **self.API_ACTIVITY_TYPE_MAP}

    # --- Market data ---
    PRICE_LOOKBACK_PERIOD: str = config("PRICE_LOOKBACK_PERIOD", default="5d")

    # --- Logging & Debug ---
    SQL_ECHO: bool = config("SQL_ECHO", default=False, cast=bool)
    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO").upper()
    LOG_DIR: str = config("LOG_DIR", default="logs")
    SQL_LOG_LEVEL: str = config("SQL_LOG_LEVEL", default="WARNING").upper()
    UVICORN_LOG_LEVEL: str = config("UVICORN_LOG_LEVEL", default="info").upper()
    DEBUG: bool = config("DEBUG", default=False, cast=bool)

    # --- CORS ---
    CORS_ORIGINS: List[str] = config(
        "CORS_ORIGINS",
        default="http://localhost:3000,http://127.0.0.1:3000",
        cast=Csv(),
    )


settings = Settings()
