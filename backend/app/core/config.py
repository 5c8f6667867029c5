# /backend/app/core/config.py

import logging
from typing import Literal

from pydantic import (
    AliasChoices,
    Field,
    PostgresDsn,
    RedisDsn,
    computed_field,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )

    # --- Environment & Debug ---
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development", validation_alias="APP_ENV"
    )
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG_MODE", "DEBUG"))
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
    )
    LOG_FILE_PATH: str | None = Field(default=None, validation_alias="LOG_FILE_PATH")
    LOG_TRACEBACKS: bool = Field(default=True, validation_alias="LOG_TRACEBACKS")

    # --- Server Configuration ---
    SERVER_HOST: str = Field(default="0.0.0.0", validation_alias="SERVER_HOST")
    SERVER_PORT: int = Field(default=8000, validation_alias="SERVER_PORT")
    ROOT_PATH: str = Field(
        default="", description="Root path for the application if served under a subpath."
    )

    # --- Core Application Settings ---
    APP_NAME: str = Field(default="Shop Translation Engine", validation_alias="APP_NAME")
    APP_VERSION: str = Field(default="0.1.0", validation_alias="APP_VERSION")
    APP_DESCRIPTION: str = Field(
        default="API for translation jobs and per-shop token accounting.",
        validation_alias="APP_DESCRIPTION",
    )
    API_V1_STR: str = Field(default="/api/v1", validation_alias="API_V1_STR")

    # --- Database Settings ---
    PRIMARY_DATABASE_URL_ENV: PostgresDsn | None = Field(
        default=None, validation_alias="DATABASE_URL"
    )
    ASYNC_SQLALCHEMY_DATABASE_URL_WORKER_ENV: PostgresDsn | None = Field(
        default=None, validation_alias="ASYNC_SQLALCHEMY_DATABASE_URL_WORKER"
    )
    POSTGRES_SERVER: str = Field(default="db", validation_alias="POSTGRES_SERVER")
    POSTGRES_USER: str = Field(default="admin", validation_alias="POSTGRES_USER")
    POSTGRES_PASSWORD: str = Field(default="Pa44w0rd", validation_alias="POSTGRES_PASSWORD")
    POSTGRES_DB: str = Field(default="translationdb", validation_alias="POSTGRES_DB")
    POSTGRES_PORT: int = Field(default=5432, validation_alias="POSTGRES_PORT")
    DB_ECHO: bool = Field(default=False, validation_alias="DB_ECHO")
    DB_ECHO_WORKER: bool = Field(default=False, validation_alias="DB_ECHO_WORKER")

    # --- Celery & Redis Settings ---
    REDIS_HOST: str = Field(default="redis", validation_alias="REDIS_HOST")
    REDIS_PORT: int = Field(default=6379, validation_alias="REDIS_PORT")
    CELERY_BROKER_URL_ENV: RedisDsn | None = Field(
        default=None, validation_alias="CELERY_BROKER_URL"
    )
    CELERY_RESULT_BACKEND_ENV: RedisDsn | None = Field(
        default=None, validation_alias="CELERY_RESULT_BACKEND"
    )
    REDIS_PUBSUB_URL_ENV: RedisDsn | None = Field(default=None, validation_alias="REDIS_PUBSUB_URL")
    CELERY_TRANSLATION_TASK_NAME: str = Field(
        default="app.tasks.translation_jobs.execute_translation_job_task",
        validation_alias="CELERY_TRANSLATION_TASK_NAME",
    )
    TIMEZONE: str = Field(default="UTC", validation_alias="CELERY_TIMEZONE")
    CELERY_ACKS_LATE: bool = Field(default=True, validation_alias="CELERY_ACKS_LATE")
    CELERY_RESULT_EXPIRES: int = Field(default=3600, validation_alias="CELERY_RESULT_EXPIRES")
    PUBLISH_PROGRESS_EVENTS: bool = Field(default=True, validation_alias="PUBLISH_PROGRESS_EVENTS")

    # --- Translation Queue Policy ---
    TRANSLATION_JOB_MAX_ATTEMPTS: int = Field(
        default=3, ge=1, validation_alias="TRANSLATION_JOB_MAX_ATTEMPTS"
    )
    TRANSLATION_JOB_RETRY_BACKOFF_S: int = Field(
        default=3,
        description="Base delay for exponential backoff between job attempts.",
        validation_alias="TRANSLATION_JOB_RETRY_BACKOFF_S",
    )

    # --- Orchestration Tuning ---
    TRANSLATION_CELL_DELAY_MS: int = Field(
        default=100,
        ge=0,
        description="Pause between successive engine calls within one job.",
        validation_alias="TRANSLATION_CELL_DELAY_MS",
    )
    ENGINE_CALL_TIMEOUT_S: float = Field(default=60.0, gt=0, validation_alias="ENGINE_CALL_TIMEOUT_S")
    LEDGER_CALL_TIMEOUT_S: float = Field(default=10.0, gt=0, validation_alias="LEDGER_CALL_TIMEOUT_S")
    DB_OPERATION_TIMEOUT_S: float = Field(
        default=15.0, gt=0, validation_alias="DB_OPERATION_TIMEOUT_S"
    )
    TOKEN_ESTIMATE_CHARS_PER_TOKEN: int = Field(
        default=4, ge=1, validation_alias="TOKEN_ESTIMATE_CHARS_PER_TOKEN"
    )
    JOB_ERROR_MESSAGE_MAX_LEN: int = Field(default=500, validation_alias="JOB_ERROR_MESSAGE_MAX_LEN")
    DEFAULT_PAGINATION_LIMIT_MAX: int = Field(
        default=200, validation_alias="DEFAULT_PAGINATION_LIMIT_MAX"
    )

    # --- Engine Credentials (all optional; an unset engine is reported as not provisioned) ---
    DEEPL_API_KEY: str | None = Field(default=None, validation_alias="DEEPL_API_KEY")
    GOOGLE_PROJECT_ID: str | None = Field(default=None, validation_alias="GOOGLE_PROJECT_ID")
    GOOGLE_CREDENTIALS_PATH: str | None = Field(
        default=None, validation_alias="GOOGLE_CREDENTIALS_PATH"
    )
    OPENAI_API_KEY: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    OPENAI_MODEL: str = Field(
        default="gpt-4-turbo-preview", validation_alias=AliasChoices("OPENAI_MODEL", "AI_CHAT_MODEL")
    )
    GEMINI_API_KEY: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    GEMINI_MODEL: str = Field(default="gemini-pro", validation_alias="GEMINI_MODEL")
    GENERATIVE_TEMPERATURE: float = Field(default=0.3, validation_alias="GENERATIVE_TEMPERATURE")

    @model_validator(mode="after")
    def _apply_debug_overrides(self) -> "Settings":
        if self.DEBUG:
            if self.LOG_LEVEL != "DEBUG":
                logger.info("DEBUG mode is ON. Overriding LOG_LEVEL to DEBUG.")
                self.LOG_LEVEL = "DEBUG"
            if not self.DB_ECHO_WORKER and self.DB_ECHO:
                logger.info("DEBUG mode is ON & DB_ECHO is True. Setting DB_ECHO_WORKER to True.")
                self.DB_ECHO_WORKER = True

        if self.ROOT_PATH and self.ROOT_PATH != "/":
            self.ROOT_PATH = self.ROOT_PATH.strip("/")
        return self

    def _build_postgres_dsn(self, base_dsn: PostgresDsn | None, use_async: bool) -> PostgresDsn:
        driver_prefix = "postgresql+asyncpg://" if use_async else "postgresql://"
        alt_driver_prefix = "postgresql://" if use_async else "postgresql+asyncpg://"

        if base_dsn:
            db_url_str = str(base_dsn)
            if db_url_str.startswith(driver_prefix):
                return base_dsn
            elif db_url_str.startswith(alt_driver_prefix):
                return PostgresDsn(db_url_str.replace(alt_driver_prefix, driver_prefix, 1))
            elif "://" in db_url_str:
                return PostgresDsn(driver_prefix + db_url_str.split("://", 1)[1])
            else:
                raise ValueError(f"Malformed base DSN for DB (missing scheme?): {db_url_str}")
        return PostgresDsn(
            f"{driver_prefix}{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @computed_field(repr=False)
    @property
    def ASYNC_SQLALCHEMY_DATABASE_URL(self) -> PostgresDsn:
        return self._build_postgres_dsn(self.PRIMARY_DATABASE_URL_ENV, use_async=True)

    @computed_field(repr=False)
    @property
    def ASYNC_SQLALCHEMY_DATABASE_URL_WORKER(self) -> PostgresDsn:
        base_for_worker = (
            self.ASYNC_SQLALCHEMY_DATABASE_URL_WORKER_ENV or self.PRIMARY_DATABASE_URL_ENV
        )
        return self._build_postgres_dsn(base_for_worker, use_async=True)

    @computed_field(repr=False)
    @property
    def SYNC_SQLALCHEMY_DATABASE_URL(self) -> PostgresDsn:
        return self._build_postgres_dsn(self.PRIMARY_DATABASE_URL_ENV, use_async=False)

    @property
    def CELERY_BROKER_URL(self) -> RedisDsn | None:
        if self.CELERY_BROKER_URL_ENV:
            return self.CELERY_BROKER_URL_ENV
        if self.REDIS_HOST:
            try:
                return RedisDsn(f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/0")
            except Exception as e:
                logger.error(f"Failed to build CELERY_BROKER_URL from components: {e}")
                return None
        return None

    @property
    def CELERY_RESULT_BACKEND(self) -> RedisDsn | None:
        if self.CELERY_RESULT_BACKEND_ENV:
            return self.CELERY_RESULT_BACKEND_ENV
        if self.REDIS_HOST:
            try:
                return RedisDsn(f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/1")
            except Exception as e:
                logger.error(f"Failed to build CELERY_RESULT_BACKEND from components: {e}")
                return None
        return None

    @property
    def REDIS_PUBSUB_URL(self) -> RedisDsn | None:
        if self.REDIS_PUBSUB_URL_ENV:
            return self.REDIS_PUBSUB_URL_ENV
        if self.REDIS_HOST:
            try:
                return RedisDsn(f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/2")
            except Exception as e:
                logger.error(f"Failed to build REDIS_PUBSUB_URL from components: {e}")
                return None
        return None


settings = Settings()

if __name__ == "__main__":
    print("--- Loaded Settings (Debug from config.py) ---")
    print(
        f"ENVIRONMENT: {settings.ENVIRONMENT}, DEBUG: {settings.DEBUG}, LOG_LEVEL: {settings.LOG_LEVEL}"
    )

    print("\n--- Database ---")
    print(f"ASYNC_SQLALCHEMY_DATABASE_URL (for FastAPI): {settings.ASYNC_SQLALCHEMY_DATABASE_URL}")
    print(
        f"ASYNC_SQLALCHEMY_DATABASE_URL_WORKER (for Celery): {settings.ASYNC_SQLALCHEMY_DATABASE_URL_WORKER}"
    )
    print(f"SYNC_SQLALCHEMY_DATABASE_URL (for Alembic): {settings.SYNC_SQLALCHEMY_DATABASE_URL}")

    print("\n--- Celery & Redis ---")
    print(f"CELERY_BROKER_URL: {settings.CELERY_BROKER_URL}")
    print(f"CELERY_RESULT_BACKEND: {settings.CELERY_RESULT_BACKEND}")
    print(f"REDIS_PUBSUB_URL: {settings.REDIS_PUBSUB_URL}")
    print(f"CELERY_TRANSLATION_TASK_NAME: {settings.CELERY_TRANSLATION_TASK_NAME}")
    print(f"TRANSLATION_JOB_MAX_ATTEMPTS: {settings.TRANSLATION_JOB_MAX_ATTEMPTS}")

    print("\n--- Orchestration ---")
    print(f"TRANSLATION_CELL_DELAY_MS: {settings.TRANSLATION_CELL_DELAY_MS}")
    print(f"ENGINE_CALL_TIMEOUT_S: {settings.ENGINE_CALL_TIMEOUT_S}")
    print(f"LEDGER_CALL_TIMEOUT_S: {settings.LEDGER_CALL_TIMEOUT_S}")
    print(f"DB_OPERATION_TIMEOUT_S: {settings.DB_OPERATION_TIMEOUT_S}")

    print("\n--- Engines ---")
    print(f"DEEPL configured: {bool(settings.DEEPL_API_KEY)}")
    print(f"GOOGLE configured: {bool(settings.GOOGLE_PROJECT_ID and settings.GOOGLE_CREDENTIALS_PATH)}")
    print(f"OPENAI configured: {bool(settings.OPENAI_API_KEY)} (model {settings.OPENAI_MODEL})")
    print(f"GEMINI configured: {bool(settings.GEMINI_API_KEY)} (model {settings.GEMINI_MODEL})")
