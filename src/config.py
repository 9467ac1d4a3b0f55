"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Pulsewatch"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Monitor ---
    sensor_mode: str = "push"  # push | simulated
    push_sensor_available: bool = True  # false when the watch has no heart-rate sensor
    auto_start: bool = True  # resume the monitor as soon as the app starts

    # --- Remote sink ---
    sink_backend: str = "memory"  # memory | firestore | supabase

    # --- Firestore ---
    firestore_project_id: str = ""
    firestore_access_token: str = ""  # OAuth bearer token for the REST API
    firestore_base_url: str = "https://firestore.googleapis.com/v1"
    firestore_timeout_seconds: float = 5.0

    # --- Supabase ---
    supabase_db_url: str = ""  # direct postgres connection string for asyncpg
    supabase_documents_table: str = "synced_documents"

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
