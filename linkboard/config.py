from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"


class Settings(BaseSettings):
    # --- app ---
    app_name: str = "Links"
    debug: bool = False
    log_level: str = "INFO"

    # --- links store ---
    links_file: str = "./links.db.json"

    # --- resource monitor ---
    tick_interval: float = 1.0  # seconds between snapshots
    host_ip_ttl: float = 30.0
    cpu_static_ttl: float = 60.0
    cpu_dynamic_ttl_linux: float = 2.0
    cpu_dynamic_ttl_other: float = 5.0
    disks_ttl: float = 5.0
    gpus_ttl: float = 5.0
    hardware_meta_ttl: float = 30.0
    gpu_tool_timeout: float = 2.0
    top_processes: bool = True

    # --- history ---
    history_max_age: float = 30 * 60.0  # seconds
    history_max_points: int = 2000

    # --- server ---
    host: str = "0.0.0.0"
    port: int = 80
    cors_origins: list[str] = []

    model_config = {"env_file": ".env", "env_prefix": "LINKS_"}


settings = Settings()
