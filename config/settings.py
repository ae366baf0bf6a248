"""Project configuration facade backed by blogscout.config_manager."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from blogscout.config_manager import Config, ConfigError, load_config

CONFIG: Config = load_config()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = CONFIG.paths.data_dir
LOGS_DIR = CONFIG.paths.logs_dir

for directory in (DATA_DIR, LOGS_DIR):
    directory.mkdir(parents=True, exist_ok=True)

ENVIRONMENT = CONFIG.app.environment
DEBUG = CONFIG.app.debug
IS_PRODUCTION = ENVIRONMENT == "production"

STORAGE_CONFIG: Dict[str, Any] = CONFIG.storage.model_dump(mode="python")
STORAGE_CONFIG["data_dir"] = DATA_DIR
if not STORAGE_CONFIG.get("database_url"):
    STORAGE_CONFIG["database_url"] = f"sqlite:///{DATA_DIR / 'blogscout.db'}"

COLLECTION_CONFIG: Dict[str, Any] = CONFIG.collection.model_dump(mode="python")
COLLECTION_CONFIG["request_timeout"] = COLLECTION_CONFIG["request_timeout_seconds"]
COLLECTION_CONFIG["strategy_timeout"] = COLLECTION_CONFIG["strategy_timeout_seconds"]

RATE_LIMITING_CONFIG: Dict[str, Any] = CONFIG.rate_limiting.model_dump(mode="python")
CLASSIFICATION_CONFIG: Dict[str, Any] = CONFIG.classification.model_dump(mode="python")
RETENTION_CONFIG: Dict[str, Any] = CONFIG.retention.model_dump(mode="python")
REFRESH_CONFIG: Dict[str, Any] = CONFIG.refresh.model_dump(mode="python")
DATES_CONFIG: Dict[str, Any] = CONFIG.dates.model_dump(mode="python")

LOGGING_CONFIG: Dict[str, Any] = {
    "level": CONFIG.logging.level,
    "file_path": (
        str(LOGS_DIR / CONFIG.logging.file_name) if CONFIG.logging.file_name else None
    ),
    "max_file_size": f"{CONFIG.logging.max_file_size_mb} MB",
    "retention": f"{CONFIG.logging.retention_days} days",
}


def validate_config(config: Config | None = None) -> None:
    """Execute cross-section consistency checks."""

    cfg = config or CONFIG
    if cfg.retention.max_articles < cfg.collection.max_articles_per_acquisition:
        raise ConfigError(
            "retention.max_articles must be >= collection.max_articles_per_acquisition"
        )
    if cfg.storage.backend == "sql" and cfg.storage.database_url == "":
        raise ConfigError("storage.database_url must not be empty for the sql backend")


__all__ = [
    "BASE_DIR",
    "CONFIG",
    "DATA_DIR",
    "LOGS_DIR",
    "ENVIRONMENT",
    "DEBUG",
    "IS_PRODUCTION",
    "STORAGE_CONFIG",
    "COLLECTION_CONFIG",
    "RATE_LIMITING_CONFIG",
    "CLASSIFICATION_CONFIG",
    "RETENTION_CONFIG",
    "REFRESH_CONFIG",
    "DATES_CONFIG",
    "LOGGING_CONFIG",
    "validate_config",
]
