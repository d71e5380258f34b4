"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class StorageConfig(BaseSettings):
    # cloud-document-db | local-document-db | browser-local
    backend: str = "browser-local"
    mongo_uri: str = "mongodb://127.0.0.1:27017"
    mongo_database: str = "VehicleRepairDB"
    mongo_timeout_ms: int = 5000
    local_dir: str = "data/local"
    poll_interval_remote: float = 2.0
    poll_interval_local: float = 1.0

    model_config = {"env_prefix": "STORAGE_"}


class ImageStoreConfig(BaseSettings):
    # filesystem | gridfs
    backend: str = "filesystem"
    base_dir: str = "data/images"
    chunk_size: int = 64 * 1024

    model_config = {"env_prefix": "IMAGE_STORE_"}


class BillingConfig(BaseSettings):
    currency_symbol: str = "₹"
    default_address: str = "Vadodara, Gujarat, India"
    first_page_parts: int = 5
    parts_per_page: int = 15


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/repairdesk.db"
    log_level: str = "INFO"
    storage: StorageConfig = Field(default_factory=StorageConfig)
    image_store: ImageStoreConfig = Field(default_factory=ImageStoreConfig)
    billing: BillingConfig = Field(default_factory=BillingConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    storage = StorageConfig(**y.get("storage", {}))
    img = ImageStoreConfig(**y.get("image_store", {}))
    billing = BillingConfig(**y.get("billing", {}))
    overrides = {}
    db_url = y.get("database", {}).get("url")
    if db_url:
        overrides["database_url"] = db_url
    if "log_level" in y:
        overrides["log_level"] = y["log_level"]
    return Settings(
        storage=storage,
        image_store=img,
        billing=billing,
        **overrides,
    )
