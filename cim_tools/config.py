"""Application configuration."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from CIM_* environment variables."""

    # Catalog / asset database
    database_url: str = "sqlite:///catalog.db"
    sql_echo: bool = False  # Set to True to log all SQL queries

    # Asset files on disk and their public base URL
    media_root: Path = Path("uploads")
    media_base_url: str = ""

    # Duplicate-group dataset
    dataset_path: Path = Path("data/visual_duplicates.csv")
    member_column: str = "skus"
    master_column: str = "master_image_to_keep"
    duplicates_column: str = "images_to_delete"
    member_delimiter: str = ","

    # Run logs and detail reports
    log_dir: Path = Path("logs")
    checkpoint_interval: int = 25
    mismatch_preview_limit: int = 20

    # Reclamation policy. No default pattern: it must match the naming
    # convention of the deployment's imported product images.
    deletable_pattern: Optional[str] = None
    variant_size_multiplier: float = 4.0

    page_size: int = 500

    model_config = SettingsConfigDict(
        env_prefix="CIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields from .env
    )
