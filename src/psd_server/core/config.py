import logging
from pathlib import Path
from typing import List, Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", env_prefix="PSD_SERVER_")

    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False
    log_level: str = "INFO"

    upload_dir: Path = Path("./uploads")
    export_dir: Optional[Path] = None
    max_file_size: int = 100 * 1024 * 1024
    allowed_extensions: List[str] = [".psd"]

    figma_access_token: Optional[str] = None
    figma_team_id: Optional[str] = None
    figma_api_base: str = "https://api.figma.com/v1"
    publish_timeout_seconds: int = 30

    job_ttl_seconds: int = 60 * 60
    poll_interval_seconds: float = 2.0
    poll_timeout_seconds: float = 5 * 60

    @property
    def resolved_export_dir(self) -> Path:
        return self.export_dir or self.upload_dir / "exported"


def get_settings() -> Settings:
    return Settings()


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: str = "INFO") -> None:
    """Configure the package logger once."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger("psd_server")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name."""
    return logging.getLogger(f"psd_server.{name}")
