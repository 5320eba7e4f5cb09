"""Configuration settings for the word game data layer."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
EXPORT_DIR = Path(os.getenv("EXPORT_DIR", str(DATA_DIR / "backups")))

STORAGE_BACKENDS = ("memory", "file", "sql")


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        EXPORT_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    export_dir: Path = EXPORT_DIR


@dataclass
class StorageSettings:
    """Key-value storage backend settings."""
    backend: str = os.getenv("STORAGE_BACKEND", "file")
    file_path: Path = Path(os.getenv("STORAGE_FILE", str(DATA_DIR / "storage.json")))


@dataclass
class DatabaseSettings:
    """Database configuration settings (used by the sql storage backend)."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordgame.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


def get_metrics_port() -> Optional[int]:
    """Get metrics port from environment variable."""
    port = os.getenv("METRICS_PORT", "")
    return int(port) if port else None


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    port: Optional[int] = field(default_factory=get_metrics_port)


@dataclass
class GameSettings:
    """Game data settings."""
    record_date_format: str = os.getenv("RECORD_DATE_FORMAT", "%Y/%m/%d %H:%M:%S")
    history_limit: int = int(os.getenv("HISTORY_LIMIT", "50"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_storage_settings() -> StorageSettings:
    """Get storage settings."""
    return StorageSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


def get_game_settings() -> GameSettings:
    """Get game settings."""
    return GameSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    storage: StorageSettings = field(default_factory=get_storage_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)
    game: GameSettings = field(default_factory=get_game_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.storage.backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}"
            )

        if self.game.history_limit < 1:
            raise ValueError("HISTORY_LIMIT must be positive")

        if self.monitoring.port is not None and not 0 < self.monitoring.port < 65536:
            raise ValueError("METRICS_PORT must be a valid TCP port")

        if self.logging.backup_count < 0:
            raise ValueError("LOG_BACKUP_COUNT cannot be negative")


# Create global settings instance
settings = Settings()
settings.validate()
