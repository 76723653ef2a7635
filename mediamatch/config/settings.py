"""Configuration management for mediamatch."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from ..core.errors import ConfigError


class MatchingConfig(BaseModel):
    """Candidate matching policy."""
    fuzzy_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    # Bar for accepting a match without year corroboration
    no_year_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    year_tolerance: int = Field(default=1, ge=0)
    max_candidates: int = Field(default=5, ge=1)
    # Confidence given to a lone live search hit the matcher rejected
    single_result_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    cache_search_limit: int = Field(default=50, ge=1)
    api_result_limit: int = Field(default=10, ge=1)


class ScanConfig(BaseModel):
    """Folder scanning configuration."""
    media_extensions: list[str] = Field(default_factory=lambda: [
        ".mkv", ".mp4", ".avi", ".strm", ".ts", ".m2ts",
        ".mov", ".wmv", ".flv", ".webm", ".m4v", ".mpg", ".mpeg"
    ])
    skip_extensions: list[str] = Field(default_factory=lambda: [
        ".srt", ".ass", ".ssa", ".sub", ".idx", ".vtt",
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff",
        ".nfo", ".txt", ".log", ".md"
    ])
    strm_extension: str = ".strm"
    # Organizational buckets that never carry a title
    generic_folder_names: list[str] = Field(default_factory=lambda: [
        "电影", "剧集", "Movie", "Movies", "Series", "TV"
    ])


class TMDBConfig(BaseModel):
    """Remote metadata provider configuration."""
    api_key: str = ""
    language: str = "zh-CN"
    base_url: str = "https://api.themoviedb.org/3"
    timeout: int = 30
    retries: int = 3
    retry_delay: float = 1.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class MediaMatchConfig(BaseModel):
    """Main mediamatch configuration."""
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    tmdb: TMDBConfig = Field(default_factory=TMDBConfig)

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None


class ConfigManager:
    """Manages configuration loading and saving."""

    DEFAULT_CONFIG_NAME = "mediamatch.yaml"

    def __init__(self, config_path: Path | None = None):
        """Initialize config manager."""
        self.config_path = config_path or self._get_default_config_path()
        self._config: MediaMatchConfig | None = None

    def load(self) -> MediaMatchConfig:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
                    self._config = MediaMatchConfig(**data)
            except Exception as e:
                print(f"Error loading config from {self.config_path}: {e}")
                print("Using default configuration")
                self._config = MediaMatchConfig()
        else:
            print(f"Config file not found at {self.config_path}")
            print("Creating default configuration")
            self._config = MediaMatchConfig()
            self.save()

        return self._config

    def save(self, config: MediaMatchConfig | None = None) -> None:
        """Save configuration to file."""
        config_to_save = config or self._config
        if config_to_save is None:
            raise ConfigError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        data = config_to_save.model_dump()
        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, indent=2, allow_unicode=True)

        print(f"Configuration saved to {self.config_path}")

    def get_config(self) -> MediaMatchConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load()
        return self._config

    def _get_default_config_path(self) -> Path:
        """Get default configuration file path."""
        # Current directory first, then user config dir
        current_dir = Path.cwd() / self.DEFAULT_CONFIG_NAME
        if current_dir.exists():
            return current_dir

        config_dir = Path.home() / ".config" / "mediamatch"
        return config_dir / self.DEFAULT_CONFIG_NAME


# Global config instance
config_manager = ConfigManager()


def get_config() -> MediaMatchConfig:
    """Get the global configuration instance."""
    return config_manager.get_config()


def load_config(config_path: Path | None = None) -> MediaMatchConfig:
    """Load configuration from specific path."""
    if config_path:
        manager = ConfigManager(config_path)
        return manager.load()
    return config_manager.load()
