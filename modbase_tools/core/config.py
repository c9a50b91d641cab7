"""Configuration management for modbase-tools."""

from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, field_validator

logger = structlog.get_logger()

# Engine binaries: no modding value, dropped without a placeholder
DEFAULT_SKIP_EXTENSIONS = [
    ".dll", ".dylib", ".exe", ".so", ".a", ".lib", ".pyd", ".node",
]

# Binary assets replaced by a size/hash placeholder
DEFAULT_PLACEHOLDER_EXTENSIONS = [
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tga", ".dds", ".ico", ".svg",
    ".webp", ".tiff", ".tif", ".psd", ".xcf",
    # Audio
    ".mp3", ".wav", ".ogg", ".flac", ".m4a", ".aac", ".wma", ".opus", ".ape", ".bank",
    # Video
    ".mp4", ".avi", ".mkv", ".mov", ".wmv", ".flv", ".webm", ".m4v", ".mpg", ".mpeg", ".bk2",
    # Fonts
    ".ttf", ".otf", ".woff", ".woff2", ".eot", ".font", ".fnt",
    # Archives
    ".zip", ".rar", ".7z", ".tar", ".gz", ".bz2", ".xz", ".tgz", ".tbz2",
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # Databases
    ".db", ".sqlite", ".sqlite3", ".mdb", ".accdb",
    # Compiled code
    ".o", ".obj", ".pyc", ".pyo", ".class", ".jar", ".war", ".ear", ".dex", ".apk",
    # Binary data
    ".bin", ".dat", ".data", ".pak", ".cache",
    # Game/3D assets
    ".anim", ".mesh", ".asset", ".fbx", ".3ds", ".blend", ".gfx", ".shader", ".sav", ".cur",
    # Certificates and keys
    ".pfx", ".p12", ".jks", ".keystore", ".cer", ".crt", ".der", ".pem", ".key",
    # Logs and temporary files
    ".log", ".tmp", ".temp", ".bak", ".backup",
]


def normalize_extensions(extensions: list[str]) -> list[str]:
    """Lower-case extensions and make sure each has a leading dot."""
    result: list[str] = []
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext}"
        if ext not in result:
            result.append(ext)
    return result


class SteamConfig(BaseModel):
    """Store service configuration."""

    app_id: str = Field(default="1158310", description="Store application ID")
    product_name: str = Field(
        default="Crusader Kings III",
        description="Product name stripped from DLC names"
    )
    store_url: str = Field(
        default="https://store.steampowered.com",
        description="Store base URL"
    )
    language: str = Field(default="english", description="Announcement language")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    request_delay: float = Field(
        default=0.2,
        description="Pause between successive requests of the same kind"
    )
    events_page_size: int = Field(default=100, description="Announcements per feed page")
    events_max_pages: int = Field(default=20, description="Feed pages searched per version")

    @field_validator("app_id")
    @classmethod
    def validate_app_id(cls, v: str) -> str:
        """Validate application ID."""
        if not v.isdigit():
            raise ValueError(f"Invalid app id: {v}")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout value."""
        if v <= 0:
            raise ValueError("Timeout must be positive")
        return v

    @field_validator("request_delay")
    @classmethod
    def validate_request_delay(cls, v: float) -> float:
        """Validate request delay."""
        if v < 0:
            raise ValueError("Request delay must be non-negative")
        return v

    @field_validator("events_page_size", "events_max_pages")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate paging values."""
        if v <= 0:
            raise ValueError("Paging values must be positive")
        return v

    def announcement_url(self, gid: str) -> str:
        """Public URL of an announcement."""
        return f"{self.store_url}/news/app/{self.app_id}/view/{gid}"


class ExtractConfig(BaseModel):
    """File extraction configuration."""

    skip_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SKIP_EXTENSIONS),
        description="Extensions dropped entirely"
    )
    placeholder_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PLACEHOLDER_EXTENSIONS),
        description="Extensions replaced by a metadata placeholder"
    )
    reserved_dir: str = Field(
        default=".DepotDownloader",
        description="Download metadata directory that is never extracted"
    )

    @field_validator("skip_extensions", "placeholder_extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        """Normalize extension lists."""
        return normalize_extensions(v)


class SnapshotConfig(BaseModel):
    """Locations used when parsing a downloaded installation."""

    manifest_dir: str = Field(default=".DepotDownloader", description="Manifest directory")
    launcher_settings: str = Field(
        default="launcher/launcher-settings.json",
        description="Launcher settings holding the game version"
    )
    metadata_file: str = Field(default=".ck3-version.json", description="Metadata file name")
    release_notes_prefix: str = Field(
        default="release-notes",
        description="Path prefix recorded for release notes files"
    )


class DownloadConfig(BaseModel):
    """External download agent configuration."""

    executable: str = Field(default="DepotDownloader", description="Download agent")
    default_dir: Path = Field(
        default=Path("/tmp/ck3-download"),
        description="Default download directory"
    )


class AppConfig(BaseModel):
    """Application configuration."""

    config_dir: Path = Field(
        default=Path.home() / ".config" / "modbase-tools",
        description="Configuration directory"
    )

    steam: SteamConfig = Field(default_factory=SteamConfig)
    extract: ExtractConfig = Field(default_factory=ExtractConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)

    # Output settings
    output_format: str = Field(
        default="rich",
        description="Output format (rich, json, plain)"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    @classmethod
    def load(cls, config_file: Path | None = None) -> AppConfig:
        """Load configuration from file.

        Args:
            config_file: Path to config file, uses default if None

        Returns:
            Application configuration
        """
        if config_file is None:
            config_file = Path.home() / ".config" / "modbase-tools" / "config.json"

        if config_file.exists():
            with open(config_file) as f:
                data = json.load(f)
                return cls(**data)

        # Return defaults
        return cls()

    def save(self, config_file: Path | None = None) -> None:
        """Save configuration to file.

        Args:
            config_file: Path to config file, uses default if None
        """
        if config_file is None:
            config_file = self.config_dir / "config.json"

        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

        logger.info("config_saved", path=str(config_file))

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate output format."""
        valid_formats = {"rich", "json", "plain"}
        if v not in valid_formats:
            raise ValueError(f"Invalid output format: {v}. Valid formats: {valid_formats}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {valid_levels}")
        return v
