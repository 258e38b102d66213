"""
Configuration management for Stripe catalog sync operations
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError


@dataclass
class SyncConfig:
    """Stripe API configuration"""

    api_key: str
    api_version: Optional[str] = None
    currency: str = "usd"
    max_requests_per_second: int = 25
    request_timeout: int = 30
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Create configuration from environment variables (and .env if present)"""
        load_dotenv()
        return cls(
            api_key=os.getenv("STRIPE_API_KEY", ""),
            api_version=os.getenv("STRIPE_API_VERSION") or None,
            currency=os.getenv("STRIPE_CURRENCY", "usd").lower(),
            max_requests_per_second=int(os.getenv("MAX_REQUESTS_PER_SECOND", "25")),
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def require_credentials(self) -> None:
        """Fail before any work starts when the API key is missing"""
        if not self.api_key:
            raise ConfigError(
                "STRIPE_API_KEY environment variable is required. "
                "Set it in a .env file or as an environment variable."
            )


@dataclass
class PathConfig:
    """File path configuration"""

    root: Path = field(default_factory=Path.cwd)
    image_dir_name: str = "productImages"
    downloads_dir_name: str = "downloads"
    logs_dir_name: str = "logs"

    @property
    def image_dir(self) -> Path:
        return self.root / self.image_dir_name

    @property
    def downloads_dir(self) -> Path:
        return self.root / self.downloads_dir_name

    @property
    def logs_dir(self) -> Path:
        return self.root / self.logs_dir_name

    def get_export_path(self, timestamp: str) -> Path:
        """Get path for a freshly exported catalog file"""
        return self.downloads_dir / f"import_{timestamp}.xlsx"
