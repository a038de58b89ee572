"""
FleetLink Configuration Management.

Type-safe settings for backend discovery, the resilient client and logging.
Values come from (in increasing priority) field defaults, a ``.env`` file,
``FLEETLINK_*`` environment variables and explicit keyword arguments.
YAML override files are supported for developer machines.
"""

import ipaddress
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PRODUCTION_BASE_URL = "https://ostol.stsc.ae/api"


class Environment(Enum):
    """Supported deployment environments."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class FallbackPolicy(Enum):
    """What discovery does when no candidate answers."""

    STRICT = "strict"  # raise "backend unreachable"
    LENIENT = "lenient"  # use the fallback address, uncached


class LinkSettings(BaseSettings):
    """Settings for discovery, client and logging."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETLINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(default="fleetlink", description="Name used in log records")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Deployment environment"
    )

    # Candidate generation
    candidate_urls: list[str] = Field(
        default_factory=lambda: [
            "http://10.0.0.74:5000",
            "http://10.0.0.27:5000",
            "http://192.168.0.111:5000",
        ],
        description="Known development backends, probed first",
    )
    subnet_prefixes: list[str] = Field(
        default_factory=list, description="Private /24 prefixes to sweep, e.g. 192.168.0"
    )
    scan_width: int = Field(default=0, ge=0, le=254, description="Hosts per prefix (.1..N)")
    backend_port: int = Field(default=5000, ge=1, le=65535)
    backend_scheme: str = Field(default="http")
    fallback_hosts: list[str] = Field(default_factory=lambda: ["localhost"])

    # Discovery
    production_url: str = Field(default=PRODUCTION_BASE_URL)
    health_path: str = Field(default="/health/")
    probe_timeout: float = Field(default=2.0, gt=0, description="Seconds per probe")
    batch_size: int = Field(default=4, ge=1, description="Concurrent probes per batch")
    discovery_ttl: float = Field(default=300.0, gt=0, description="Discovery cache window")
    fallback_policy: FallbackPolicy = Field(default=FallbackPolicy.LENIENT)
    verify_memory_hit: bool = Field(default=False)
    storage_key: str = Field(default="@backend_url")

    # Client
    request_timeout: float = Field(default=10.0, gt=0)

    # Storage
    storage_path: Path = Field(default=Path(".fleetlink/storage.json"))

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    @field_validator("backend_scheme")
    @classmethod
    def validate_scheme(cls, value: str) -> str:
        value = value.lower().strip()
        if value not in ("http", "https"):
            raise ValueError(f"Unsupported scheme: {value}")
        return value

    @field_validator("subnet_prefixes")
    @classmethod
    def validate_subnet_prefixes(cls, value: list[str]) -> list[str]:
        """Only private IPv4 /24 prefixes are accepted."""
        prefixes = []
        for raw in value:
            prefix = raw.strip().rstrip(".")
            try:
                network = ipaddress.ip_network(f"{prefix}.0/24")
            except ValueError as e:
                raise ValueError(f"Invalid subnet prefix {raw!r}: {e}") from e
            if not network.is_private:
                raise ValueError(f"Subnet prefix {raw!r} is not a private network")
            prefixes.append(prefix)
        return prefixes

    @field_validator("health_path")
    @classmethod
    def validate_health_path(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        value = value.upper()
        if value != "OFF" and value not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @classmethod
    def from_yaml(cls, path: Path | str, **overrides: Any) -> "LinkSettings":
        """Load settings from a YAML file; keyword overrides win."""
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        data.update(overrides)
        try:
            return cls(**data)
        except ValidationError:
            logger.error("Invalid settings in %s", path)
            raise


@lru_cache(maxsize=1)
def get_settings() -> LinkSettings:
    """Process-wide settings instance."""
    return LinkSettings()
