"""
Monitor Sync Configuration Management

Loads configuration from YAML file with environment variable overrides.
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from monitor_sync.exceptions import ConfigError
from monitor_sync.power import BACKENDS
from monitor_sync.transport import DEFAULT_PORT, is_multicast


def default_data_dir() -> Path:
    """Return the default data directory."""
    return Path.home() / ".monitor-sync"


@dataclass
class TransportConfig:
    """Where sync datagrams are sent and received."""

    port: int = DEFAULT_PORT
    multicast_address: str | None = None

    def __post_init__(self):
        if env_port := os.environ.get("MONITOR_SYNC_PORT"):
            self.port = int(env_port)
        self.multicast_address = os.environ.get("MONITOR_SYNC_MULTICAST", self.multicast_address)


@dataclass
class ServerConfig:
    """Configuration for the broadcasting role."""

    rate_hz: float = 1.0

    def __post_init__(self):
        if env_rate := os.environ.get("MONITOR_SYNC_RATE_HZ"):
            self.rate_hz = float(env_rate)


@dataclass
class ClientConfig:
    """Configuration for the following role."""

    max_attempts: int = 100
    settle_delay: float = 0.1
    poll_timeout: float = 0.1


@dataclass
class PowerConfig:
    """Which power source/actuator to drive."""

    backend: str = "dpms"  # "dpms" or "mock"
    display: str | None = None

    def __post_init__(self):
        self.backend = os.environ.get("MONITOR_SYNC_BACKEND", self.backend)


@dataclass
class SyncConfig:
    """Main configuration for monitor-sync."""

    data_dir: Path = field(default_factory=default_data_dir)
    log_level: str = "INFO"
    log_to_file: bool = False
    console_level: str = "INFO"
    transport: TransportConfig = field(default_factory=TransportConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    power: PowerConfig = field(default_factory=PowerConfig)

    def __post_init__(self):
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)
        self.data_dir = self.data_dir.expanduser()

        # Environment overrides
        if env_data_dir := os.environ.get("MONITOR_SYNC_DATA_DIR"):
            self.data_dir = Path(env_data_dir).expanduser()
        self.log_level = os.environ.get("MONITOR_SYNC_LOG_LEVEL", self.log_level)

    @property
    def config_file(self) -> Path:
        return self.data_dir / "config.yaml"

    @property
    def log_file(self) -> Path:
        return self.data_dir / "monitor-sync.log"

    def ensure_dirs(self) -> None:
        """Create necessary directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def validate(self) -> None:
        """Raise ConfigError for values the sync loops cannot run with."""
        if not 1 <= self.transport.port <= 65535:
            raise ConfigError(f"port must be in 1..65535, got {self.transport.port}")
        address = self.transport.multicast_address
        if address and not is_multicast(address):
            raise ConfigError(f"{address} is not an IPv4 multicast address (224.0.0.0/4)")
        if not (math.isfinite(self.server.rate_hz) and self.server.rate_hz > 0):
            raise ConfigError(f"rate_hz must be positive, got {self.server.rate_hz}")
        if self.client.max_attempts < 1:
            raise ConfigError(f"max_attempts must be at least 1, got {self.client.max_attempts}")
        if self.client.settle_delay < 0 or self.client.poll_timeout <= 0:
            raise ConfigError("settle_delay must be >= 0 and poll_timeout > 0")
        if self.power.backend not in BACKENDS:
            raise ConfigError(f"Unknown power backend {self.power.backend!r}, expected one of {BACKENDS}")

    def to_dict(self) -> dict:
        """Convert config to dictionary for serialization."""
        return {
            "data_dir": str(self.data_dir),
            "log_level": self.log_level,
            "log_to_file": self.log_to_file,
            "console_level": self.console_level,
            "transport": {
                "port": self.transport.port,
                "multicast_address": self.transport.multicast_address,
            },
            "server": {
                "rate_hz": self.server.rate_hz,
            },
            "client": {
                "max_attempts": self.client.max_attempts,
                "settle_delay": self.client.settle_delay,
                "poll_timeout": self.client.poll_timeout,
            },
            "power": {
                "backend": self.power.backend,
                "display": self.power.display,
            },
        }

    def save(self) -> None:
        """Save configuration to YAML file."""
        self.ensure_dirs()
        with open(self.config_file, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load(cls, config_path: Path | None = None) -> "SyncConfig":
        """
        Load configuration from file.

        Precedence (highest to lowest):
        1. Environment variables
        2. Config file values
        3. Default values
        """
        config = cls()

        if config_path is None:
            config_path = config.config_file

        if config_path.exists():
            with open(config_path) as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Cannot parse {config_path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"{config_path} must contain a mapping, got {type(data).__name__}")

            # Apply file values (env vars applied in __post_init__)
            if "data_dir" in data:
                config.data_dir = Path(data["data_dir"]).expanduser()
            for key in ("log_level", "log_to_file", "console_level"):
                if key in data:
                    setattr(config, key, data[key])

            if transport_data := _section(data, "transport", config_path):
                if "port" in transport_data:
                    config.transport.port = int(transport_data["port"])
                if "multicast_address" in transport_data:
                    config.transport.multicast_address = transport_data["multicast_address"]

            if server_data := _section(data, "server", config_path):
                if "rate_hz" in server_data:
                    config.server.rate_hz = float(server_data["rate_hz"])

            if client_data := _section(data, "client", config_path):
                if "max_attempts" in client_data:
                    config.client.max_attempts = int(client_data["max_attempts"])
                if "settle_delay" in client_data:
                    config.client.settle_delay = float(client_data["settle_delay"])
                if "poll_timeout" in client_data:
                    config.client.poll_timeout = float(client_data["poll_timeout"])

            if power_data := _section(data, "power", config_path):
                if "backend" in power_data:
                    config.power.backend = power_data["backend"]
                if "display" in power_data:
                    config.power.display = power_data["display"]

            # Re-apply environment overrides
            config.__post_init__()
            config.transport.__post_init__()
            config.server.__post_init__()
            config.power.__post_init__()

        return config


def _section(data: dict, name: str, config_path: Path) -> dict:
    value = data.get(name)
    if value is not None and not isinstance(value, dict):
        raise ConfigError(f"{config_path}: section {name!r} must be a mapping")
    return value or {}


def get_config() -> SyncConfig:
    """Get the configuration, loading from the default location."""
    return SyncConfig.load()
