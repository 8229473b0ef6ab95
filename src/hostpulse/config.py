"""Configuration system for host-pulse."""

import socket
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit


@dataclass
class CpuConfig:
    """CPU sampling and alerting configuration.

    alpha and ring capacity are derived from sample_rate / reporting_interval.
    """

    threshold: float = 80.0  # cpu.user percentage that counts as a breach
    sample_rate: float = 1.0  # Seconds between counter reads
    reporting_interval: float = 60.0  # Seconds of history in the alert window
    cooldown: float = 300.0  # Min seconds between two notifications

    @property
    def alpha(self) -> float:
        """EMA smoothing factor, clamped to 1.0."""
        return min(1.0, self.sample_rate / self.reporting_interval)

    @property
    def ring_capacity(self) -> int:
        """Number of samples in the alert window."""
        return max(1, round(self.reporting_interval / self.sample_rate))

    def validate(self) -> None:
        """Raise ValueError if the values cannot drive a sampler."""
        if not 0 <= self.threshold <= 100:
            raise ValueError(f"cpu.threshold must be within 0-100, got {self.threshold!r}")
        if self.sample_rate <= 0:
            raise ValueError(f"cpu.sample_rate must be positive, got {self.sample_rate!r}")
        if self.reporting_interval < self.sample_rate:
            raise ValueError(
                f"cpu.reporting_interval ({self.reporting_interval!r}) must be >= "
                f"cpu.sample_rate ({self.sample_rate!r})"
            )
        if self.cooldown < 0:
            raise ValueError(f"cpu.cooldown must not be negative, got {self.cooldown!r}")


@dataclass
class NotificationsConfig:
    """Alert delivery configuration."""

    slack_url: str = ""  # Empty = log notifications instead of posting
    timeout: float = 10.0  # Seconds before an outbound post is abandoned


@dataclass
class ReporterConfig:
    """Metrics reporting configuration."""

    interval: float = 10.0  # Seconds between metrics batches


@dataclass
class SystemConfig:
    """Daemon-level configuration."""

    collect_memory: bool = True  # Report mem/swap/load gauges alongside CPU
    heartbeat_ticks: int = 60  # Log sampler heartbeat every N ticks
    # Log file rotation
    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


def _coerce(key: str, value, default):
    """Convert a loaded value to the type of its default.

    Raises:
        ValueError: If the value has the wrong type.
    """
    # tomlkit returns its own wrapper types; unwrap to plain Python values
    value = value.unwrap() if hasattr(value, "unwrap") else value
    # bool is an int subclass, so it is checked first and never coerced
    if isinstance(default, bool) or isinstance(value, bool):
        if type(value) is not type(default):
            raise ValueError(f"{key} must be {type(default).__name__}, got {value!r}")
        return value
    try:
        if isinstance(default, float) and isinstance(value, (int, float)):
            return float(value)
        if isinstance(default, int) and isinstance(value, int):
            return int(value)
        if isinstance(default, str) and isinstance(value, str):
            return str(value)
    except OverflowError as e:
        raise ValueError(f"{key}: {e}") from e
    raise ValueError(f"{key} must be {type(default).__name__}, got {value!r}")


def _load_section(name: str, cls, data):
    """Build a section dataclass, using its defaults for missing keys.

    Raises:
        ValueError: If the section is not a table or a value has the wrong type.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"[{name}] must be a table, got {data!r}")
    defaults = cls()
    kwargs = {}
    for f in fields(cls):
        default = getattr(defaults, f.name)
        if f.name not in data:
            kwargs[f.name] = default
            continue
        kwargs[f.name] = _coerce(f"{name}.{f.name}", data[f.name], default)
    return cls(**kwargs)


_SECTIONS = {
    "cpu": CpuConfig,
    "notifications": NotificationsConfig,
    "reporter": ReporterConfig,
    "system": SystemConfig,
}


@dataclass
class Config:
    """Main configuration container."""

    hostname: str = ""  # Empty = socket.gethostname()
    cpu: CpuConfig = field(default_factory=CpuConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    reporter: ReporterConfig = field(default_factory=ReporterConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    @property
    def resolved_hostname(self) -> str:
        """Hostname used in notifications."""
        return self.hostname or socket.gethostname()

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "host-pulse"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "host-pulse"

    @property
    def runtime_dir(self) -> Path:
        """Runtime directory for the PID file, cleared on reboot."""
        return Path("/tmp/host-pulse")

    @property
    def log_path(self) -> Path:
        """Daemon log path."""
        return self.state_dir / "daemon.log"

    @property
    def pid_path(self) -> Path:
        """PID file path."""
        return self.runtime_dir / "daemon.pid"

    def validate(self) -> None:
        """Raise ValueError for values the daemon cannot run with."""
        self.cpu.validate()
        if self.notifications.timeout <= 0:
            raise ValueError(
                f"notifications.timeout must be positive, got {self.notifications.timeout!r}"
            )
        if self.reporter.interval <= 0:
            raise ValueError(f"reporter.interval must be positive, got {self.reporter.interval!r}")
        if self.system.heartbeat_ticks < 0:
            raise ValueError(
                f"system.heartbeat_ticks must not be negative, got {self.system.heartbeat_ticks!r}"
            )

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        doc.add("hostname", self.hostname)
        doc.add(tomlkit.nl())
        for name in _SECTIONS:
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() agree when no file exists.

        Raises:
            ValueError: If the file cannot be parsed or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        hostname = data.get("hostname", defaults.hostname)
        config = cls(
            hostname=_coerce("hostname", hostname, defaults.hostname),
            **{
                name: _load_section(name, section_cls, data.get(name, {}))
                for name, section_cls in _SECTIONS.items()
            },
        )
        config.validate()
        return config
