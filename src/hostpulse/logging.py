"""Console output and structured log setup for host-pulse.

Console lines are Rich markup for people watching the daemon. The structured
log is JSON Lines in a rotating file, configured by configure().
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

if TYPE_CHECKING:
    from hostpulse.config import Config

_console = Console(highlight=False)


class Icon:
    """Glyphs prefixed to console lines."""

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"
    WAIT = "⏳"
    HEARTBEAT = "[magenta]♡[/]"
    ALERT = "[bright_red]▲[/]"
    RESOLVED = "[bright_green]▼[/]"
    SIGNAL = "⚡"
    SEND = "[cyan]✉[/]"


_LEVEL_TAGS = {
    "info": "[bright_blue]\\[info][/]",
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}


def emit(level: str, msg: str, icon: str = "") -> None:
    """Print one timestamped console line; msg may carry Rich markup."""
    parts = [f"[dim]{datetime.now():%H:%M:%S}[/]", _LEVEL_TAGS.get(level, f"[{level}]")]
    if icon:
        parts.append(icon)
    parts.append(msg)
    _console.print(" ".join(parts))


def info(msg: str, icon: str = "") -> None:
    emit("info", msg, icon)


def warn(msg: str, icon: str = "") -> None:
    emit("warn", msg, icon)


def error(msg: str, icon: str = "") -> None:
    emit("error", msg, icon)


def usage_color(pct: float, threshold: float) -> str:
    """Rich color for a utilization: red at the threshold, yellow within 75% of it."""
    if pct >= threshold:
        return "bright_red"
    if pct >= threshold * 0.75:
        return "bright_yellow"
    return "green"


# Daemon lifecycle


def daemon_started() -> None:
    info("Daemon started", Icon.OK)


def daemon_stopping() -> None:
    info("Daemon stopping...", Icon.WAIT)


def daemon_stopped() -> None:
    info("Daemon stopped", Icon.OK)


def signal_received(name: str) -> None:
    info(f"Received [bold]{name}[/]", Icon.SIGNAL)


def already_running(pid: int) -> None:
    error(f"Another daemon already running [dim](PID {pid})[/]", Icon.FAIL)


def config_summary(threshold: float, sample_rate: float, window: int, cooldown: float) -> None:
    """Print the sampler settings the daemon started with."""
    info(
        f"CPU: alert≥[cyan]{threshold:g}%[/], every [cyan]{sample_rate:g}s[/], "
        f"window=[cyan]{window}[/] [dim](cooldown {cooldown:g}s)[/]"
    )


# Sampling and alerts


def alert_triggered(value: float, threshold: float) -> None:
    c = usage_color(value, threshold)
    warn(f"cpu.user [{c}]{value:.1f}%[/] ≥ {threshold:g}%", Icon.ALERT)


def alert_resolved(value: float, threshold: float) -> None:
    info(f"cpu.user [green]{value:.1f}%[/] < {threshold:g}%", Icon.RESOLVED)


def heartbeat(user: float, system: float, idle: float, threshold: float) -> None:
    """Print the current EMAs."""
    c = usage_color(user, threshold)
    info(
        f"user [{c}]{user:.1f}%[/], system [cyan]{system:.1f}%[/], "
        f"[dim]idle {idle:.1f}%[/]",
        Icon.HEARTBEAT,
    )


def tick_failed(error_msg: str) -> None:
    error(f"Sample failed: {error_msg}", Icon.FAIL)


def notification_fallback(text: str) -> None:
    """Show a notification that had no webhook to go to."""
    info(text, Icon.SEND)


def notification_failed(error_msg: str) -> None:
    warn(f"Notification failed: {error_msg}")


def _add_source(source: str) -> structlog.types.Processor:
    """Processor that stamps every event with where it came from."""

    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["source"] = source
        return event_dict

    return processor


def _common_processors() -> list[structlog.types.Processor]:
    """Processors applied to both structlog and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
        structlog.processors.add_log_level,
        _add_source("daemon"),
    ]


def configure(config: Config) -> None:
    """Route structlog events to config.log_path as JSON Lines.

    The file rotates at system.log_max_bytes and keeps
    system.log_backup_count old copies.
    """
    config.state_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        config.log_path,
        maxBytes=config.system.log_max_bytes,
        backupCount=config.system.log_backup_count,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[*_common_processors(), structlog.processors.format_exc_info],
        )
    )

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.handlers.clear()
    root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_common_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
