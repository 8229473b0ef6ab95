"""Background daemon for host-pulse."""

import asyncio
import os
import signal

import psutil
import structlog

from hostpulse import logging as console
from hostpulse.config import Config
from hostpulse.cpu import CpuSampler
from hostpulse.notifications import Notifier
from hostpulse.reporter import Reporter
from hostpulse.system import SystemSampler

log = structlog.get_logger()


class Daemon:
    """Runs the CPU sampler and the metrics reporter side by side."""

    def __init__(self, config: Config):
        self.config = config
        self.notifier = Notifier(config.notifications)
        self.cpu = CpuSampler(
            config.cpu,
            hostname=config.resolved_hostname,
            notifier=self.notifier,
            heartbeat_ticks=config.system.heartbeat_ticks,
        )

        collectors = [self.cpu]
        if config.system.collect_memory:
            collectors.append(SystemSampler())
        self.reporter = Reporter(collectors, interval=config.reporter.interval)

        self._shutdown_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    async def start(self) -> None:
        """Start the daemon and block until shutdown."""
        from importlib.metadata import version

        cpu = self.config.cpu
        log.info("daemon_starting", version=version("host-pulse"))
        log.info(
            "daemon_config",
            hostname=self.cpu.hostname,
            threshold=cpu.threshold,
            sample_rate=cpu.sample_rate,
            reporting_interval=cpu.reporting_interval,
            cooldown=cpu.cooldown,
            ring_capacity=cpu.ring_capacity,
            alpha=cpu.alpha,
        )
        console.config_summary(cpu.threshold, cpu.sample_rate, cpu.ring_capacity, cpu.cooldown)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda s=sig: self._handle_signal(s))

        if self._check_already_running():
            log.error("daemon_already_running")
            raise RuntimeError("Daemon is already running")

        self._write_pid_file()

        log.info("daemon_started")
        console.daemon_started()

        self._tasks = [
            asyncio.create_task(self.cpu.run(self._shutdown_event)),
            asyncio.create_task(self.reporter.run(self._shutdown_event)),
        ]
        await asyncio.gather(*self._tasks)

    async def stop(self) -> None:
        """Stop the daemon gracefully."""
        log.info("daemon_stopping")
        console.daemon_stopping()
        self._shutdown_event.set()

        for task in self._tasks:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        self._remove_pid_file()
        log.info("daemon_stopped")
        console.daemon_stopped()

    def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signals."""
        log.info("signal_received", signal=sig.name)
        console.signal_received(sig.name)
        self._shutdown_event.set()

    def _write_pid_file(self) -> None:
        """Write PID file."""
        self.config.pid_path.parent.mkdir(parents=True, exist_ok=True)
        self.config.pid_path.write_text(str(os.getpid()))
        log.debug("pid_file_written", path=str(self.config.pid_path))

    def _remove_pid_file(self) -> None:
        """Remove PID file if it is ours."""
        path = self.config.pid_path
        if path.exists() and path.read_text().strip() == str(os.getpid()):
            path.unlink()
            log.debug("pid_file_removed")

    def _check_already_running(self) -> bool:
        """Check if another host-pulse daemon holds the PID file."""
        path = self.config.pid_path
        if not path.exists():
            return False

        try:
            pid = int(path.read_text().strip())
        except ValueError:
            log.warning("pid_file_invalid", reason="not a number")
            path.unlink()
            return False

        if pid == os.getpid():
            return False

        try:
            cmdline = " ".join(psutil.Process(pid).cmdline()).lower()
        except psutil.NoSuchProcess:
            log.warning("pid_file_stale", reason="process not found", pid=pid)
            path.unlink()
            return False
        except psutil.AccessDenied:
            log.warning("pid_check_access_denied", pid=pid)
            return True

        if "host-pulse" in cmdline or "hostpulse" in cmdline:
            console.already_running(pid)
            return True

        log.warning("pid_file_stale", reason="different process", pid=pid)
        path.unlink()
        return False


async def run_daemon(config: Config | None = None) -> None:
    """Run the daemon until shutdown.

    Args:
        config: Optional config, loads from file if not provided
    """
    if config is None:
        config = Config.load()
    config.validate()

    console.configure(config)

    daemon = Daemon(config)

    try:
        await daemon.start()
    except Exception as e:
        log.exception("daemon_crashed", error=str(e))
        raise
    finally:
        await daemon.stop()
