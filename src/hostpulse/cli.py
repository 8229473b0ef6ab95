"""CLI commands for host-pulse."""

import click


@click.group()
@click.version_option(package_name="host-pulse")
def main() -> None:
    """Sample host CPU, memory and load; alert on sustained CPU use."""
    pass


@main.command()
def daemon() -> None:
    """Run the background sampler."""
    import asyncio

    from hostpulse.daemon import run_daemon

    asyncio.run(run_daemon())


@main.command()
@click.option("--ticks", "-n", default=5, show_default=True, help="Number of samples to take")
@click.option("--interval", "-i", type=float, default=None, help="Seconds between samples")
def sample(ticks: int, interval: float | None) -> None:
    """Take a few CPU samples and print the smoothed values.

    Notifications are printed instead of sent.
    """
    import asyncio

    from hostpulse.config import Config, NotificationsConfig
    from hostpulse.cpu import CpuSampler
    from hostpulse.notifications import Notifier

    config = Config.load()
    if interval is not None:
        config.cpu.sample_rate = interval
    config.cpu.validate()

    sampler = CpuSampler(
        config.cpu,
        hostname=config.resolved_hostname,
        notifier=Notifier(NotificationsConfig()),
    )

    async def _run() -> None:
        sampler.collect_counters()
        for _ in range(ticks):
            await asyncio.sleep(config.cpu.sample_rate)
            await sampler.tick()
            emas = sampler.averages_snapshot()
            click.echo(
                "  ".join(f"{name}={value:6.2f}" for name, value in emas.items())
                + f"  phase={sampler.debouncer.phase.value}"
            )

    asyncio.run(_run())


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    from hostpulse.config import Config

    cfg = Config.load()

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo(f"hostname = {cfg.resolved_hostname}")
    click.echo()
    click.echo("[cpu]")
    click.echo(f"  threshold = {cfg.cpu.threshold}")
    click.echo(f"  sample_rate = {cfg.cpu.sample_rate}")
    click.echo(f"  reporting_interval = {cfg.cpu.reporting_interval}")
    click.echo(f"  cooldown = {cfg.cpu.cooldown}")
    click.echo(f"  (alpha = {cfg.cpu.alpha:.4f}, window = {cfg.cpu.ring_capacity})")
    click.echo()
    click.echo("[notifications]")
    click.echo(f"  slack_url = {'(set)' if cfg.notifications.slack_url else '(log only)'}")
    click.echo(f"  timeout = {cfg.notifications.timeout}")
    click.echo()
    click.echo("[reporter]")
    click.echo(f"  interval = {cfg.reporter.interval}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from hostpulse.config import Config

    cfg = Config.load()

    if not cfg.config_path.exists():
        cfg.save()
        click.echo(f"Created default config at {cfg.config_path}")

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from hostpulse.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")
