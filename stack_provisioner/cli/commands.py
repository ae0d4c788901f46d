"""CLI commands for stack provisioner."""

import asyncio
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..analysis.tier_selector import TierSelector, TieringPolicy
from ..exceptions import ExternalToolError, ProvisioningError
from ..models.data_models import ProvisioningIdentity, ProvisioningState
from ..orchestrator.sequencer import ProvisioningSequencer
from ..utils.config import Config
from ..utils.logging import get_logger, setup_logging
from ..workers.base import BaseWorker
from ..workers.compose import ComposeWorker
from ..workers.resource_probe import ResourceProbe
from .operator import ConsoleOperator

console = Console()
err_console = Console(stderr=True)

logger = get_logger("cli")


def _fail(message: str):
    err_console.print(f"[red]✗ {message}[/red]")
    sys.exit(1)


def _run(coro) -> Optional[ProvisioningState]:
    """Run a coroutine, turning provisioning errors into exit status 1."""
    try:
        state = asyncio.run(coro)
    except ProvisioningError as e:
        _fail(str(e))

    if state == ProvisioningState.DECLINED:
        err_console.print("[yellow]Aborted by operator.[/yellow]")
        sys.exit(1)
    return state


def _sequencer(config: Config, assume_yes: bool, non_interactive: bool) -> ProvisioningSequencer:
    operator = ConsoleOperator(console, assume_yes=assume_yes, interactive=not non_interactive)
    return ProvisioningSequencer(config, operator=operator)


def _identity_provider(sequencer: ProvisioningSequencer, config: Config, domain, email, db_user, db_name):
    def provide() -> ProvisioningIdentity:
        return sequencer.operator.collect_identity(
            domain=domain or config.get("domain_name") or None,
            email=email or config.get("admin_email") or None,
            db_user=db_user or config.get("db_user"),
            db_name=db_name or config.get("db_name"),
        )
    return provide


def identity_options(func):
    """Options shared by commands that collect an identity."""
    func = click.option('--db-name', help='Application database name')(func)
    func = click.option('--db-user', help='Application database user')(func)
    return func


def gate_options(func):
    """Options controlling prompts and confirmation gates."""
    func = click.option('--yes', '-y', 'assume_yes', is_flag=True,
                        help='Answer yes at every confirmation gate')(func)
    func = click.option('--non-interactive', is_flag=True,
                        help='Never prompt; unanswered gates decline unless --yes')(func)
    func = click.option('--email', help='Administrator email for certificate notices')(func)
    func = click.option('--domain', help='Domain name, or localhost to skip certificates')(func)
    return func


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config-file', type=click.Path(exists=True, dir_okay=False), help='Configuration file path')
@click.option('--target-dir', type=click.Path(file_okay=False), help='Deployment directory')
@click.pass_context
def cli(ctx, debug, config_file, target_dir):
    """Stack Provisioner CLI."""
    ctx.ensure_object(dict)

    # Load configuration
    config = Config(config_file)
    if target_dir:
        config.set("target_dir", target_dir)
    ctx.obj['config'] = config

    # Setup logging
    log_level = "DEBUG" if debug else config.log_level
    setup_logging(log_level=log_level, log_file=config.log_file or None, console_output=True)

    console.print(Panel.fit(
        "[bold blue]Stack Provisioner[/bold blue]\n"
        "Web application stack configuration sized to this host",
        border_style="blue"
    ))


@cli.command()
@gate_options
@identity_options
@click.pass_context
def configure(ctx, domain, email, non_interactive, assume_yes, db_user, db_name):
    """Probe the host and write configuration for the detected tier."""

    config = ctx.obj['config']
    sequencer = _sequencer(config, assume_yes, non_interactive)
    provider = _identity_provider(sequencer, config, domain, email, db_user, db_name)

    _run(sequencer.configure(provider))
    console.print(Panel(
        f"[green]Configuration written to {config.target_dir}[/green]\n"
        "Next: run 'provision' to start the services",
        border_style="green"
    ))


@cli.command()
@click.pass_context
def provision(ctx):
    """Start services from an existing configuration."""

    config = ctx.obj['config']
    sequencer = _sequencer(config, assume_yes=False, non_interactive=True)

    _run(sequencer.provision())
    console.print("[green]✓ Services started[/green]")


@cli.command()
@gate_options
@click.option('--staging', is_flag=True, help='Use the ACME staging server')
@click.pass_context
def secure(ctx, domain, email, non_interactive, assume_yes, staging):
    """Obtain a certificate and enable TLS on the running proxy."""

    config = ctx.obj['config']
    if staging:
        config.set("certbot_staging", True)
    sequencer = _sequencer(config, assume_yes, non_interactive)

    async def run_secure():
        await sequencer.resume_at(ProvisioningState.SERVICES_STARTED)
        stored = sequencer.identity

        identity = sequencer.operator.collect_target(stored, domain, email)
        if identity.domain_name != stored.domain_name:
            sequencer.operator.warn(
                f"Securing {identity.domain_name}; the .env file still names {stored.domain_name}. "
                "Re-run 'configure' to update it."
            )
        return await sequencer.secure(identity)

    _run(run_secure())


@cli.command()
@gate_options
@identity_options
@click.option('--staging', is_flag=True, help='Use the ACME staging server')
@click.pass_context
def up(ctx, domain, email, non_interactive, assume_yes, db_user, db_name, staging):
    """Configure, start and secure the stack in one run."""

    config = ctx.obj['config']
    if staging:
        config.set("certbot_staging", True)
    sequencer = _sequencer(config, assume_yes, non_interactive)
    provider = _identity_provider(sequencer, config, domain, email, db_user, db_name)

    _run(sequencer.run(provider))
    console.print("[bold green]✓ Stack is ready[/bold green]")


@cli.command()
@click.pass_context
def probe(ctx):
    """Show host resources and the tier that would be selected."""

    config = ctx.obj['config']
    operator = ConsoleOperator(console, interactive=False)
    resource_probe = ResourceProbe(
        config.target_dir,
        min_memory_mb=config.min_memory_mb,
        min_disk_gb=config.min_disk_gb,
    )

    try:
        snapshot = resource_probe.probe()
        warnings = resource_probe.assess(snapshot)
        operator.show_snapshot(snapshot, warnings)
        for warning in warnings:
            if warning.requires_confirmation:
                console.print(f"[yellow]⚠ {warning.message}[/yellow]")

        tier, profile = TierSelector(TieringPolicy.from_config(config)).select(snapshot)
        operator.show_tier(tier, profile)
    except ProvisioningError as e:
        _fail(str(e))


@cli.command()
@click.pass_context
def doctor(ctx):
    """Check that the container engine and compose are available."""

    config = ctx.obj['config']
    worker = ComposeWorker(config.target_dir, docker_binary=config.docker_binary, timeout=config.command_timeout)

    async def run_checks():
        results = []

        if BaseWorker.is_available(config.docker_binary):
            results.append(("Engine binary", True, config.docker_binary))
        else:
            results.append(("Engine binary", False, f"{config.docker_binary} not found on PATH"))

        try:
            version = await worker.engine_version()
            results.append(("Engine daemon", True, version or "reachable"))
        except ExternalToolError as e:
            results.append(("Engine daemon", False, e.output or str(e)))

        try:
            command = await worker.compose_command()
            results.append(("Compose", True, " ".join(command)))
        except ExternalToolError as e:
            results.append(("Compose", False, str(e)))

        return results

    results = asyncio.run(run_checks())

    table = Table(title="Environment Checks")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    for name, ok, details in results:
        status = "[green]✓ OK[/green]" if ok else "[red]✗ Missing[/red]"
        table.add_row(name, status, details)

    console.print(table)

    if not all(ok for _, ok, _ in results):
        logger.error("Environment checks failed")
        _fail("Install Docker Engine with the compose plugin, then re-run 'doctor'")
