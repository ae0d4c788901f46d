"""Interactive console operator."""

from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..exceptions import ValidationError
from ..models.data_models import (
    PerformanceTier, ProbeWarning, ProvisioningIdentity, ResourceSnapshot,
    TierProfile, build_identity, retarget_identity
)
from ..orchestrator.operator import Operator
from ..utils.validation import LOCALHOST, validate_email


class ConsoleOperator(Operator):
    """Operator backed by a terminal.

    Progress and tables go to ``console`` (stdout). Prompts use click. With
    ``interactive`` off every confirmation is answered by ``assume_yes`` and
    malformed identity input is fatal.
    """

    def __init__(self, console: Console, assume_yes: bool = False, interactive: bool = True):
        super().__init__(assume_yes=assume_yes)
        self.console = console
        self.interactive = interactive

    def notify(self, message: str):
        super().notify(message)
        self.console.print(f"[blue]{message}[/blue]")

    def warn(self, message: str):
        super().warn(message)
        self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def confirm(self, message: str) -> bool:
        if self.assume_yes or not self.interactive:
            return super().confirm(message)
        return click.confirm(message, default=False)

    def show_snapshot(self, snapshot: ResourceSnapshot, warnings: List[ProbeWarning]):
        table = Table(title="System Resources")
        table.add_column("Resource", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Hostname", snapshot.hostname or "unknown")
        table.add_row("CPU Cores", str(snapshot.cpu_cores))
        if snapshot.cpu_model:
            table.add_row("CPU Model", snapshot.cpu_model)
        table.add_row("Total Memory", f"{snapshot.total_memory_mb}MB")
        table.add_row("Available Memory", f"{snapshot.available_memory_mb}MB")
        table.add_row("Available Disk", f"{snapshot.available_disk_gb}GB of {snapshot.total_disk_gb}GB")
        if snapshot.load_average:
            table.add_row("Load Average", snapshot.load_average)

        self.console.print(table)

        for warning in warnings:
            if not warning.requires_confirmation:
                self.console.print(f"[yellow]⚠ {warning.message}[/yellow]")

    def show_tier(self, tier: PerformanceTier, profile: TierProfile):
        table = Table(title=f"Performance Tier: {tier.value}")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Database Buffer Pool", f"{profile.buffer_pool_mb}MB")
        table.add_row("Database Max Connections", str(profile.db_max_connections))
        table.add_row("Runtime Memory Limit", f"{profile.runtime_memory_mb}MB")
        table.add_row(
            "Worker Pool",
            f"{profile.worker_max_children} max / {profile.worker_start_count} start / "
            f"{profile.worker_min_idle}-{profile.worker_max_idle} idle"
        )
        table.add_row("Proxy Worker Processes", str(profile.worker_process_count))
        table.add_row("Proxy Worker Connections", str(profile.worker_connections))
        table.add_row("Cache Memory", f"{profile.cache_memory_mb}MB")
        table.add_row("Opcode Cache Memory", f"{profile.opcache_memory_mb}MB")
        table.add_row("Max Upload Size", f"{profile.max_upload_size_bytes // (1024 * 1024)}MB")

        self.console.print(table)

    def show_secrets(self, identity: ProvisioningIdentity):
        # Printed once to the terminal; never passed to a logger
        self.console.print(Panel(
            f"[bold]Database root password:[/bold] {identity.db_root_secret.get_secret_value()}\n"
            f"[bold]Database user:[/bold] {identity.db_user}\n"
            f"[bold]Database password:[/bold] {identity.db_app_secret.get_secret_value()}\n"
            f"[bold]Database name:[/bold] {identity.db_name}\n"
            f"[bold]Application key:[/bold] {identity.app_secret.get_secret_value()}\n\n"
            "[dim]Store these now. They are kept only in the .env file.[/dim]",
            title="Generated Credentials",
            border_style="red"
        ))

    def show_artifacts(self, paths: List[Path]):
        for path in paths:
            self.console.print(f"[green]✓ Created {path}[/green]")

    def show_diagnostics(self, hints: List[str]):
        super().show_diagnostics(hints)
        if hints:
            self.console.print("[bold red]Please check:[/bold red]")
            for number, hint in enumerate(hints, 1):
                self.console.print(f"[red]{number}. {hint}[/red]")

    def collect_identity(
        self,
        domain: Optional[str] = None,
        email: Optional[str] = None,
        db_user: Optional[str] = None,
        db_name: Optional[str] = None
    ) -> ProvisioningIdentity:
        """Collect identity values, prompting for those not given.

        Args:
            domain: Domain name, prompted when missing
            email: Administrator email, prompted when missing
            db_user: Database user, default when missing
            db_name: Database name, default when missing

        Returns:
            Validated identity with freshly generated secrets

        Raises:
            ValidationError: Malformed input in non-interactive mode
        """
        if not self.interactive:
            return build_identity(domain_name=domain, admin_email=email, db_user=db_user, db_name=db_name)

        # Options are not prompted for, so bad database names cannot be fixed here
        build_identity(db_user=db_user, db_name=db_name)

        while True:
            answered_domain = domain or click.prompt(
                "Domain name (e.g., example.com)", default=LOCALHOST
            )
            answered_email = email or click.prompt(
                "Email for certificates", default="", show_default=False
            )
            try:
                return build_identity(
                    domain_name=answered_domain,
                    admin_email=answered_email or None,
                    db_user=db_user,
                    db_name=db_name,
                )
            except ValidationError as e:
                self.console.print(f"[red]{e}[/red]")
                if domain and email:
                    raise
                domain = None
                email = None

    def collect_target(
        self,
        stored: ProvisioningIdentity,
        domain: Optional[str] = None,
        email: Optional[str] = None
    ) -> ProvisioningIdentity:
        """Ask which domain to secure, defaulting to the stored one.

        Credentials always come from ``stored``.

        Raises:
            ValidationError: Malformed option, or malformed input in
                non-interactive mode
        """
        if email is not None:
            is_valid, error = validate_email(email.strip().lower())
            if not is_valid:
                raise ValidationError(error)

        while True:
            requested = domain
            if requested is None and self.interactive:
                requested = click.prompt("Domain name (e.g., example.com)", default=stored.domain_name)
            try:
                return retarget_identity(stored, requested, email)
            except ValidationError as e:
                self.console.print(f"[red]{e}[/red]")
                if domain is not None or not self.interactive:
                    raise
