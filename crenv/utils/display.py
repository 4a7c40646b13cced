"""
Display Manager for crenv.
Centralizes console output: banner, topology summary, startup results.
"""
import threading
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

crenv_theme = Theme({
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "highlight": "bold magenta",
})


class DisplayManager:
    """
    Console output of the CLI commands.
    Thread-safe singleton.
    """

    _instance: Optional["DisplayManager"] = None
    _lock = threading.Lock()

    console: Console

    def __new__(cls) -> "DisplayManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance.console = Console(theme=crenv_theme, stderr=False)
        return cls._instance

    def show_banner(self, topology: str, infra: str) -> None:
        self.console.print(Panel.fit(
            f"[bold magenta]crenv[/bold magenta]\n[dim]Topology: {topology} | Infra: {infra}[/dim]",
            border_style="magenta",
        ))

    def show_topology(self, topology) -> None:
        """
        Render the planned DON layout.

        Args:
            topology: PlannedTopology from the planner.
        """
        table = Table(title="DON topology", show_lines=False)
        table.add_column("DON", style="bold")
        table.add_column("Nodes", justify="right")
        table.add_column("Capabilities")
        table.add_column("DON types")

        for group in topology.groups:
            table.add_row(
                group.name,
                str(group.node_set.node_count),
                ", ".join(group.capabilities) or "none",
                ", ".join(str(role) for role in group.don_types),
            )
        self.console.print(table)

    def show_result(self, result, elapsed_seconds: float) -> None:
        """Summary printed after a successful startup."""
        self.console.print(
            f"[highlight]Environment started in {elapsed_seconds:.2f} seconds[/highlight]"
        )

        table = Table(show_header=True)
        table.add_column("Chain ID", justify="right")
        table.add_column("Selector", justify="right")
        table.add_column("RPC")
        for chain in result.blockchains:
            table.add_row(str(chain.chain_id), str(chain.chain_selector), chain.rpc_http_url)
        self.console.print(table)

        self.console.print(f"Workflow DON ID: [bold]{result.topology.workflow_don_id}[/bold]")
        self.console.print(f"Job Distributor: {result.job_distributor.external_grpc_url}")
        if result.topology.gateway is not None:
            self.console.print(f"Gateway: {result.topology.gateway.url}")
        if result.generated_csa_key:
            self.console.print(
                f"[warning]Generated CSA encryption key:[/warning] {result.generated_csa_key}"
            )

    def success(self, message: str) -> None:
        self.console.print(f"[success]✅ {message}[/success]")

    def warning(self, message: str) -> None:
        self.console.print(f"[warning]⚠️ {message}[/warning]")

    def error(self, message: str) -> None:
        self.console.print(f"[error]❌ {message}[/error]")


def get_display_manager() -> DisplayManager:
    """Get the DisplayManager instance."""
    return DisplayManager()
