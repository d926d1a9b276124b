"""
End-to-end demo of the IOP monitor core.

Seeds two weeks of history, runs one simulated measurement session on the
asyncio scheduler, commits the result and prints the dashboard and report.

Run with: python -m iop_monitor
"""

import asyncio

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from iop_monitor.config import get_config, print_config_summary
from iop_monitor.domain.errors import AcquisitionDenied
from iop_monitor.domain.models import RiskTier
from iop_monitor.observability import configure_logging
from iop_monitor.services.monitor import IOPMonitorService
from iop_monitor.services.reading_store import ReadingStore, seed_history
from iop_monitor.services.report import render_report

console = Console()

RISK_STYLES = {RiskTier.LOW: "green", RiskTier.MODERATE: "yellow", RiskTier.HIGH: "red"}


def show_dashboard(service: IOPMonitorService) -> None:
    snapshot = service.dashboard()

    if snapshot.latest is None or snapshot.risk is None:
        console.print(Panel("No readings yet", title="Dashboard"))
        return

    style = RISK_STYLES[snapshot.risk]
    header = (
        f"Latest: [bold]{snapshot.latest.value:.1f} mmHg[/bold]  "
        f"[{style}]{snapshot.risk.value} Risk[/{style}]"
    )
    if snapshot.trend is not None:
        header += f"\nTrend: {snapshot.trend.direction.value} ({snapshot.trend.change:+.1f} mmHg)"

    table = Table(title=f"Last {len(snapshot.window)} readings")
    table.add_column("Date")
    table.add_column("IOP (mmHg)", justify="right")
    for reading in snapshot.window:
        out = not service.config.trend.normal_range.contains(reading.value)
        value = f"[yellow]{reading.value:.1f}[/yellow]" if out else f"{reading.value:.1f}"
        table.add_row(reading.timestamp.strftime("%b %d"), value)

    console.print(Panel(header, title="Dashboard"))
    console.print(table)


async def main() -> None:
    """Demonstrate one complete measurement cycle."""
    config = get_config()
    configure_logging(config.logging)
    print_config_summary(config)

    service = IOPMonitorService(config, store=ReadingStore.from_readings(seed_history()))
    show_dashboard(service)

    console.print("\n[cyan]Place the device gently over your eye...[/cyan]")
    try:
        session = await service.measure(timeout_seconds=30.0)
    except AcquisitionDenied as e:
        console.print(f"[red]Sensor unavailable:[/red] {e}")
        return

    reading = service.commit(session)
    console.print(f"Measurement complete: [bold]{reading.value} mmHg[/bold]")

    show_dashboard(service)

    insight = await service.insight()
    console.print(Panel(insight.text, title=f"Insight ({insight.generated_by})"))
    console.print(render_report(service.report(insight.text)))


if __name__ == "__main__":
    asyncio.run(main())
