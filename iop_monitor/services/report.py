"""
Shareable IOP report.

``build_report`` assembles the data the exported document needs; ``render_report``
lays it out as plain text with rich tables. Page layout and charts are left
to whichever exporter consumes the report.
"""

import io
from collections.abc import Sequence
from datetime import UTC, datetime

from pydantic import BaseModel, Field
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from iop_monitor.config import NormalRange
from iop_monitor.domain.models import Reading, RiskTier
from iop_monitor.services.risk import RiskClassifier
from iop_monitor.services.trends import is_out_of_range

REPORT_TITLE = "EyeSee - IOP Report"


class ReportRow(BaseModel):
    date: str
    time: str
    value: str = Field(description="IOP in mmHg, one decimal place")
    risk: RiskTier
    out_of_range: bool


class IOPReport(BaseModel):
    """Everything a report exporter needs, independent of layout."""

    title: str = REPORT_TITLE
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reading_count: int = Field(ge=0)
    latest: Reading | None = None
    latest_risk: RiskTier | None = None
    insight: str | None = None
    rows: list[ReportRow] = Field(default_factory=list)

    @property
    def summary(self) -> str:
        if self.latest is None:
            latest_text = "The latest reading was N/A mmHg on N/A."
        else:
            latest_text = (
                f"The latest reading was {self.latest.value:.1f} mmHg "
                f"on {self.latest.timestamp.strftime('%Y-%m-%d')}."
            )
        return f"This report contains {self.reading_count} readings.\n{latest_text}"


def build_report(
    readings: Sequence[Reading],
    insight: str | None = None,
    classifier: RiskClassifier | None = None,
    normal_range: NormalRange | None = None,
    generated_at: datetime | None = None,
) -> IOPReport:
    """Assemble an ``IOPReport`` from the full history and optional insight text."""
    classifier = classifier or RiskClassifier()
    normal_range = normal_range or NormalRange()

    rows = [
        ReportRow(
            date=r.timestamp.strftime("%Y-%m-%d"),
            time=r.timestamp.strftime("%H:%M:%S"),
            value=f"{r.value:.1f}",
            risk=classifier.classify(r),
            out_of_range=is_out_of_range(r, normal_range),
        )
        for r in readings
    ]
    latest = readings[-1] if readings else None

    return IOPReport(
        generated_at=generated_at or datetime.now(UTC),
        reading_count=len(readings),
        latest=latest,
        latest_risk=classifier.classify(latest) if latest is not None else None,
        insight=insight or None,
        rows=rows,
    )


def render_report(report: IOPReport, width: int = 80) -> str:
    """Render ``report`` to plain text."""
    console = Console(
        file=io.StringIO(), record=True, width=width, force_terminal=False, color_system=None
    )

    console.print(f"[bold]{report.title}[/bold]")
    console.print(f"Generated on: {report.generated_at.strftime('%Y-%m-%d')}")
    console.print()
    console.print(Panel(report.summary, title="Summary", box=box.ASCII))

    if report.insight:
        console.print(Panel(f'"{report.insight}"', title="AI-Driven Insight", box=box.ASCII))

    table = Table(title="Readings History", box=box.ASCII)
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("IOP (mmHg)", justify="right")
    table.add_column("Risk")
    table.add_column("Range")
    for row in report.rows:
        table.add_row(
            row.date,
            row.time,
            row.value,
            row.risk.value,
            "outside" if row.out_of_range else "normal",
        )
    console.print(table)

    return console.export_text()
