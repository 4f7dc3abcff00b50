"""
Command Line Interface for the delivery workflow service.
"""

from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..db.base import get_session_local, init_database
from ..workflow.errors import WorkflowError
from ..workflow.engine import DeliveryWorkflowEngine

app = typer.Typer(help="Delivery Workflow - delivery and approval of project work items")
console = Console()

_DELIVERY_STYLES = {
    "none": "dim",
    "pending": "yellow",
    "accepted": "green",
    "rejected": "red",
}


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    dev: bool = typer.Option(False, help="Run in development mode (auto-reload)"),
):
    """Start the API server."""
    settings = get_settings()
    console.print(Panel.fit("Starting Delivery Workflow", style="bold blue"))
    uvicorn.run(
        "delivery_workflow.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=dev,
    )


@app.command("init-db")
def init_db():
    """Create all database tables."""
    init_database()
    console.print("✅ Database initialized")


def _load_engine() -> DeliveryWorkflowEngine:
    return DeliveryWorkflowEngine(get_session_local()())


@app.command()
def show(work_item_id: str = typer.Argument(..., help="Work item ID")):
    """Show a work item's workflow fields."""
    engine = _load_engine()
    try:
        item = engine.get_work_item(work_item_id)
    except WorkflowError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    finally:
        engine.db.close()

    table = Table(title=f"{item.kind.value} {item.id}", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    style = _DELIVERY_STYLES.get(item.delivery_status.value, "")
    table.add_row("Title", item.title)
    table.add_row("Lifecycle", item.lifecycle_status.value)
    table.add_row("Delivery", f"[{style}]{item.delivery_status.value}[/{style}]")
    table.add_row("Assignee", item.assignee_id or "-")
    table.add_row("Operations contact", item.operations_contact_id or "-")
    table.add_row("Reviewer", item.reviewer_id or "-")
    table.add_row("QA", item.qa_id or "-")
    table.add_row("Artifacts", "\n".join(item.delivery_artifacts) or "-")
    table.add_row("Delivered by", item.delivered_by or "-")
    table.add_row("Approval note", item.approval_note or "-")

    console.print(table)


@app.command()
def history(work_item_id: str = typer.Argument(..., help="Work item ID")):
    """Show a work item's history, oldest first."""
    engine = _load_engine()
    try:
        entries = engine.get_history(work_item_id)
    except WorkflowError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    finally:
        engine.db.close()

    table = Table(title=f"History of {work_item_id}", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Time")
    table.add_column("Actor", style="cyan")
    table.add_column("Action")
    table.add_column("From -> To")
    table.add_column("Note")

    for entry in entries:
        table.add_row(
            str(entry.sequence),
            entry.timestamp.isoformat(timespec="seconds"),
            entry.actor_id,
            entry.action_type.value,
            f"{entry.from_status or '-'} -> {entry.to_status}",
            entry.note or "",
        )

    console.print(table)


if __name__ == "__main__":
    app()
