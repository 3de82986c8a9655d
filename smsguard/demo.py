"""
SMSGuard Demo - classify a batch of SMS messages from the command line.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import List, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from smsguard.config import SMSGuardSettings, get_settings, load_settings_from_yaml
from smsguard.core.base.classifier import Classification
from smsguard.core.container import build_application
from smsguard.events import QueueStateChangedEvent
from smsguard.utils.logging import configure_from_settings

console = Console()

SAMPLE_MESSAGES = [
    ("+15551230000", "Hey, are we still on for lunch tomorrow at noon?"),
    ("BANK-ALERT", "Your account has been suspended. Verify now at http://secure-bank-login.example to avoid closure."),
    ("+15559870000", "Your package could not be delivered. Pay the $1.99 redelivery fee: http://parcel-track.example"),
    ("MOM", "Don't forget to call grandma tonight"),
]

CLASSIFICATION_STYLES = {
    Classification.BENIGN: "green",
    Classification.SMISHING: "bold red",
    Classification.UNCLASSIFIED: "yellow",
    Classification.PENDING: "dim",
}


def load_messages(path: Path) -> List[Tuple[str, str]]:
    """
    Load messages from a JSON file.

    The file holds a list of {"sender": ..., "body": ...} objects.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [(item.get("sender", ""), item["body"]) for item in data]


async def run_demo(settings: SMSGuardSettings, messages: List[Tuple[str, str]]) -> None:
    """Run the SMSGuard demo."""
    console.print(
        Panel.fit(
            "[bold cyan]SMSGuard Demo[/bold cyan]\n" "Grounded smishing detection",
            border_style="cyan",
        )
    )

    app = build_application(settings)

    async def show_state(event: QueueStateChangedEvent) -> None:
        console.print(f"[dim]{app.queue.get_processing_status()}[/dim]")

    app.event_bus.subscribe(QueueStateChangedEvent, show_state)

    console.print("\n[bold]Initializing SMSGuard components...[/bold]\n")
    if await app.start():
        console.print("[green]✓[/green] Classifier ready")
    else:
        console.print("[yellow]![/yellow] Classifier unavailable, messages will be UNCLASSIFIED")
    console.print(f"[green]✓[/green] {app.resource_monitor.get_memory_usage_string()}\n")

    for sender, body in messages:
        await app.receiver.on_sms_received(sender, body)

    await app.queue.wait_until_idle()

    table = Table(title="Results", border_style="blue")
    table.add_column("Sender", style="cyan")
    table.add_column("Message", style="white", max_width=50)
    table.add_column("Classification")
    table.add_column("Explanation", style="white", max_width=50)

    for message in reversed(await app.repository.get_all_messages()):
        style = CLASSIFICATION_STYLES[message.classification]
        table.add_row(
            message.sender,
            message.preview(80),
            f"[{style}]{message.classification.name}[/{style}]",
            message.explanation or "",
        )

    console.print()
    console.print(table)

    stats = app.queue.get_statistics()
    stats_table = Table(border_style="yellow")
    stats_table.add_column("Queue Metric", style="cyan")
    stats_table.add_column("Value", style="white")
    stats_table.add_row("Total Processed", str(stats["processed"]))
    stats_table.add_row("Smishing", str(stats["smishing"]))
    stats_table.add_row("Unclassified", str(stats["unclassified"]))
    stats_table.add_row("Average Time", f"{stats['average_time_ms']:.0f}ms")
    console.print(stats_table)

    console.print("\n[bold]Cleaning up...[/bold]")
    await app.stop()
    console.print("[green]✓[/green] Demo completed\n")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Classify SMS messages with SMSGuard")
    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("--messages", type=Path, help="JSON file of messages to classify")
    parser.add_argument("--log-level", help="Override the configured log level")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    settings = load_settings_from_yaml(args.config) if args.config else get_settings()
    if args.log_level:
        settings.observability.log_level = args.log_level.upper()
    configure_from_settings(settings)

    messages = load_messages(args.messages) if args.messages else SAMPLE_MESSAGES

    try:
        asyncio.run(run_demo(settings, messages))
    except KeyboardInterrupt:
        console.print("\n[yellow]Demo interrupted by user[/yellow]")
    except Exception as e:
        console.print(f"\n[red]Error: {e}[/red]")
        raise


if __name__ == "__main__":
    main()
