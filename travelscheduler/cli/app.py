"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.appointment_file import JsonAppointmentStore
from ..config import AppConfig, get_default_config_path
from ..domain.models import TravelMode
from ..domain.timeutils import local_date
from ..services.availability import AvailabilityService, build_travel_provider

app = typer.Typer(
    name="travelscheduler",
    help="Travel-aware availability and calendar grid for mobile service providers",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use the mock travel provider instead of a live API.")]
AppointmentsOption = Annotated[Optional[Path], typer.Option("--appointments", "-a", help="JSON file with booked appointments")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build_service(
    config_file: Optional[Path],
    mock: bool,
    appointments_file: Optional[Path],
) -> Tuple[AppConfig, AvailabilityService]:
    """Load configuration and wire the availability service."""
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)

    if mock:
        console.print("[yellow]⚠  Mock mode: travel times come from the mock provider[/yellow]\n")

    store_path = appointments_file or config.appointments_file or Path("appointments.json")
    store = JsonAppointmentStore(store_path, timezone=config.timezone)

    service = AvailabilityService.from_config(
        config,
        appointment_store=store,
        travel_provider=build_travel_provider(config, mock=mock),
    )
    return config, service


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Day to search (YYYY-MM-DD)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes")] = None,
    client_address: Annotated[Optional[str], typer.Option("--client-address", help="Address of the new client")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    appointments_file: AppointmentsOption = None,
    verbose: VerboseOption = False,
):
    """
    List offerable start times for a new appointment.

    Examples:

        travelscheduler slots 2025-07-07 --duration 90
        travelscheduler slots 2025-07-07 --mock -a appointments.json
    """
    _configure_logging(verbose)
    try:
        config, service = _build_service(config_file, mock, appointments_file)
        day = local_date(date, config.timezone)

        found = service.find_available_slots(
            day,
            service_duration_minutes=duration,
            client_address=client_address,
        )

        if not found:
            console.print(
                f"[yellow]⚠ No available slots on {day.format('dddd, DD.MM.YYYY')}.[/yellow]\n"
                "The day may be disabled in working hours or fully booked."
            )
            return

        console.print(f"[bold green]✓ {len(found)} available slot(s):[/bold green]\n")
        for slot in found:
            console.print(f"  {slot.format_display()}")
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def buffers(
    date: Annotated[str, typer.Argument(help="Day to compute (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
    appointments_file: AppointmentsOption = None,
    verbose: VerboseOption = False,
):
    """
    Show the travel buffer computed for each appointment of a day.
    """
    _configure_logging(verbose)
    try:
        config, service = _build_service(config_file, mock, appointments_file)
        day = local_date(date, config.timezone)

        travel_buffers = service.day_travel_buffers(day)

        if not travel_buffers:
            console.print(
                "[yellow]No travel buffers computed.[/yellow] "
                "Either the day has no appointments or no home base address is configured; "
                f"the default buffer of {service.profile.default_buffer_minutes} min applies."
            )
            return

        table = Table(
            title=f"Travel buffers for {day.format('DD.MM.YYYY')}",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Appointment", style="bold yellow")
        table.add_column("From")
        table.add_column("To")
        table.add_column("Travel", justify="right")
        table.add_column("Grace", justify="right")
        table.add_column("Total", justify="right", style="bold")
        table.add_column("Source", style="dim")

        for buffer in travel_buffers:
            table.add_row(
                str(buffer.appointment_id),
                buffer.origin_address,
                buffer.destination_address,
                f"{buffer.travel_minutes} min",
                f"{buffer.grace_minutes} min",
                f"{buffer.total_buffer_minutes} min",
                "estimate" if buffer.is_estimated else f"fallback ({buffer.fallback_reason.value})",
            )

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def calendar(
    date: Annotated[str, typer.Argument(help="Day to render (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    appointments_file: AppointmentsOption = None,
    verbose: VerboseOption = False,
):
    """
    Render the hour grid of a day.
    """
    _configure_logging(verbose)
    try:
        config, service = _build_service(config_file, False, appointments_file)
        day = local_date(date, config.timezone)

        rows = service.render_calendar(day)

        table = Table(
            title=f"Calendar for {day.format('dddd, DD.MM.YYYY')}",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Hour", justify="right", style="bold")
        table.add_column("Appointment")
        table.add_column("Status", style="dim")

        for row in rows:
            appointment = row.appointment
            if appointment is not None:
                start = appointment.scheduled_at.in_timezone(config.timezone)
                end = appointment.end.in_timezone(config.timezone)
                description = (
                    f"#{appointment.id} {start.format('HH:mm')}-{end.format('HH:mm')}"
                    f" {appointment.address or ''}".rstrip()
                )
            else:
                description = ""

            label = row.label if row.day_offset == 0 else f"{row.label} (+1)"
            status = "blocked" if row.blocked else ("booked" if appointment else "open")
            table.add_row(label, description, status)

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def travel(
    origin: Annotated[str, typer.Argument(help="Origin address")],
    destination: Annotated[str, typer.Argument(help="Destination address")],
    mode: Annotated[Optional[TravelMode], typer.Option("--mode", "-m", help="Transport mode")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Estimate travel time between two addresses.
    """
    _configure_logging(verbose)
    try:
        _, service = _build_service(config_file, mock, None)
        result = service.estimate_travel(origin, destination, mode)

        if result.ok:
            console.print(Panel.fit(
                f"[bold green]✓ {result.minutes} min[/bold green]\n\n"
                f"[bold]From:[/bold] {origin}\n"
                f"[bold]To:[/bold] {destination}\n"
                f"[bold]Distance:[/bold] {result.distance_meters / 1000:.1f} km",
                title="Travel time"
            ))
        else:
            console.print(Panel.fit(
                f"[bold red]✗ {result.reason.value}[/bold red]\n\n{result.message}",
                title="Travel time"
            ))
            raise typer.Exit(1)

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def validate(
    start: Annotated[str, typer.Argument(help="Proposed start (YYYY-MM-DDTHH:mm)")],
    end: Annotated[str, typer.Argument(help="Proposed end (YYYY-MM-DDTHH:mm)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
    appointments_file: AppointmentsOption = None,
    verbose: VerboseOption = False,
):
    """
    Check whether a proposed appointment time clears all travel buffers.
    """
    _configure_logging(verbose)
    try:
        _, service = _build_service(config_file, mock, appointments_file)
        check = service.validate_proposed_time(start, end)

        if check.is_valid:
            console.print("[bold green]✓ The proposed time is available.[/bold green]")
        else:
            console.print(f"[bold red]✗ {check.conflict_message}[/bold red]")
            console.print(f"   Conflicts with appointment #{check.conflicting_appointment_id}")
            raise typer.Exit(1)

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]travelscheduler[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
