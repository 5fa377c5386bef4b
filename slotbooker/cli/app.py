"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.json_store import JsonAppointmentStore
from ..adapters.roster import ConfigPractitionerSource
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError, StoreUnavailableError
from ..services.handlers import (
    BookingHandlers,
    CreateAppointmentRequest,
    ErrorInfo,
    ListSlotsRequest,
    UpdateAppointmentRequest,
)
from ..services.scheduling import SchedulingService

app = typer.Typer(
    name="slotbooker",
    help="Book practitioner appointments without double-booking",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]

_ERROR_TITLES = {
    "practitioner_not_found": "Behandler nicht gefunden",
    "appointment_not_found": "Termin nicht gefunden",
    "invalid_window": "Ungültige Arbeitszeiten",
    "out_of_hours": "Außerhalb der Arbeitszeiten",
    "invalid_duration": "Ungültige Dauer",
    "conflict": "Zeitslot ist bereits belegt",
    "unavailable": "Speicher nicht erreichbar, bitte erneut versuchen",
}


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    slotbooker - Termine buchen ohne Doppelbelegung.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    try:
        return AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)


def _build_service(config: AppConfig) -> SchedulingService:
    try:
        store = JsonAppointmentStore(config.data_file, timezone=config.timezone)
    except (StoreUnavailableError, ValueError) as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)
    return SchedulingService(
        ConfigPractitionerSource(config),
        store,
        timezone=config.timezone,
        default_timeout=config.store_timeout_seconds,
    )


def _parse_start(value: str, tz: str) -> pendulum.DateTime:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD HH:mm", tz=tz)
    except ValueError as e:
        console.print(f"[red]Fehler beim Parsen der Startzeit (YYYY-MM-DD HH:mm): {e}[/red]")
        raise typer.Exit(1)


def _fail(error: ErrorInfo) -> NoReturn:
    """Print a typed error and exit with status 1."""
    title = _ERROR_TITLES.get(error.kind, error.kind)
    console.print(f"[bold red]Fehler ({title}):[/bold red] {error.message}")
    if error.conflicting_ids:
        console.print(f"   Kollidierende Termine: {', '.join(error.conflicting_ids)}")
    raise typer.Exit(1)


@app.command()
def practitioners(config_file: ConfigOption = None):
    """
    List all configured practitioners.
    """
    config = _load_config(config_file)
    service = _build_service(config)

    roster = asyncio.run(service.list_practitioners())
    if not roster:
        console.print("[yellow]Keine Behandler in der Config-Datei definiert.[/yellow]")
        return

    table = Table(
        title="Konfigurierte Behandler",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="bold yellow")
    table.add_column("Name")
    table.add_column("Fachrichtung", style="dim")
    table.add_column("Arbeitszeiten")

    for practitioner in roster:
        table.add_row(
            practitioner.id,
            practitioner.name,
            practitioner.specialization or "-",
            str(practitioner.working_hours),
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    practitioner_id: Annotated[str, typer.Argument(help="Behandler-ID")],
    day: Annotated[Optional[str], typer.Option("--date", help="Datum (YYYY-MM-DD), Standard: heute")] = None,
    config_file: ConfigOption = None,
):
    """
    Show free slots of a practitioner on a date.

    Examples:

        slotbooker slots dr-weber --date 2024-11-25
    """
    config = _load_config(config_file)
    service = _build_service(config)

    try:
        target = (
            pendulum.from_format(day, "YYYY-MM-DD", tz=config.timezone).date()
            if day
            else pendulum.today(config.timezone).date()
        )
    except ValueError as e:
        console.print(f"[red]Fehler beim Parsen des Datums: {e}[/red]")
        raise typer.Exit(1)

    response = asyncio.run(
        BookingHandlers(service).list_slots(
            ListSlotsRequest(practitioner_id=practitioner_id, date=target)
        )
    )
    if not response.ok:
        _fail(response.error)

    console.print()
    if not response.slots:
        console.print(f"[yellow]⚠ Keine freien Slots am {target.format('DD.MM.YYYY')}.[/yellow]")
    else:
        console.print(
            f"[bold green]✓ {len(response.slots)} freie(r) Slot(s) am "
            f"{target.format('DD.MM.YYYY')}:[/bold green]\n"
        )
        console.print("  " + "  ".join(response.slots))
    console.print()


@app.command()
def appointments(
    practitioner_id: Annotated[Optional[str], typer.Option("--practitioner", "-p", help="Nur Termine dieses Behandlers")] = None,
    config_file: ConfigOption = None,
):
    """
    List committed appointments.
    """
    config = _load_config(config_file)
    service = _build_service(config)

    try:
        booked = asyncio.run(service.list_appointments(practitioner_id))
    except SchedulingError as e:
        _fail(ErrorInfo.from_exception(e))

    if not booked:
        console.print("[yellow]Keine Termine gebucht.[/yellow]")
        return

    table = Table(title="Gebuchte Termine", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Behandler", style="bold yellow")
    table.add_column("Zeit")
    table.add_column("Art")
    table.add_column("Patient")
    table.add_column("Notizen", style="dim")

    for appointment in booked:
        table.add_row(
            appointment.id,
            appointment.practitioner_id,
            str(appointment.interval),
            appointment.appointment_type,
            appointment.patient_name,
            appointment.notes or "",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    practitioner_id: Annotated[str, typer.Argument(help="Behandler-ID")],
    start: Annotated[str, typer.Option("--start", help="Beginn (YYYY-MM-DD HH:mm)")],
    patient: Annotated[str, typer.Option("--patient", help="Name des Patienten")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Dauer in Minuten")] = 30,
    appointment_type: Annotated[str, typer.Option("--type", help="Terminart")] = "consultation",
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notizen")] = None,
    config_file: ConfigOption = None,
):
    """
    Book an appointment.

    Examples:

        slotbooker book dr-weber --start "2024-11-25 10:00" --patient "Anna Schmidt"
        slotbooker book dr-weber --start "2024-11-25 14:00" -d 60 --type ultrasound --patient "Lena Koch"
    """
    config = _load_config(config_file)
    service = _build_service(config)

    request = CreateAppointmentRequest(
        practitioner_id=practitioner_id,
        start=_parse_start(start, config.timezone),
        duration_minutes=duration,
        appointment_type=appointment_type,
        patient_name=patient,
        notes=notes,
    )
    response = asyncio.run(BookingHandlers(service).create_appointment(request))
    if not response.ok:
        _fail(response.error)

    console.print(f"\n[bold green]✓ Termin gebucht![/bold green] ID: [bold]{response.id}[/bold]\n")


@app.command()
def reschedule(
    appointment_id: Annotated[str, typer.Argument(help="Termin-ID")],
    start: Annotated[str, typer.Option("--start", help="Neuer Beginn (YYYY-MM-DD HH:mm)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Dauer in Minuten")] = None,
    appointment_type: Annotated[Optional[str], typer.Option("--type", help="Terminart")] = None,
    patient: Annotated[Optional[str], typer.Option("--patient", help="Name des Patienten")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notizen")] = None,
    config_file: ConfigOption = None,
):
    """
    Move or edit an appointment. Omitted fields keep their current value.
    """
    config = _load_config(config_file)
    service = _build_service(config)

    try:
        current = asyncio.run(service.get_appointment(appointment_id))
    except SchedulingError as e:
        _fail(ErrorInfo.from_exception(e))

    request = UpdateAppointmentRequest(
        appointment_id=appointment_id,
        start=_parse_start(start, config.timezone),
        duration_minutes=duration if duration is not None else current.duration_minutes,
        appointment_type=appointment_type or current.appointment_type,
        patient_name=patient or current.patient_name,
        notes=notes if notes is not None else current.notes,
    )
    response = asyncio.run(BookingHandlers(service).update_appointment(request))
    if not response.ok:
        _fail(response.error)

    console.print(f"\n[bold green]✓ Termin aktualisiert![/bold green] ID: [bold]{response.id}[/bold]\n")


@app.command()
def cancel(
    appointment_id: Annotated[str, typer.Argument(help="Termin-ID")],
    config_file: ConfigOption = None,
):
    """
    Delete an appointment.
    """
    config = _load_config(config_file)
    service = _build_service(config)

    response = asyncio.run(BookingHandlers(service).delete_appointment(appointment_id))
    if not response.ok:
        _fail(response.error)

    console.print("\n[green]✓ Termin gelöscht.[/green]\n")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
